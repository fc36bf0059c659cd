#!/usr/bin/env python3
"""
Configuration for screencast.
Reads encoder and output settings from the environment (and a .env file).
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class EncoderConfig:
    """Configuration for the external encoder"""
    ffmpeg_binary: Optional[str] = None  # None = look up ffmpeg on PATH
    log_level: str = "INFO"
    output_dir: Optional[str] = None  # None = system temp directory
    gif_scale: Optional[float] = None

    @classmethod
    def from_env(cls) -> "EncoderConfig":
        """Build configuration from SCREENCAST_* environment variables"""
        load_dotenv()

        gif_scale = os.getenv("SCREENCAST_GIF_SCALE")
        try:
            scale = float(gif_scale) if gif_scale else None
        except ValueError:
            logger.warning(f"Ignoring invalid SCREENCAST_GIF_SCALE: {gif_scale!r}")
            scale = None

        return cls(
            ffmpeg_binary=os.getenv("SCREENCAST_FFMPEG_BINARY") or None,
            log_level=os.getenv("SCREENCAST_LOG_LEVEL", "INFO").upper(),
            output_dir=os.getenv("SCREENCAST_OUTPUT_DIR") or None,
            gif_scale=scale
        )

    def get_output_dir(self) -> str:
        """Directory recordings are written to"""
        return self.output_dir or tempfile.gettempdir()


async def get_ffmpeg_binary(config: Optional[EncoderConfig] = None) -> Optional[str]:
    """
    Resolve the encoder binary.

    Args:
        config: EncoderConfig or None to read the environment

    Returns:
        Configured binary, else the ffmpeg found on PATH, else None
    """
    config = config or EncoderConfig.from_env()

    if config.ffmpeg_binary:
        return config.ffmpeg_binary

    binary = shutil.which("ffmpeg")
    if binary is None:
        logger.info("ffmpeg not configured and not found on PATH")
    return binary
