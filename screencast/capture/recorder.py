#!/usr/bin/env python3
"""
Recording and GIF conversion supervisor.
Starts the encoder for a capture session and runs the two-pass
palette-optimized GIF encode on finished recordings.
"""

import asyncio
import logging
import os
import tempfile
import time
from typing import Any, Awaitable, Dict, Optional, TypeVar

from ..config import EncoderConfig, get_ffmpeg_binary
from .arguments import build_recording_args
from .devices import resolve_input_devices
from .errors import ProcessFailedError
from .models import GifConversion, RecordingIntent, RecordingSession
from .process import ProcessHandle, spawn_process

logger = logging.getLogger(__name__)

T = TypeVar("T")

PALETTE_GEN = "palettegen=stats_mode=diff"
PALETTE_USE = "paletteuse=dither=bayer:bayer_scale=5:diff_mode=rectangle"


async def _resolve_to(awaitable: Awaitable[Any], value: T) -> T:
    await awaitable
    return value


def _discard(path: str):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


async def start_recording(intent: RecordingIntent) -> RecordingSession:
    """
    Start capturing the screen.

    Args:
        intent: What to record and where

    Returns:
        RecordingSession whose ``finish`` resolves to ``intent``

    Raises:
        UnsupportedPlatformError: host platform has no capture devices
        DeviceNotFoundError: device discovery failed
    """
    resolved = await resolve_input_devices(intent)
    args = build_recording_args(intent, resolved)

    handle = await spawn_process(intent.ffmpeg_binary, args)
    logger.info(f"Started recording {intent.bounds.size} at {intent.fps} FPS -> {intent.file}")

    return RecordingSession(
        intent=intent,
        finish=asyncio.ensure_future(_resolve_to(handle.finish, intent)),
        kill=handle.kill,
        proc=handle.proc
    )


def gif_filter(intent: RecordingIntent) -> str:
    """Frame rate and scale filter shared by both GIF passes"""
    width, height = intent.bounds.width, intent.bounds.height
    if intent.scale:
        width, height = int(width * intent.scale), int(height * intent.scale)
    return f"fps={intent.fps},scale={width}:{height}:flags=lanczos"


def gif_output_path(file: str) -> str:
    """recording.mp4 -> recording.gif, keeping the caller's spelling of the path"""
    return os.path.splitext(file)[0] + ".gif"


async def _finish_gif(handle: ProcessHandle, palette_file: str, output: str) -> Optional[str]:
    try:
        await handle.finish
    finally:
        _discard(palette_file)

    if handle.killed:
        logger.info(f"GIF conversion stopped, {output} may be incomplete")
        return None

    logger.info(f"GIF written: {output}")
    return output


async def generate_gif(
    intent: RecordingIntent,
    config: Optional[EncoderConfig] = None
) -> Optional[GifConversion]:
    """
    Convert a finished recording to an animated GIF.

    Pass 1 builds a palette from the recording, pass 2 encodes the GIF
    constrained to that palette. Pass 1 is awaited here; pass 2 is handed
    back to the caller.

    Args:
        intent: Intent of the finished recording (file, fps, bounds, scale)
        config: EncoderConfig used to locate ffmpeg

    Returns:
        GifConversion for pass 2, or None when no encoder is available
    """
    ffmpeg = await get_ffmpeg_binary(config)
    if not ffmpeg:
        logger.info("Skipping GIF conversion, no encoder available")
        return None

    vf = gif_filter(intent)
    output = gif_output_path(intent.file)

    fd, palette_file = tempfile.mkstemp(prefix="palette-gen-", suffix=".png")
    os.close(fd)

    palette = await spawn_process(ffmpeg, [
        '-i', str(intent.file),
        '-vf', f"{vf},{PALETTE_GEN}",
        '-y', palette_file
    ])

    try:
        await palette.finish
    except asyncio.CancelledError:
        palette.kill()
        _discard(palette_file)
        raise
    except ProcessFailedError as e:
        logger.error(f"Palette generation failed: {e}")
        _discard(palette_file)
        raise

    encode = await spawn_process(ffmpeg, [
        '-i', str(intent.file),
        '-i', palette_file,
        '-lavfi', f"{vf},{PALETTE_USE}",
        '-y', output
    ])

    return GifConversion(
        output=output,
        finish=asyncio.ensure_future(_finish_gif(encode, palette_file, output)),
        kill=encode.kill
    )


class RecordingSupervisor:
    """
    Convenience wrapper driving one recording at a time.

    Features:
    - Start/stop a capture session
    - Convert the last recording to GIF
    - Session statistics
    """

    def __init__(self, config: Optional[EncoderConfig] = None):
        """Initialize the supervisor"""
        self.config = config or EncoderConfig.from_env()
        self.session: Optional[RecordingSession] = None
        self.start_time = 0.0

    @property
    def is_recording(self) -> bool:
        return self.session is not None and not self.session.finish.done()

    async def start(self, intent: RecordingIntent) -> RecordingSession:
        """Start a recording unless one is already running"""
        if self.is_recording:
            logger.warning("Recording already running")
            return self.session

        self.session = await start_recording(intent)
        self.start_time = time.time()
        return self.session

    async def wait(self) -> Optional[RecordingIntent]:
        """Wait for the current recording to end on its own"""
        if self.session is None:
            return None
        return await self.session.finish

    async def stop(self) -> Optional[RecordingIntent]:
        """Stop the current recording and wait for the encoder to exit"""
        if self.session is None:
            logger.warning("No recording to stop")
            return None

        self.session.kill()
        intent = await self.session.finish

        elapsed = time.time() - self.start_time
        logger.info(f"Stopped recording after {elapsed:.1f}s: {intent.file}")
        return intent

    async def to_gif(self) -> Optional[str]:
        """Convert the last recording to GIF and wait for the result"""
        if self.session is None:
            return None
        if self.is_recording:
            await self.stop()

        conversion = await generate_gif(self.session.intent, self.config)
        if conversion is None:
            return None
        return await conversion.finish

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get recording statistics.

        Returns:
            Dictionary with recording statistics
        """
        if self.session is None:
            return {
                "is_recording": False,
                "uptime": 0,
                "file": None
            }

        return {
            "is_recording": self.is_recording,
            "uptime": time.time() - self.start_time,
            "file": str(self.session.intent.file),
            "fps": self.session.intent.fps,
            "size": self.session.intent.bounds.size,
            "pid": self.session.proc.pid
        }
