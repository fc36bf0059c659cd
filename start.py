#!/usr/bin/env python3
"""
screencast - demo recording
Records the primary monitor for a few seconds and converts it to a GIF.
"""

import asyncio
import logging
import os
import time

from screencast.capture import RecordingIntent, RecordingSupervisor, full_screen_region
from screencast.config import EncoderConfig, get_ffmpeg_binary

DEMO_SECONDS = 5
DEMO_FPS = 15

logger = logging.getLogger("screencast.demo")


async def main() -> int:
    config = EncoderConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    ffmpeg = await get_ffmpeg_binary(config)
    if not ffmpeg:
        logger.error("ffmpeg not found. Set SCREENCAST_FFMPEG_BINARY or install ffmpeg.")
        return 1

    intent = RecordingIntent(
        bounds=full_screen_region(),
        fps=DEMO_FPS,
        file=os.path.join(config.get_output_dir(), f"screencast-{int(time.time())}.mp4"),
        ffmpeg_binary=ffmpeg,
        duration=DEMO_SECONDS,
        scale=config.gif_scale
    )

    supervisor = RecordingSupervisor(config)
    await supervisor.start(intent)
    logger.info(f"Recording {DEMO_SECONDS}s to {intent.file}...")
    await supervisor.wait()

    gif = await supervisor.to_gif()
    logger.info(f"Done: {gif or intent.file}")
    return 0


if __name__ == "__main__":
    print("\n" + "="*70)
    print("SCREENCAST - DEMO RECORDING")
    print("="*70 + "\n")

    exit(asyncio.run(main()))
