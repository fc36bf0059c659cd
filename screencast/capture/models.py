#!/usr/bin/env python3
"""
Data structures shared by the capture pipeline.
Recording intents, resolved devices, default encoder parameters and the
session handles returned to callers.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional


class FlagGroup(Enum):
    """Groups of default encoder flags"""
    COMMON = "common"
    AUDIO = "audio"
    VIDEO = "video"


# Default encoder flags per group. Insertion order is the emission order.
RECORDING_ARGS: Mapping[FlagGroup, Mapping[str, Any]] = MappingProxyType({
    FlagGroup.COMMON: MappingProxyType({
        'threads': 4,
        'capture_cursor': 1,
    }),
    FlagGroup.AUDIO: MappingProxyType({
        'b:a': '384k',
        'c:a': 'aac',
        'ac': 1,
        'vbr': 3,
    }),
    FlagGroup.VIDEO: MappingProxyType({
        'preset': 'ultrafast',
        'crf': 22,
        'c:v': 'libx264',
    }),
})


@dataclass(frozen=True)
class CaptureRegion:
    """Rectangular screen area in pixels"""
    x: int
    y: int
    width: int
    height: int

    @property
    def size(self) -> str:
        """Region size in encoder notation (WxH)"""
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class RecordingIntent:
    """
    Everything a caller wants from one recording.

    Attributes:
        bounds: Capture region
        fps: Frames per second
        file: Destination file path
        ffmpeg_binary: Path of the encoder used for the recording
        duration: Optional recording length in seconds
        audio: Whether to record audio as well
        flags: Overrides for encoder flags, keyed by flag name
            (``audio_f``/``audio_i`` for the audio device)
        scale: Optional scale factor applied when converting to GIF
    """
    bounds: CaptureRegion
    fps: int
    file: str
    ffmpeg_binary: str = "ffmpeg"
    duration: Optional[float] = None
    audio: bool = False
    flags: Dict[str, Any] = field(default_factory=dict)
    scale: Optional[float] = None


@dataclass(frozen=True)
class DeviceDescriptor:
    """Encoder input format (-f) and device selector (-i)"""
    f: str
    i: str


@dataclass(frozen=True)
class Resolution:
    """Physical screen resolution reported by the desktop"""
    w: int
    h: int


@dataclass(frozen=True)
class ResolvedInput:
    """Platform specific result of device discovery"""
    video: DeviceDescriptor
    audio: Optional[DeviceDescriptor] = None
    resolution: Optional[Resolution] = None


@dataclass
class RecordingSession:
    """Handle for a running capture, owned by the caller"""
    intent: RecordingIntent
    finish: "asyncio.Future[RecordingIntent]"
    kill: Callable[[], None]
    proc: asyncio.subprocess.Process


@dataclass
class GifConversion:
    """Handle for the palette-constrained GIF encode. ``finish`` resolves to None if killed."""
    output: str
    finish: Awaitable[Optional[str]]
    kill: Callable[[], None]
