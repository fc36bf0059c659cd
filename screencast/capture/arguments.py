#!/usr/bin/env python3
"""
Encoder argument synthesis.
Merges the default flag tables with caller overrides and the capture
geometry into one ffmpeg command line.
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .models import RECORDING_ARGS, FlagGroup, RecordingIntent, ResolvedInput

logger = logging.getLogger(__name__)


def format_seconds(value: float) -> str:
    """10.0 -> "10", 2.5 -> "2.5" """
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def get_flag(
    overrides: Mapping[str, Any],
    key: str,
    defaults: Mapping[str, Any],
    override_key: Optional[str] = None
) -> List[str]:
    """
    Build one ``-key value`` pair.

    The override is looked up under ``override_key`` (or ``key``). Falsy
    overrides such as 0, "" or False do not replace the default; the
    lookup is a plain truthiness check and callers rely on it.
    """
    value = overrides.get(override_key or key)
    if not value:
        value = defaults[key]
    return [f"-{key}", str(value)]


def get_all(
    overrides: Mapping[str, Any],
    defaults: Mapping[str, Any],
    keys: Optional[Iterable[str]] = None,
    override_key: Optional[Callable[[str], str]] = None
) -> List[str]:
    """Flatten get_flag over ``keys`` (all default keys in order by default)"""
    args: List[str] = []
    for key in (keys if keys is not None else defaults.keys()):
        args.extend(get_flag(overrides, key, defaults, override_key(key) if override_key else None))
    return args


def crop_filter(intent: RecordingIntent, resolved: ResolvedInput) -> str:
    """Crop to the capture region, normalizing desktop scaling first if known"""
    bounds = intent.bounds
    vf = f"crop={bounds.width}:{bounds.height}:{bounds.x}:{bounds.y}"
    if resolved.resolution:
        vf = f"scale={resolved.resolution.w}:{resolved.resolution.h}:flags=lanczos,{vf}"
    return vf


def build_recording_args(
    intent: RecordingIntent,
    resolved: ResolvedInput,
    overrides: Optional[Mapping[str, Any]] = None
) -> List[str]:
    """
    Build the encoder command line for a recording.

    Args:
        intent: Recording intent
        resolved: Devices from resolve_input_devices()
        overrides: Flag overrides, defaults to intent.flags

    Returns:
        Argument list ending with the destination path
    """
    custom = overrides if overrides is not None else (intent.flags or {})
    video = {'f': resolved.video.f, 'i': resolved.video.i}

    args = [
        *get_all(custom, RECORDING_ARGS[FlagGroup.COMMON]),
        '-r', str(intent.fps),
        '-video_size', intent.bounds.size,
        *get_all(custom, video, ['f']),
        *get_all(custom, video, ['i']),
    ]

    # global options go first
    if intent.duration:
        args[:0] = ['-t', format_seconds(intent.duration)]

    if intent.audio:
        if resolved.audio:
            audio = {'f': resolved.audio.f, 'i': resolved.audio.i}
            args.extend(get_all(custom, audio, ['f'], lambda k: f"audio_{k}"))
            args.extend(get_all(custom, audio, ['i'], lambda k: f"audio_{k}"))
        args.extend(get_all(custom, RECORDING_ARGS[FlagGroup.AUDIO]))

    args.extend(get_all(custom, RECORDING_ARGS[FlagGroup.VIDEO]))
    args.extend(['-vf', crop_filter(intent, resolved)])
    args.append(str(intent.file))

    logger.debug(f"Recording args: {args}")
    return args
