"""
ffmpeg-backed screen capture for screencast.
Resolves capture devices on macOS, Windows and Linux, builds the encoder
invocation and supervises recording and GIF conversion.
"""

from .errors import (
    CaptureError,
    DeviceNotFoundError,
    ProcessFailedError,
    UnsupportedPlatformError
)
from .models import (
    CaptureRegion,
    RecordingIntent,
    ResolvedInput,
    RecordingSession,
    GifConversion
)
from .devices import CapturePlatform, resolve_input_devices, full_screen_region
from .arguments import build_recording_args
from .recorder import RecordingSupervisor, start_recording, generate_gif

__all__ = [
    'CaptureError',
    'DeviceNotFoundError',
    'ProcessFailedError',
    'UnsupportedPlatformError',
    'CaptureRegion',
    'RecordingIntent',
    'ResolvedInput',
    'RecordingSession',
    'GifConversion',
    'CapturePlatform',
    'resolve_input_devices',
    'full_screen_region',
    'build_recording_args',
    'RecordingSupervisor',
    'start_recording',
    'generate_gif',
    'get_capture_platform'
]


def get_capture_platform(system=None):
    """
    Get the capture back end for the current platform.

    Args:
        system: platform.system() style name or None for the host

    Returns:
        CapturePlatform, or None if the platform is unsupported
    """
    try:
        return CapturePlatform.detect(system)
    except UnsupportedPlatformError:
        return None
