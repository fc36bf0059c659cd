#!/usr/bin/env python3
"""
Capture device discovery.
Maps the host platform to the encoder's input devices and, on macOS,
the physical desktop resolution.
"""

import logging
import platform
import re
from enum import Enum
from typing import List, Optional

import mss

from .errors import DeviceNotFoundError, ProcessFailedError, UnsupportedPlatformError
from .models import CaptureRegion, DeviceDescriptor, RecordingIntent, Resolution, ResolvedInput
from .process import spawn_process

logger = logging.getLogger(__name__)

SCREEN_DEVICE_PATTERN = re.compile(r"\[(\d+)\]\s+Capture\s+Screen", re.IGNORECASE)
MICROPHONE_DEVICE_PATTERN = re.compile(r"\[(\d+)\]\s+Mac[^\n]*Microphone", re.IGNORECASE)

DESKTOP_BOUNDS_SCRIPT = 'tell application "Finder" to get bounds of window of desktop'

DSHOW_SCREEN = 'video="screen-capture-recorder"'
DSHOW_SCREEN_WITH_AUDIO = 'video="UScreenCapture":audio="Microphone"'
X11_DISPLAY = ":0.0"


class CapturePlatform(Enum):
    """Supported capture back ends, keyed by the encoder input format"""
    AVFOUNDATION = "avfoundation"  # macOS
    DSHOW = "dshow"                # Windows
    X11GRAB = "x11grab"            # Linux

    @classmethod
    def detect(cls, system: Optional[str] = None) -> "CapturePlatform":
        """
        Select the capture back end for a platform.

        Args:
            system: platform.system() style name, None for the host

        Raises:
            UnsupportedPlatformError: for any other platform
        """
        system = system if system is not None else platform.system()
        try:
            return _PLATFORMS[system]
        except KeyError:
            raise UnsupportedPlatformError(system)


_PLATFORMS = {
    "Darwin": CapturePlatform.AVFOUNDATION,
    "Windows": CapturePlatform.DSHOW,
    "Linux": CapturePlatform.X11GRAB,
}


def parse_avfoundation_devices(text: str, audio: bool) -> str:
    """
    Find the screen (and microphone) device indexes in a device listing.

    Args:
        text: stderr of ``ffmpeg -f avfoundation -list_devices true``
        audio: Whether a microphone is required

    Returns:
        Device selector ``"<screen>:<microphone or none>"``

    Raises:
        DeviceNotFoundError: if a required device is missing
    """
    screen = SCREEN_DEVICE_PATTERN.search(text)
    if not screen:
        raise DeviceNotFoundError("screen")

    if not audio:
        return f"{screen.group(1)}:none"

    microphone = MICROPHONE_DEVICE_PATTERN.search(text)
    if not microphone:
        raise DeviceNotFoundError("microphone")

    return f"{screen.group(1)}:{microphone.group(1)}"


def parse_desktop_bounds(text: str) -> Resolution:
    """Parse osascript's ``x, y, w, h`` desktop bounds"""
    parts = [p for p in re.split(r"\s*,\s*", text.strip()) if p]
    try:
        _, _, w, h = parts[-4:]
        return Resolution(w=int(w), h=int(h))
    except ValueError:
        raise DeviceNotFoundError("screen bounds")


async def query_desktop_bounds() -> Resolution:
    """Ask Finder for the desktop window bounds (macOS)"""
    chunks: List[bytes] = []
    handle = await spawn_process(
        "osascript", ["-e", DESKTOP_BOUNDS_SCRIPT],
        on_stdout=chunks.append
    )
    await handle.finish

    resolution = parse_desktop_bounds(b"".join(chunks).decode("utf-8", errors="replace"))
    logger.debug(f"Desktop resolution: {resolution.w}x{resolution.h}")
    return resolution


async def list_avfoundation_devices(ffmpeg_binary: str) -> str:
    """
    Run the encoder's device listing and return its diagnostic output.

    The listing always ends with a non-zero exit ("no input file"), which is
    ignored here.
    """
    chunks: List[bytes] = []
    handle = await spawn_process(
        ffmpeg_binary,
        ["-f", "avfoundation", "-list_devices", "true", "-i", ""],
        on_stderr=chunks.append
    )
    try:
        await handle.finish
    except ProcessFailedError as e:
        logger.debug(f"Device listing exited with code {e.returncode}")

    return b"".join(chunks).decode("utf-8", errors="replace")


async def resolve_input_devices(
    intent: RecordingIntent,
    system: Optional[str] = None
) -> ResolvedInput:
    """
    Resolve the encoder input devices for a recording.

    Args:
        intent: Recording intent (audio flag and encoder binary are used)
        system: platform.system() style name, None for the host

    Returns:
        ResolvedInput for the platform

    Raises:
        UnsupportedPlatformError: platform is not macOS, Windows or Linux
        DeviceNotFoundError: a required device is missing from the listing
    """
    capture_platform = CapturePlatform.detect(system)

    if capture_platform == CapturePlatform.AVFOUNDATION:
        resolution = await query_desktop_bounds()
        listing = await list_avfoundation_devices(intent.ffmpeg_binary)
        selector = parse_avfoundation_devices(listing, intent.audio)
        resolved = ResolvedInput(
            video=DeviceDescriptor(f=capture_platform.value, i=selector),
            resolution=resolution
        )

    elif capture_platform == CapturePlatform.DSHOW:
        resolved = ResolvedInput(
            video=DeviceDescriptor(
                f=capture_platform.value,
                i=DSHOW_SCREEN_WITH_AUDIO if intent.audio else DSHOW_SCREEN
            )
        )

    else:
        resolved = ResolvedInput(
            video=DeviceDescriptor(f=capture_platform.value, i=X11_DISPLAY),
            audio=DeviceDescriptor(f="pulse", i="default") if intent.audio else None
        )

    logger.info(f"Resolved {capture_platform.value} input: {resolved.video.i}")
    return resolved


def get_monitor_regions() -> List[CaptureRegion]:
    """
    Get the regions of all physical monitors.

    Returns:
        List of CaptureRegion, primary monitor first
    """
    with mss.mss() as sct:
        # mss convention: index 0 is the union of all monitors
        regions = [
            CaptureRegion(
                x=monitor.get("left", 0),
                y=monitor.get("top", 0),
                width=monitor.get("width", 0),
                height=monitor.get("height", 0)
            )
            for monitor in sct.monitors[1:]
        ]

    logger.info(f"Found {len(regions)} monitor(s)")
    return regions


def full_screen_region(monitor_index: int = 1) -> CaptureRegion:
    """
    Region covering one monitor.

    Args:
        monitor_index: 1-based monitor index (1 = primary)

    Returns:
        CaptureRegion of the monitor, the primary one for invalid indexes
    """
    regions = get_monitor_regions()
    if not regions:
        raise DeviceNotFoundError("monitor")

    if monitor_index < 1 or monitor_index > len(regions):
        logger.warning(f"Monitor {monitor_index} not found (only {len(regions)} available)")
        logger.warning("Falling back to monitor 1")
        monitor_index = 1

    return regions[monitor_index - 1]
