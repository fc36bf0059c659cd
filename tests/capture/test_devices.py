#!/usr/bin/env python3
"""
Test suite for capture device discovery.
Tests platform dispatch, device listing parsing and monitor geometry.
"""

import pytest
import asyncio
from unittest.mock import Mock, patch, AsyncMock

# Add parent directory to path
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from screencast.capture.devices import (
    CapturePlatform,
    parse_avfoundation_devices,
    parse_desktop_bounds,
    resolve_input_devices,
    list_avfoundation_devices,
    get_monitor_regions,
    full_screen_region,
    DSHOW_SCREEN,
    DSHOW_SCREEN_WITH_AUDIO
)
from screencast.capture.errors import (
    DeviceNotFoundError,
    ProcessFailedError,
    UnsupportedPlatformError
)
from screencast.capture.models import CaptureRegion, RecordingIntent, Resolution
from screencast.capture import get_capture_platform


AVFOUNDATION_LISTING = """\
[AVFoundation indev @ 0x7fb2d8d04a40] AVFoundation video devices:
[AVFoundation indev @ 0x7fb2d8d04a40] [0] FaceTime HD Camera
[AVFoundation indev @ 0x7fb2d8d04a40] [1] Capture screen 0
[AVFoundation indev @ 0x7fb2d8d04a40] AVFoundation audio devices:
[AVFoundation indev @ 0x7fb2d8d04a40] [0] ZoomAudioDevice
[AVFoundation indev @ 0x7fb2d8d04a40] [1] MacBook Pro Microphone
: Input/output error
"""


def fake_spawn(outputs, errors=None):
    """
    Build a spawn_process replacement.

    Args:
        outputs: binary -> (stdout, stderr) bytes written before exit
        errors: binary -> exception raised by ``finish``
    """
    errors = errors or {}

    async def _spawn(binary, args, on_stdout=None, on_stderr=None):
        stdout, stderr = outputs.get(binary, (b"", b""))
        if on_stdout and stdout:
            on_stdout(stdout)
        if on_stderr and stderr:
            on_stderr(stderr)

        handle = Mock()
        handle.finish = asyncio.get_running_loop().create_future()
        if binary in errors:
            handle.finish.set_exception(errors[binary])
        else:
            handle.finish.set_result(None)
        return handle

    return AsyncMock(side_effect=_spawn)


@pytest.fixture
def intent():
    """Create test recording intent"""
    return RecordingIntent(
        bounds=CaptureRegion(x=0, y=0, width=800, height=600),
        fps=30,
        file="/tmp/out.mp4",
        ffmpeg_binary="ffmpeg"
    )


@pytest.fixture
def audio_intent(intent):
    """Recording intent with audio enabled"""
    return RecordingIntent(
        bounds=intent.bounds,
        fps=intent.fps,
        file=intent.file,
        ffmpeg_binary=intent.ffmpeg_binary,
        audio=True
    )


class TestCapturePlatform:
    """Test platform detection"""

    def test_known_platforms(self):
        """Test each supported platform maps to its input format"""
        assert CapturePlatform.detect("Darwin") == CapturePlatform.AVFOUNDATION
        assert CapturePlatform.detect("Windows") == CapturePlatform.DSHOW
        assert CapturePlatform.detect("Linux") == CapturePlatform.X11GRAB

    def test_unsupported_platform(self):
        """Test unknown platforms are rejected with their name"""
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            CapturePlatform.detect("SunOS")

        assert exc_info.value.platform == "SunOS"
        assert "SunOS" in str(exc_info.value)

    @patch('platform.system')
    def test_detect_host_platform(self, mock_platform):
        """Test the host platform is used by default"""
        mock_platform.return_value = "Linux"

        assert CapturePlatform.detect() == CapturePlatform.X11GRAB

    def test_get_capture_platform_unsupported(self):
        """Test the package helper returns None for unknown platforms"""
        assert get_capture_platform("Plan9") is None
        assert get_capture_platform("Windows") == CapturePlatform.DSHOW


class TestAVFoundationParsing:
    """Test device listing parsing"""

    def test_screen_only(self):
        """Test screen index without audio"""
        assert parse_avfoundation_devices(AVFOUNDATION_LISTING, audio=False) == "1:none"

    def test_screen_and_microphone(self):
        """Test screen and microphone indexes"""
        assert parse_avfoundation_devices(AVFOUNDATION_LISTING, audio=True) == "1:1"

    def test_capture_screen_entry(self):
        """Test a bare Capture Screen entry"""
        assert parse_avfoundation_devices("[1] Capture Screen", audio=False) == "1:none"

    def test_missing_screen(self):
        """Test listing without a screen device"""
        with pytest.raises(DeviceNotFoundError) as exc_info:
            parse_avfoundation_devices("[0] FaceTime HD Camera", audio=False)

        assert exc_info.value.kind == "screen"

    def test_microphone_not_required_without_audio(self):
        """Test a missing microphone is fine when audio is off"""
        text = "[2] Capture screen 0\n"

        assert parse_avfoundation_devices(text, audio=False) == "2:none"

    def test_missing_microphone(self):
        """Test listing without a microphone when audio is requested"""
        with pytest.raises(DeviceNotFoundError) as exc_info:
            parse_avfoundation_devices("[2] Capture screen 0\n", audio=True)

        assert exc_info.value.kind == "microphone"

    def test_desktop_bounds(self):
        """Test osascript bounds output"""
        assert parse_desktop_bounds("0, 0, 1440, 900\n") == Resolution(w=1440, h=900)

    def test_desktop_bounds_garbage(self):
        """Test unparseable bounds output"""
        with pytest.raises(DeviceNotFoundError):
            parse_desktop_bounds("execution error")


class TestResolveInputDevices:
    """Test per-platform device resolution"""

    @pytest.mark.asyncio
    async def test_windows_without_audio(self, intent):
        """Test DirectShow screen device"""
        with patch('screencast.capture.devices.spawn_process') as mock_spawn:
            resolved = await resolve_input_devices(intent, system="Windows")

            assert resolved.video.f == "dshow"
            assert resolved.video.i == DSHOW_SCREEN
            assert resolved.audio is None
            assert resolved.resolution is None
            assert not mock_spawn.called

    @pytest.mark.asyncio
    async def test_windows_with_audio(self, audio_intent):
        """Test DirectShow combined screen and microphone device"""
        resolved = await resolve_input_devices(audio_intent, system="Windows")

        assert resolved.video.i == DSHOW_SCREEN_WITH_AUDIO
        assert resolved.audio is None

    @pytest.mark.asyncio
    async def test_linux_without_audio(self, intent):
        """Test X11 display without audio"""
        resolved = await resolve_input_devices(intent, system="Linux")

        assert resolved.video.f == "x11grab"
        assert resolved.video.i == ":0.0"
        assert resolved.audio is None
        assert resolved.resolution is None

    @pytest.mark.asyncio
    async def test_linux_with_audio(self, audio_intent):
        """Test X11 display with PulseAudio source"""
        resolved = await resolve_input_devices(audio_intent, system="Linux")

        assert resolved.audio.f == "pulse"
        assert resolved.audio.i == "default"

    @pytest.mark.asyncio
    async def test_unsupported(self, intent):
        """Test resolution fails on unknown platforms"""
        with pytest.raises(UnsupportedPlatformError):
            await resolve_input_devices(intent, system="SunOS")

    @pytest.mark.asyncio
    async def test_macos(self, intent):
        """Test macOS bounds query and device listing"""
        mock_spawn = fake_spawn(
            outputs={
                "osascript": (b"0, 0, 1440, 900\n", b""),
                "ffmpeg": (b"", AVFOUNDATION_LISTING.encode()),
            },
            errors={"ffmpeg": ProcessFailedError("ffmpeg", 1)}
        )

        with patch('screencast.capture.devices.spawn_process', mock_spawn):
            resolved = await resolve_input_devices(intent, system="Darwin")

        assert resolved.video.f == "avfoundation"
        assert resolved.video.i == "1:none"
        assert resolved.resolution == Resolution(w=1440, h=900)
        assert resolved.audio is None

        listing_call = mock_spawn.call_args_list[1]
        assert listing_call.args[0] == "ffmpeg"
        assert listing_call.args[1] == ["-f", "avfoundation", "-list_devices", "true", "-i", ""]
        assert listing_call.kwargs["on_stderr"] is not None

    @pytest.mark.asyncio
    async def test_macos_with_audio(self, audio_intent):
        """Test macOS selector includes the microphone"""
        mock_spawn = fake_spawn(outputs={
            "osascript": (b"0, 0, 1440, 900\n", b""),
            "ffmpeg": (b"", AVFOUNDATION_LISTING.encode()),
        })

        with patch('screencast.capture.devices.spawn_process', mock_spawn):
            resolved = await resolve_input_devices(audio_intent, system="Darwin")

        assert resolved.video.i == "1:1"

    @pytest.mark.asyncio
    async def test_macos_missing_microphone(self, audio_intent):
        """Test a missing microphone fails resolution"""
        mock_spawn = fake_spawn(outputs={
            "osascript": (b"0, 0, 1440, 900\n", b""),
            "ffmpeg": (b"", b"[1] Capture screen 0\n"),
        })

        with patch('screencast.capture.devices.spawn_process', mock_spawn):
            with pytest.raises(DeviceNotFoundError) as exc_info:
                await resolve_input_devices(audio_intent, system="Darwin")

        assert exc_info.value.kind == "microphone"

    @pytest.mark.asyncio
    async def test_listing_exit_status_ignored(self):
        """Test the listing's non-zero exit does not fail discovery"""
        mock_spawn = fake_spawn(
            outputs={"ffmpeg": (b"", b"[1] Capture Screen\n")},
            errors={"ffmpeg": ProcessFailedError("ffmpeg", 1, "Input/output error")}
        )

        with patch('screencast.capture.devices.spawn_process', mock_spawn):
            text = await list_avfoundation_devices("ffmpeg")

        assert "[1] Capture Screen" in text


class TestMonitorRegions:
    """Test monitor geometry via mss"""

    @pytest.fixture
    def mock_monitors(self):
        """Create mock monitor data"""
        return [
            {"left": 0, "top": 0, "width": 3840, "height": 1080},  # All monitors
            {"left": 0, "top": 0, "width": 1920, "height": 1080},  # Primary
            {"left": 1920, "top": 0, "width": 1920, "height": 1080}  # Secondary
        ]

    def test_get_monitor_regions(self, mock_monitors):
        """Test regions exclude the combined entry"""
        with patch('mss.mss') as mock_mss:
            mock_sct = Mock()
            mock_sct.monitors = mock_monitors
            mock_mss.return_value.__enter__.return_value = mock_sct

            regions = get_monitor_regions()

            assert regions == [
                CaptureRegion(x=0, y=0, width=1920, height=1080),
                CaptureRegion(x=1920, y=0, width=1920, height=1080)
            ]

    def test_full_screen_region(self, mock_monitors):
        """Test selecting the secondary monitor"""
        with patch('mss.mss') as mock_mss:
            mock_sct = Mock()
            mock_sct.monitors = mock_monitors
            mock_mss.return_value.__enter__.return_value = mock_sct

            region = full_screen_region(2)

            assert region.x == 1920
            assert region.size == "1920x1080"

    def test_full_screen_region_fallback(self, mock_monitors):
        """Test invalid monitor index falls back to the primary monitor"""
        with patch('mss.mss') as mock_mss:
            mock_sct = Mock()
            mock_sct.monitors = mock_monitors
            mock_mss.return_value.__enter__.return_value = mock_sct

            region = full_screen_region(5)

            assert region == CaptureRegion(x=0, y=0, width=1920, height=1080)

    def test_full_screen_region_no_monitors(self):
        """Test no physical monitors"""
        with patch('mss.mss') as mock_mss:
            mock_sct = Mock()
            mock_sct.monitors = [{"width": 0, "height": 0}]  # Only "all monitors"
            mock_mss.return_value.__enter__.return_value = mock_sct

            with pytest.raises(DeviceNotFoundError):
                full_screen_region()
