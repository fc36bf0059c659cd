#!/usr/bin/env python3
"""
Exceptions raised by the capture pipeline.
"""

from typing import Optional


class CaptureError(Exception):
    """Base class for screencast capture errors"""
    pass


class UnsupportedPlatformError(CaptureError):
    """Host platform has no known capture devices"""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform or 'unknown'}")


class DeviceNotFoundError(CaptureError):
    """Device discovery output did not contain a required device"""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Cannot find {kind} recording device")


class ProcessFailedError(CaptureError):
    """An encoder process exited with a non-zero status"""

    def __init__(self, binary: str, returncode: Optional[int], stderr_tail: str = ""):
        self.binary = binary
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        message = f"{binary} exited with code {returncode}"
        if stderr_tail:
            message = f"{message}: {stderr_tail}"
        super().__init__(message)
