"""
screencast - ffmpeg-driven screen recording for Python.
Resolves capture devices per platform, builds encoder invocations and
converts finished recordings to palette-optimized GIFs.
"""

__version__ = "0.1.0"
