"""
Exception types raised by the sockmatch core.
"""


class SockMatchError(Exception):
    """Base class for all sockmatch errors."""


class FrameError(SockMatchError, ValueError):
    """Raised when a frame buffer is malformed or a coordinate falls outside it."""


class SettingsError(SockMatchError, ValueError):
    """Raised when a Settings value cannot drive a scan."""
