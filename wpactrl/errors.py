"""Exception hierarchy for the wpa_supplicant / hostapd control client.

Every error raised by this package derives from :class:`WpaError` so that
callers can catch a single base class. Low-level causes (``OSError``,
``UnicodeDecodeError``) are chained through ``__cause__``.
"""

from typing import Optional


class WpaError(Exception):
    """Base exception for all control interface operations."""


class WpaIoError(WpaError):
    """Raised on a socket-layer failure (bind, connect, send, receive)."""

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno


class Utf8DecodeError(WpaError):
    """Raised when a received datagram is not valid UTF-8."""


class WaitError(WpaError):
    """Raised when waiting on the control socket fails."""

    def __init__(self, message: str = "Unable to wait for response from wpasupplicant"):
        super().__init__(message)


class AttachError(WpaError):
    """Raised when the daemon rejects an ``ATTACH`` request."""

    def __init__(self, reply: str):
        super().__init__(f"Failed to attach to wpasupplicant (reply: {reply!r})")
        self.reply = reply


class DetachError(WpaError):
    """Raised when the daemon rejects a ``DETACH`` request."""

    def __init__(self, reply: str):
        super().__init__(f"Failed to detach from wpasupplicant (reply: {reply!r})")
        self.reply = reply


class SessionConsumedError(WpaError):
    """Raised when a client is used after it was closed or transitioned.

    ``attach()`` and ``detach()`` hand the underlying socket over to the
    returned object; the original object is unusable from then on.
    """


__all__ = [
    "WpaError",
    "WpaIoError",
    "Utf8DecodeError",
    "WaitError",
    "AttachError",
    "DetachError",
    "SessionConsumedError",
]
