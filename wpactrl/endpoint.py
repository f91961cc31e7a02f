"""Local socket endpoint and readiness polling.

An :class:`Endpoint` owns one bound, connected ``AF_UNIX`` datagram socket
together with the filesystem path it is bound to. The path is removed when
the endpoint is closed or garbage collected, whichever comes first.

The readiness helpers come in two flavours:

- :func:`poll_readable` - a single ``select()`` call, used for zero waits.
- :func:`wait_readable` - suspends the running event loop until the socket
  is readable or the timeout elapses.
"""

import asyncio
import logging
import os
import select
import socket
import weakref
from pathlib import Path
from typing import Union

from wpactrl.errors import WaitError

logger = logging.getLogger(__name__)

# Large enough for the biggest replies (eg BSS / STA dumps).
BUF_SIZE = 10_240


def _release(sock: socket.socket, path: Path) -> None:
    """Close the socket and unlink its bound path; never raises."""
    sock.close()
    try:
        os.unlink(path)
    except OSError as e:
        logger.warning(f"Unable to unlink {path}: {e}")


class Endpoint:
    """
    A bound and connected control socket.

    The endpoint only provides raw primitives: ``send`` and ``recv`` let
    ``OSError`` (including ``BlockingIOError`` and ``InterruptedError``)
    propagate so the caller can classify them.
    """

    def __init__(
        self,
        sock: socket.socket,
        path: Union[str, Path],
        buffer_size: int = BUF_SIZE,
    ):
        """
        Take ownership of an already bound socket.

        Args:
            sock: Bound ``AF_UNIX`` / ``SOCK_DGRAM`` socket
            path: Filesystem path the socket is bound to
            buffer_size: Maximum datagram size read by ``recv``
        """
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self._sock = sock
        self.path = Path(path)
        self.buffer_size = buffer_size
        # The finalizer must not reference self, only the resources.
        self._finalizer = weakref.finalize(self, _release, sock, self.path)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def fileno(self) -> int:
        return self._sock.fileno()

    def send(self, data: bytes) -> None:
        """Send one datagram to the connected daemon."""
        self._sock.send(data)

    def recv(self) -> bytes:
        """Receive one datagram (non-blocking)."""
        return self._sock.recv(self.buffer_size)

    def close(self) -> None:
        """
        Close the socket and remove the bound path.

        Safe to call multiple times.
        """
        if self._finalizer.alive:
            logger.debug(f"Closing control socket {self.path}")
        self._finalizer()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Endpoint {self.path} ({state})>"


def poll_readable(fd: int, timeout: float = 0.0) -> bool:
    """
    Check whether ``fd`` is readable, waiting at most ``timeout`` seconds.

    Raises:
        WaitError: If ``select()`` fails for a reason other than interruption.
    """
    while True:
        try:
            readable, _, _ = select.select([fd], [], [], max(timeout, 0.0))
        except InterruptedError:
            continue
        except (OSError, ValueError) as e:
            raise WaitError(f"Unable to wait for response from wpasupplicant: {e}") from e
        return bool(readable)


def _mark_ready(ready: "asyncio.Future[bool]") -> None:
    if not ready.done():
        ready.set_result(True)


async def wait_readable(endpoint: Endpoint, timeout: float) -> bool:
    """
    Wait until the endpoint is readable or ``timeout`` seconds elapse.

    A zero (or negative) timeout polls once without suspending.

    Returns:
        True if data is available, False if the timeout elapsed.

    Raises:
        WaitError: If the event loop cannot watch the socket.
    """
    fd = endpoint.fileno()
    if timeout <= 0:
        return poll_readable(fd, 0.0)

    loop = asyncio.get_running_loop()
    ready = loop.create_future()
    try:
        loop.add_reader(fd, _mark_ready, ready)
    except (OSError, ValueError, NotImplementedError) as e:
        raise WaitError(f"Unable to wait for response from wpasupplicant: {e}") from e

    try:
        return await asyncio.wait_for(ready, timeout)
    except asyncio.TimeoutError:
        return False
    finally:
        loop.remove_reader(fd)
