"""Control interface sessions for wpa_supplicant / hostapd.

A session starts detached (:class:`Client`). ``attach()`` registers it as
an event monitor and returns a :class:`ClientAttached`, which buffers
event messages received while commands run; ``detach()`` goes back.

Both transitions hand the socket over to the returned object. The
original object is consumed and raises :class:`SessionConsumedError` if
used again.

Usage:
    client = ClientBuilder().ctrl_path("/var/run/wpa_supplicant/wlan0").open()
    print(await client.request("PING"))      # "PONG\\n"
    attached = await client.attach()
    event = await attached.recv()            # None or "<3>CTRL-EVENT-..."
"""

import errno
import itertools
import logging
import os
import socket
import threading
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Tuple, Union

from wpactrl import protocol
from wpactrl.configs import CtrlConfig, get_ctrl_config
from wpactrl.endpoint import BUF_SIZE, Endpoint
from wpactrl.errors import (
    AttachError,
    DetachError,
    SessionConsumedError,
    WpaIoError,
)

logger = logging.getLogger(__name__)

PATH_DEFAULT_CLIENT = "/tmp"
PATH_DEFAULT_SERVER = "/var/run/wpa_supplicant/wlan0"

# Counter to avoid using the same file when creating multiple clients.
_COUNTER = itertools.count()
_COUNTER_LOCK = threading.Lock()


def _next_counter() -> int:
    with _COUNTER_LOCK:
        return next(_COUNTER)


def _remove_stale(path: Path) -> None:
    os.remove(path)


class ClientBuilder:
    """
    Builder object used to construct a :class:`Client` session.

    All setters return the builder so calls can be chained.
    """

    def __init__(self) -> None:
        self._cli_path: Optional[Path] = None
        self._ctrl_path: Optional[Path] = None
        self._buffer_size: Optional[int] = None

    @classmethod
    def from_config(cls, config: CtrlConfig) -> "ClientBuilder":
        """Create a builder preloaded from a :class:`CtrlConfig`."""
        return (
            cls()
            .cli_path(config.cli_path)
            .ctrl_path(config.ctrl_path)
            .buffer_size(config.buffer_size)
        )

    def cli_path(self, path: Optional[Union[str, Path]]) -> "ClientBuilder":
        """Directory for this application's UNIX domain socket (None = /tmp)."""
        self._cli_path = Path(path) if path is not None else None
        return self

    def ctrl_path(self, path: Optional[Union[str, Path]]) -> "ClientBuilder":
        """Path of the wpa_supplicant / hostapd control socket."""
        self._ctrl_path = Path(path) if path is not None else None
        return self

    def buffer_size(self, size: Optional[int]) -> "ClientBuilder":
        """
        Maximum datagram size to read (None = 10 KiB).

        Raises:
            ValueError: If size is zero or negative
        """
        if size is not None and size <= 0:
            raise ValueError(f"buffer_size must be positive, got {size}")
        self._buffer_size = size
        return self

    def open(self) -> "Client":
        """
        Open a control interface to wpa_supplicant / hostapd.

        The local socket is bound to ``<cli_path>/wpa_ctrl_<pid>-<n>``. If
        that file already exists it is removed and the bind retried once.

        Raises:
            WpaIoError: Bind or connect failed
        """
        counter = _next_counter()
        bind_dir = self._cli_path or Path(PATH_DEFAULT_CLIENT)
        bind_path = bind_dir / f"wpa_ctrl_{os.getpid()}-{counter}"
        ctrl_path = self._ctrl_path or Path(PATH_DEFAULT_SERVER)

        tries = 0
        while True:
            tries += 1
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
            try:
                sock.bind(str(bind_path))
            except OSError as e:
                sock.close()
                if tries < 2 and e.errno == errno.EADDRINUSE:
                    logger.debug(f"Removing stale control socket {bind_path}")
                    try:
                        _remove_stale(bind_path)
                    except OSError as err:
                        raise WpaIoError(
                            f"Unable to remove stale socket {bind_path}: {err}", err.errno
                        ) from err
                    continue
                raise WpaIoError(f"Unable to bind {bind_path}: {e}", e.errno) from e
            break

        buffer_size = BUF_SIZE if self._buffer_size is None else self._buffer_size
        endpoint = Endpoint(sock, bind_path, buffer_size)
        try:
            sock.connect(str(ctrl_path))
            sock.setblocking(False)
        except OSError as e:
            endpoint.close()
            raise WpaIoError(f"Unable to connect to {ctrl_path}: {e}", e.errno) from e

        logger.debug(f"Opened control socket {bind_path} -> {ctrl_path}")
        return Client(endpoint)


def open(config: Optional[CtrlConfig] = None) -> "Client":
    """Open a detached session using the user's configuration."""
    config = config if config is not None else get_ctrl_config()
    return ClientBuilder.from_config(config).open()


class WPAClient(ABC):
    """Interface shared by detached and attached sessions."""

    def __init__(self, endpoint: Endpoint):
        self._endpoint: Optional[Endpoint] = endpoint

    @abstractmethod
    async def request(self, cmd: str) -> str:
        """
        Send a command to wpa_supplicant / hostapd.

        Commands are generally identical to those used in ``wpa_cli``,
        except all uppercase (eg ``LIST_NETWORKS``, ``SCAN``).
        """

    @property
    def endpoint(self) -> Endpoint:
        if self._endpoint is None:
            raise SessionConsumedError(
                f"{type(self).__name__} is closed or was consumed by attach/detach"
            )
        return self._endpoint

    @property
    def path(self) -> Path:
        """Filesystem path of the local socket."""
        return self.endpoint.path

    @property
    def closed(self) -> bool:
        return self._endpoint is None

    def _take_endpoint(self) -> Endpoint:
        endpoint = self.endpoint
        self._endpoint = None
        return endpoint

    def close(self) -> None:
        """Close the socket and remove its file. Safe to call repeatedly."""
        if self._endpoint is not None:
            self._endpoint.close()
            self._endpoint = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class Client(WPAClient):
    """A connection to wpa_supplicant / hostapd."""

    @staticmethod
    def builder() -> ClientBuilder:
        return ClientBuilder()

    async def request(self, cmd: str) -> str:
        return await protocol.request(self.endpoint, cmd)

    async def attach(self) -> "ClientAttached":
        """
        Register as an event monitor for control interface messages.

        This session is consumed whatever the outcome; on failure the
        socket is closed and a new session must be opened.

        Raises:
            AttachError: The daemon did not answer "OK"
        """
        endpoint = self._take_endpoint()
        try:
            reply = await protocol.request(endpoint, protocol.ATTACH)
        except BaseException:
            endpoint.close()
            raise
        if reply != protocol.OK_REPLY:
            endpoint.close()
            raise AttachError(reply)
        logger.debug(f"Attached {endpoint.path}")
        return ClientAttached(endpoint)


class ClientAttached(WPAClient):
    """A connection to wpa_supplicant / hostapd that receives status messages."""

    def __init__(self, endpoint: Endpoint):
        super().__init__(endpoint)
        self._pending: Deque[str] = deque()

    @property
    def pending(self) -> Tuple[str, ...]:
        """Buffered messages not yet returned by recv(), oldest first."""
        return tuple(self._pending)

    async def request(self, cmd: str) -> str:
        """
        Send a command; messages received meanwhile are buffered for recv().
        """
        messages: List[str] = []
        try:
            return await protocol.request(self.endpoint, cmd, messages.append)
        finally:
            self._pending.extend(messages)

    async def recv(self) -> Optional[str]:
        """
        Receive the next control interface message.

        Multiple messages can be pending; call repeatedly until it returns
        None to get all of them.
        """
        if self._pending:
            return self._pending.popleft()
        return await protocol.receive(self.endpoint)

    async def detach(self) -> Client:
        """
        Stop listening for and discard any remaining messages.

        This session is consumed whatever the outcome.

        Raises:
            DetachError: The daemon did not answer "OK"
        """
        endpoint = self._take_endpoint()
        self._pending.clear()
        try:
            reply = await protocol.request(endpoint, protocol.DETACH)
        except BaseException:
            endpoint.close()
            raise
        if reply != protocol.OK_REPLY:
            endpoint.close()
            raise DetachError(reply)
        logger.debug(f"Detached {endpoint.path}")
        return Client(endpoint)
