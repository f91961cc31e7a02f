"""Blocking wrappers around the asyncio sessions.

Each wrapper owns a private event loop and runs every call to completion
on it. The loop moves to the returned wrapper on attach/detach, together
with the socket.

    from wpactrl.sync import Client

    wpa = Client.builder().open()
    assert wpa.request("PING") == "PONG\\n"
"""

import asyncio
from typing import Dict, List, Optional

from wpactrl import client as _client
from wpactrl import hostapd as _hostapd
from wpactrl.errors import SessionConsumedError


class _SyncSession:
    def __init__(self, inner: _client.WPAClient, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._inner = inner
        self._loop = loop or asyncio.new_event_loop()

    def run(self, coro):
        """
        Run a coroutine on this wrapper's event loop and return its result.

        Raises:
            SessionConsumedError: The wrapper is closed or was consumed
        """
        if self._loop is None:
            coro.close()
            raise SessionConsumedError(
                f"{type(self).__name__} is closed or was consumed by attach/detach"
            )
        return self._loop.run_until_complete(coro)

    def _take_loop(self) -> asyncio.AbstractEventLoop:
        loop = self._loop
        self._loop = None
        return loop

    @property
    def session(self) -> _client.WPAClient:
        """The wrapped asyncio session."""
        return self._inner

    @property
    def path(self):
        return self._inner.path

    @property
    def closed(self) -> bool:
        return self._inner.closed

    def request(self, cmd: str) -> str:
        """Send a command and block until its reply arrives."""
        return self.run(self._inner.request(cmd))

    def close(self) -> None:
        self._inner.close()
        if self._loop is not None:
            self._take_loop().close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Client(_SyncSession):
    """A blocking connection to wpa_supplicant / hostapd."""

    @staticmethod
    def builder() -> "ClientBuilder":
        return ClientBuilder()

    def attach(self) -> "ClientAttached":
        """Register as an event monitor; see :meth:`wpactrl.Client.attach`."""
        try:
            attached = self.run(self._inner.attach())
        except BaseException:
            self.close()
            raise
        return ClientAttached(attached, self._take_loop())


class ClientAttached(_SyncSession):
    """A blocking connection that receives status messages."""

    @property
    def pending(self):
        return self._inner.pending

    def recv(self) -> Optional[str]:
        """Return the next message, or None if none is available."""
        return self.run(self._inner.recv())

    def detach(self) -> Client:
        """Stop listening; see :meth:`wpactrl.ClientAttached.detach`."""
        try:
            detached = self.run(self._inner.detach())
        except BaseException:
            self.close()
            raise
        return Client(detached, self._take_loop())


class ClientBuilder(_client.ClientBuilder):
    """Same options as :class:`wpactrl.ClientBuilder`, opens a blocking client."""

    def open(self) -> Client:
        return Client(super().open())


class HostAPD:
    """Blocking variant of :class:`wpactrl.hostapd.HostAPD`."""

    def __init__(self, ctrl: _SyncSession):
        self.ctrl = ctrl

    def get_stations(self) -> Optional[List[Dict[str, str]]]:
        return self.ctrl.run(_hostapd.HostAPD(self.ctrl.session).get_stations())
