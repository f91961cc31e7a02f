"""Low-level client for the wpa_supplicant / hostapd control interface.

Connects to the daemon's UNIX datagram control socket, sends commands and
receives replies and (once attached) unsolicited event messages.

Note that connecting to wpa_supplicant usually requires elevated
permissions (eg running as root).

Example:
    client = wpactrl.Client.builder().open()
    print(await client.request("LIST_NETWORKS"))

Blocking wrappers live in :mod:`wpactrl.sync`.
"""

from wpactrl.client import (
    Client,
    ClientAttached,
    ClientBuilder,
    WPAClient,
    open,
)
from wpactrl.configs import CtrlConfig, get_ctrl_config, load_raw_config
from wpactrl.errors import (
    AttachError,
    DetachError,
    SessionConsumedError,
    Utf8DecodeError,
    WaitError,
    WpaError,
    WpaIoError,
)

__all__ = [
    "Client",
    "ClientAttached",
    "ClientBuilder",
    "WPAClient",
    "open",
    "CtrlConfig",
    "get_ctrl_config",
    "load_raw_config",
    "WpaError",
    "WpaIoError",
    "Utf8DecodeError",
    "WaitError",
    "AttachError",
    "DetachError",
    "SessionConsumedError",
]
