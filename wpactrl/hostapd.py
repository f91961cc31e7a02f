"""Helpers for hostapd station (STA) replies.

hostapd answers ``STA-FIRST`` / ``STA-NEXT <addr>`` with the station's MAC
address on the first line followed by ``key=value`` MIB variables:

    02:00:00:00:01:00
    flags=[AUTH][ASSOC][AUTHORIZED]
    dot1xAuthSessionId=8A2B1C...
    ...

These functions only consume raw reply strings; the control socket itself
is handled by :mod:`wpactrl.client`.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from wpactrl.client import WPAClient

logger = logging.getLogger(__name__)

MAC_ADDRESS = re.compile(r"[0-9a-fA-F]{2}(:[0-9a-fA-F]{2}){5}")


class HostAPDError(Exception):
    """Base exception for hostapd record parsing."""


class MissingKeyError(HostAPDError, KeyError):
    """Raised when a required MIB variable is absent."""

    def __init__(self, key: str):
        super().__init__(f"failed to find key: {key}")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class ParseError(HostAPDError, ValueError):
    """Raised when a MIB variable has an unexpected format."""


def key_value(text: str) -> Dict[str, str]:
    """Split ``key=value`` lines into a dict; other lines are ignored."""
    values = {}
    for line in text.split("\n"):
        parts = line.split("=")
        if len(parts) > 1:
            values[parts[0]] = parts[1]
    return values


def _is_station(reply: str) -> bool:
    # Empty, "FAIL" and "UNKNOWN COMMAND" replies all end the station list.
    return MAC_ADDRESS.fullmatch(reply.split("\n")[0]) is not None


def _fetch(values: Mapping[str, str], key: str) -> str:
    try:
        return values[key]
    except KeyError:
        raise MissingKeyError(key) from None


def _int(values: Mapping[str, str], key: str) -> int:
    value = _fetch(values, key)
    try:
        return int(value)
    except ValueError as e:
        raise ParseError(f"{key}: {e}") from e


def _bool(values: Mapping[str, str], key: str) -> bool:
    value = _fetch(values, key).strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ParseError(f"{key}: provided string was not `true` or `false`")


@dataclass
class PAE:
    """802.1X port access entity."""
    port_number: int
    port_protocol_version: int
    port_capabilities: int
    port_initialize: int
    port_reauthenticate: bool

    @classmethod
    def from_mib_vars(cls, values: Mapping[str, str]) -> "PAE":
        return cls(
            port_number=_int(values, "dot1xPaePortNumber"),
            port_protocol_version=_int(values, "dot1xPaePortProtocolVersion"),
            port_capabilities=_int(values, "dot1xPaePortCapabilities"),
            port_initialize=_int(values, "dot1xPaePortInitialize"),
            port_reauthenticate=_bool(values, "dot1xPaePortReauthenticate"),
        )


@dataclass
class AuthSession:
    """A device's authentication session on the network."""
    id: str
    auth_method: int
    # Seconds the session has been running.
    time: int
    termination_cause: int
    # Identity the user entered when logging in.
    username: str

    @classmethod
    def from_mib_vars(cls, values: Mapping[str, str]) -> "AuthSession":
        return cls(
            id=_fetch(values, "dot1xAuthSessionId"),
            username=_fetch(values, "dot1xAuthSessionUserName"),
            auth_method=_int(values, "dot1xAuthSessionAuthenticMethod"),
            time=_int(values, "dot1xAuthSessionTime"),
            termination_cause=_int(values, "dot1xAuthSessionTerminateCause"),
        )


@dataclass
class Eapol:
    frames_rx: int
    frames_tx: int
    start_frames_rx: int
    logoff_frames_rx: int
    resp_id_frames_rx: int
    resp_frames_rx: int
    req_id_frames_tx: int
    req_frames_tx: int

    @classmethod
    def from_mib_vars(cls, values: Mapping[str, str]) -> "Eapol":
        return cls(
            frames_rx=_int(values, "dot1xAuthEapolFramesRx"),
            frames_tx=_int(values, "dot1xAuthEapolFramesTx"),
            start_frames_rx=_int(values, "dot1xAuthEapolStartFramesRx"),
            logoff_frames_rx=_int(values, "dot1xAuthEapolLogoffFramesRx"),
            resp_id_frames_rx=_int(values, "dot1xAuthEapolRespIdFramesRx"),
            resp_frames_rx=_int(values, "dot1xAuthEapolRespFramesRx"),
            req_id_frames_tx=_int(values, "dot1xAuthEapolReqIdFramesTx"),
            req_frames_tx=_int(values, "dot1xAuthEapolReqFramesTx"),
        )


@dataclass
class Dot11RSNAStats:
    # MAC address
    sta_addr: str
    version: int
    selected_pairwise_cipher: str
    tkip_local_mic_failures: int
    tkip_remote_mic_failures: int

    @classmethod
    def from_mib_vars(cls, values: Mapping[str, str]) -> "Dot11RSNAStats":
        return cls(
            sta_addr=_fetch(values, "dot11RSNAStatsSTAAddress"),
            version=_int(values, "dot11RSNAStatsVersion"),
            selected_pairwise_cipher=_fetch(values, "dot11RSNAStatsSelectedPairwiseCipher"),
            tkip_local_mic_failures=_int(values, "dot11RSNAStatsTKIPLocalMICFailures"),
            tkip_remote_mic_failures=_int(values, "dot11RSNAStatsTKIPRemoteMICFailures"),
        )


class HostAPD:
    """Station queries against a hostapd control socket."""

    def __init__(self, ctrl: WPAClient):
        self.ctrl = ctrl

    async def get_stations(self) -> Optional[List[Dict[str, str]]]:
        """
        Walk the station list with STA-FIRST / STA-NEXT.

        The walk stops at the first reply that does not start with a MAC
        address.

        Returns:
            One key/value dict per station, or None if there are none
        """
        station = await self.ctrl.request("STA-FIRST")
        stations = []
        while _is_station(station):
            addr = station.split("\n")[0]
            stations.append(key_value(station))
            station = await self.ctrl.request(f"STA-NEXT {addr}")
        if not stations:
            logger.debug(f"No stations listed (last reply {station!r})")
            return None
        return stations
