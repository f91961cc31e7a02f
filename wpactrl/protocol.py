"""Request/response framing for the wpa_supplicant control interface.

The daemon multiplexes unsolicited event messages onto the same socket
used for command replies. The only distinguishing signal is the first
character of the datagram:

    <3>CTRL-EVENT-SCAN-STARTED      unsolicited notification
    OK\\n                            reply to the last command

A command is answered by exactly one reply datagram. Any number of
notifications may arrive before it; they are handed to a caller-supplied
sink in arrival order, before the reply is returned.
"""

import logging
from typing import Callable, Optional

from wpactrl.endpoint import Endpoint, wait_readable
from wpactrl.errors import Utf8DecodeError, WpaIoError

logger = logging.getLogger(__name__)

SENTINEL = "<"
OK_REPLY = "OK\n"
ATTACH = "ATTACH"
DETACH = "DETACH"

# Upper bound on each readiness wait while a command is outstanding.
COMMAND_TIMEOUT = 10.0

NotificationSink = Callable[[str], None]


def _discard(message: str) -> None:
    pass


def is_notification(message: str) -> bool:
    """Return True for unsolicited event messages."""
    return message.startswith(SENTINEL)


def decode(data: bytes) -> str:
    """
    Decode a datagram payload.

    Raises:
        Utf8DecodeError: If the payload is not valid UTF-8
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8DecodeError(f"Failed to parse UTF8 to string: {e}") from e


async def request(
    endpoint: Endpoint,
    command: str,
    notify: Optional[NotificationSink] = None,
    timeout: float = COMMAND_TIMEOUT,
) -> str:
    """
    Send ``command`` and return the daemon's reply.

    Notifications received while waiting are passed to ``notify`` (or
    dropped when it is None) and never returned as the reply.

    Args:
        endpoint: Connected control socket
        command: Raw command text, eg ``"PING"``
        notify: Called with each notification, in arrival order
        timeout: Seconds to wait for readiness before each receive

    Returns:
        Reply text, eg ``"PONG\\n"``

    Raises:
        WpaIoError: Send or receive failed, or no reply arrived in time
        Utf8DecodeError: A datagram was not valid UTF-8
        WaitError: Waiting on the socket failed
    """
    notify = notify or _discard
    try:
        endpoint.send(command.encode("utf-8"))
    except OSError as e:
        raise WpaIoError(f"Failed to execute the specified command: {e}", e.errno) from e

    while True:
        ready = await wait_readable(endpoint, timeout)
        try:
            data = endpoint.recv()
        except InterruptedError:
            continue
        except BlockingIOError as e:
            if ready:
                # Spurious wake; poll again.
                continue
            raise WpaIoError(
                f"No reply to {command!r} within {timeout:g}s", e.errno
            ) from e
        except OSError as e:
            raise WpaIoError(f"Failed to execute the specified command: {e}", e.errno) from e

        message = decode(data)
        if is_notification(message):
            logger.debug(f"Notification while waiting for {command!r}: {message!r}")
            notify(message)
            continue
        return message


async def receive(endpoint: Endpoint) -> Optional[str]:
    """
    Receive one pending datagram without blocking.

    Returns:
        The decoded message, or None if nothing is available
    """
    if not await wait_readable(endpoint, 0):
        return None
    while True:
        try:
            data = endpoint.recv()
        except InterruptedError:
            continue
        except BlockingIOError:
            return None
        except OSError as e:
            raise WpaIoError(f"Failed to receive message: {e}", e.errno) from e
        return decode(data)
