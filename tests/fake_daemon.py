"""Threaded stand-in for a wpa_supplicant control socket.

Binds a real ``AF_UNIX`` datagram socket and answers commands from a
reply table. Notifications can be scripted before a reply (``preludes``),
after a reply to attached clients (``events``), or pushed at any time with
``notify``.
"""

import socket
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

Message = Union[str, bytes]


def _encode(message: Message) -> bytes:
    return message.encode("utf-8") if isinstance(message, str) else message


class FakeDaemon:
    def __init__(self, directory: Union[str, Path], name: str = "wlan0"):
        self.path = Path(directory) / name
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        self.sock.bind(str(self.path))
        self.sock.settimeout(0.05)

        self.replies: Dict[str, Optional[Message]] = {
            "PING": "PONG\n",
            "ATTACH": "OK\n",
            "DETACH": "OK\n",
            "SCAN": "OK\n",
        }
        self.preludes: Dict[str, List[Message]] = {}
        self.events: Dict[str, List[Message]] = {
            "SCAN": ["<3>CTRL-EVENT-SCAN-STARTED "],
        }
        self.received: List[str] = []
        self.attached = set()

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "FakeDaemon":
        self._thread.start()
        return self

    def stop(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()
        self.path.unlink(missing_ok=True)

    def notify(self, client_path: Union[str, Path], message: Message) -> None:
        """Send an unsolicited datagram to a client."""
        self.sock.sendto(_encode(message), str(client_path))

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                data, addr = self.sock.recvfrom(4096)
            except socket.timeout:
                continue
            except OSError:
                break

            command = data.decode("utf-8")
            with self._lock:
                self.received.append(command)
                if command == "ATTACH":
                    self.attached.add(addr)
                elif command == "DETACH":
                    self.attached.discard(addr)
                attached = addr in self.attached

            try:
                for message in self.preludes.get(command, []):
                    self.sock.sendto(_encode(message), addr)
                reply = self.replies.get(command, "UNKNOWN COMMAND\n")
                if reply is None:
                    continue
                self.sock.sendto(_encode(reply), addr)
                if attached:
                    for message in self.events.get(command, []):
                        self.sock.sendto(_encode(message), addr)
            except OSError:
                # Client went away.
                continue
