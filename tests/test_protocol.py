"""
Tests for protocol.py - request/reply framing.

A socketpair stands in for the daemon: datagrams written to the peer
before a request are already queued when the request starts reading.
"""

import asyncio
import socket
import tempfile
import shutil
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from wpactrl import protocol
from wpactrl.endpoint import Endpoint
from wpactrl.errors import Utf8DecodeError, WaitError, WpaIoError


class TestRequest(unittest.IsolatedAsyncioTestCase):
    """Test cases for protocol.request and protocol.receive."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        path = Path(self.temp_dir) / "client.sock"
        path.touch()
        local, self.peer = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
        local.setblocking(False)
        self.endpoint = Endpoint(local, path)

    def tearDown(self):
        self.endpoint.close()
        self.peer.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_reply_is_returned_and_command_sent(self):
        self.peer.send(b"PONG\n")
        reply = await protocol.request(self.endpoint, "PING")
        self.assertEqual(reply, "PONG\n")
        self.assertEqual(self.peer.recv(1024), b"PING")

    async def test_notifications_routed_in_order_before_reply(self):
        for message in (b"<3>first", b"<2>second", b"<3>third", b"OK\n"):
            self.peer.send(message)

        seen = []
        reply = await protocol.request(self.endpoint, "SCAN", seen.append)

        self.assertEqual(reply, "OK\n")
        self.assertEqual(seen, ["<3>first", "<2>second", "<3>third"])

    async def test_datagrams_after_reply_are_left_on_socket(self):
        self.peer.send(b"OK\n")
        self.peer.send(b"<3>later")

        seen = []
        await protocol.request(self.endpoint, "SCAN", seen.append)

        self.assertEqual(seen, [])
        self.assertEqual(await protocol.receive(self.endpoint), "<3>later")

    async def test_notifications_dropped_without_sink(self):
        self.peer.send(b"<3>event")
        self.peer.send(b"FAIL\n")
        self.assertEqual(await protocol.request(self.endpoint, "BOGUS"), "FAIL\n")

    async def test_reply_not_starting_with_sentinel_is_reply_even_if_it_contains_one(self):
        self.peer.send(b"a<b\n")
        self.assertEqual(await protocol.request(self.endpoint, "STATUS"), "a<b\n")

    async def test_invalid_utf8_raises_decode_error(self):
        self.peer.send(b"\xff\xfe\n")
        with self.assertRaises(Utf8DecodeError):
            await protocol.request(self.endpoint, "PING")

    async def test_no_reply_within_timeout_raises_io_error(self):
        with self.assertRaises(WpaIoError) as context:
            await protocol.request(self.endpoint, "PING", timeout=0.05)
        self.assertIn("PING", str(context.exception))

    async def test_send_failure_raises_io_error(self):
        self.peer.close()
        with self.assertRaises(WpaIoError):
            await protocol.request(self.endpoint, "PING")

    async def test_wait_failure_raises_wait_error(self):
        loop = asyncio.get_running_loop()
        with patch.object(loop, "add_reader", side_effect=OSError("bad fd")):
            with self.assertRaises(WaitError):
                await protocol.request(self.endpoint, "PING")
        self.assertEqual(self.peer.recv(1024), b"PING")

    async def test_receive_returns_none_when_idle(self):
        self.assertIsNone(await protocol.receive(self.endpoint))

    async def test_receive_returns_non_notification_as_is(self):
        self.peer.send(b"stray\n")
        self.assertEqual(await protocol.receive(self.endpoint), "stray\n")


class TestRequestRetries(unittest.IsolatedAsyncioTestCase):
    """Interrupted and spurious receives are retried without re-sending."""

    async def test_interrupted_and_spurious_wake_are_retried(self):
        endpoint = MagicMock()
        endpoint.recv.side_effect = [
            BlockingIOError(),
            InterruptedError(),
            b"<3>event",
            b"OK\n",
        ]
        seen = []
        with patch("wpactrl.protocol.wait_readable", AsyncMock(return_value=True)):
            reply = await protocol.request(endpoint, "SCAN", seen.append)

        self.assertEqual(reply, "OK\n")
        self.assertEqual(seen, ["<3>event"])
        endpoint.send.assert_called_once_with(b"SCAN")

    async def test_other_receive_errors_are_fatal(self):
        endpoint = MagicMock()
        endpoint.recv.side_effect = ConnectionRefusedError()
        with patch("wpactrl.protocol.wait_readable", AsyncMock(return_value=True)):
            with self.assertRaises(WpaIoError):
                await protocol.request(endpoint, "PING")
        endpoint.send.assert_called_once_with(b"PING")


class TestClassification(unittest.TestCase):

    def test_is_notification(self):
        self.assertTrue(protocol.is_notification("<3>CTRL-EVENT-CONNECTED"))
        self.assertFalse(protocol.is_notification("OK\n"))
        self.assertFalse(protocol.is_notification(""))


if __name__ == "__main__":
    unittest.main()
