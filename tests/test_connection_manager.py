import asyncio
import unittest
from datetime import datetime

from core.connection_manager import ConnectionManager


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(message)


class ConnectionManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.manager = ConnectionManager()

    def test_broadcast_is_scoped_to_lobby(self):
        in_lobby, elsewhere = FakeSocket(), FakeSocket()
        self.manager.subscribe("lobby-a", in_lobby)
        self.manager.subscribe("lobby-b", elsewhere)

        delivered = asyncio.run(self.manager.broadcast("lobby-a", "lobbyDissolved", {"lobby_id": "lobby-a"}))

        self.assertEqual(delivered, 1)
        self.assertEqual(in_lobby.sent, [{"event": "lobbyDissolved", "data": {"lobby_id": "lobby-a"}}])
        self.assertEqual(elsewhere.sent, [])

    def test_payload_is_json_encoded(self):
        socket = FakeSocket()
        self.manager.subscribe("lobby-a", socket)
        asyncio.run(self.manager.broadcast("lobby-a", "newDeal", {"created_at": datetime(2024, 5, 1, 12, 0)}))
        self.assertEqual(socket.sent[0]["data"]["created_at"], "2024-05-01T12:00:00")

    def test_failing_socket_is_dropped(self):
        good, bad = FakeSocket(), FakeSocket(fail=True)
        self.manager.subscribe("lobby-a", good)
        self.manager.subscribe("lobby-a", bad)
        self.manager.subscribe("lobby-b", bad)

        delivered = asyncio.run(self.manager.broadcast("lobby-a", "dealUpdated", {"id": 1}))

        self.assertEqual(delivered, 1)
        self.assertEqual(self.manager.subscriber_count("lobby-a"), 1)
        self.assertEqual(self.manager.subscriber_count("lobby-b"), 0)

    def test_publish_never_raises(self):
        self.manager.subscribe("lobby-a", FakeSocket(fail=True))
        asyncio.run(self.manager.publish("lobby-a", "newDeal", {"id": 1}))
        asyncio.run(self.manager.publish("nobody-here", "newDeal", {"id": 1}))
        self.assertEqual(self.manager.subscriber_count("lobby-a"), 0)

    def test_subscribe_is_idempotent_and_disconnect_clears(self):
        socket = FakeSocket()
        self.manager.subscribe("lobby-a", socket)
        self.manager.subscribe("lobby-a", socket)
        self.manager.subscribe("lobby-b", socket)
        self.assertEqual(self.manager.subscriber_count("lobby-a"), 1)

        self.manager.disconnect(socket)
        self.assertEqual(self.manager.subscriptions, {})


if __name__ == "__main__":
    unittest.main()
