"""Unit tests for the connection registry and broadcast dispatcher."""
import sys
import os
import re

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from connection_registry import BroadcastDispatcher, ConnectionRegistry, new_client_id
from errors import UnknownClient
from models import Participant, Session


class MockWebSocket:
    def __init__(self):
        self.sent_messages: list[dict] = []

    async def send_json(self, data: dict):
        self.sent_messages.append(data)


class BrokenWebSocket:
    async def send_json(self, data: dict):
        raise RuntimeError("socket closed")


def session_with(*client_ids):
    session = Session(id="game-1")
    session.participants = [
        Participant(id=cid, display_name=f"Player {i + 1}", has_turn=(i == 0))
        for i, cid in enumerate(client_ids)
    ]
    return session


class TestClientIds:
    def test_uuid4_format(self):
        assert re.fullmatch(r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}", new_client_id())

    def test_unique(self):
        assert len({new_client_id() for _ in range(1000)}) == 1000


class TestRegistry:
    @pytest.mark.asyncio
    async def test_send_to_registered(self):
        registry = ConnectionRegistry()
        ws = MockWebSocket()
        registry.register("c1", ws)
        await registry.send("c1", {"type": "connect", "clientId": "c1"})
        assert ws.sent_messages == [{"type": "connect", "clientId": "c1"}]

    @pytest.mark.asyncio
    async def test_send_to_unknown_raises(self):
        registry = ConnectionRegistry()
        with pytest.raises(UnknownClient):
            await registry.send("ghost", {"type": "update"})

    @pytest.mark.asyncio
    async def test_unregister_is_idempotent(self):
        registry = ConnectionRegistry()
        registry.register("c1", MockWebSocket())
        registry.unregister("c1")
        registry.unregister("c1")
        assert "c1" not in registry
        assert len(registry) == 0
        with pytest.raises(UnknownClient):
            await registry.send("c1", {"type": "update"})


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_delivers_to_every_participant(self):
        registry = ConnectionRegistry()
        ws1, ws2, outsider = MockWebSocket(), MockWebSocket(), MockWebSocket()
        registry.register("a", ws1)
        registry.register("b", ws2)
        registry.register("c", outsider)

        delivered = await BroadcastDispatcher(registry).broadcast(session_with("a", "b"), {"type": "update"})

        assert delivered == 2
        assert ws1.sent_messages == [{"type": "update"}]
        assert ws2.sent_messages == [{"type": "update"}]
        assert outsider.sent_messages == []

    @pytest.mark.asyncio
    async def test_failed_channel_does_not_stop_others(self):
        registry = ConnectionRegistry()
        ws2 = MockWebSocket()
        registry.register("a", BrokenWebSocket())
        registry.register("b", ws2)

        delivered = await BroadcastDispatcher(registry).broadcast(session_with("a", "b"), {"type": "update"})

        assert delivered == 1
        assert ws2.sent_messages == [{"type": "update"}]

    @pytest.mark.asyncio
    async def test_disconnected_participant_skipped(self):
        registry = ConnectionRegistry()
        ws2 = MockWebSocket()
        registry.register("b", ws2)

        delivered = await BroadcastDispatcher(registry).broadcast(session_with("a", "b"), {"type": "quit"})

        assert delivered == 1
        assert ws2.sent_messages == [{"type": "quit"}]

    @pytest.mark.asyncio
    async def test_excluded_client_not_sent_to(self):
        registry = ConnectionRegistry()
        ws1, ws2 = MockWebSocket(), MockWebSocket()
        registry.register("a", ws1)
        registry.register("b", ws2)

        delivered = await BroadcastDispatcher(registry).broadcast(
            session_with("a", "b"), {"type": "quit"}, exclude="b")

        assert delivered == 1
        assert ws1.sent_messages == [{"type": "quit"}]
        assert ws2.sent_messages == []
