"""API endpoint tests using FastAPI TestClient."""
import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fastapi.testclient import TestClient
from main import app
from socket_manager import socket_manager


@pytest.fixture(autouse=True)
def clear_state():
    """Clear in-memory state before each test."""
    socket_manager.store.clear()
    socket_manager.registry.clear()
    yield
    socket_manager.store.clear()
    socket_manager.registry.clear()


client = TestClient(app)


class TestHealthEndpoints:
    def test_root(self):
        res = client.get("/")
        assert res.status_code == 200
        assert "running" in res.json()["message"].lower()

    def test_health(self):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "healthy", "games": 0, "connections": 0}

    def test_health_counts_games(self):
        socket_manager.store.create()
        socket_manager.store.create()
        assert client.get("/health").json()["games"] == 2

    def test_health_counts_connections(self):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()  # connect
            assert client.get("/health").json()["connections"] == 1


class TestOriginCheck:
    def test_unauthorized_origin_rejected(self):
        from starlette.websockets import WebSocketDisconnect

        saved = socket_manager.allowed_origins
        socket_manager.allowed_origins = ["http://good.example"]
        try:
            with pytest.raises(WebSocketDisconnect):
                with client.websocket_connect("/ws", headers={"origin": "http://evil.example"}) as ws:
                    ws.receive_json()
        finally:
            socket_manager.allowed_origins = saved

    def test_allowed_origin_accepted(self):
        saved = socket_manager.allowed_origins
        socket_manager.allowed_origins = ["http://good.example"]
        try:
            with client.websocket_connect("/ws", headers={"origin": "http://good.example"}) as ws:
                assert ws.receive_json()["type"] == "connect"
        finally:
            socket_manager.allowed_origins = saved
