from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from typing import List, Optional
import asyncio
import json
import time
import logging

import config
from connection_registry import ConnectionRegistry, new_client_id
from errors import ClientMismatch, GameError
from game_engine import GameEngine
from protocol import connect_message, error_message, parse_command
from quote_provider import quote_provider
from session_store import SessionStore

logger = logging.getLogger(__name__)


class SocketManager:
    """Owns the per-connection receive loop and routes commands to the game engine."""

    def __init__(self, provider=quote_provider):
        self.registry = ConnectionRegistry()
        self.store = SessionStore()
        self.engine = GameEngine(self.store, self.registry, provider)
        self.allowed_origins: List[str] = []
        self._cleanup_task: Optional[asyncio.Task] = None

    def start_cleanup_loop(self):
        """Start the background expired-game cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_expired_sessions())

    def stop_cleanup_loop(self):
        if self._cleanup_task:
            self._cleanup_task.cancel()
            self._cleanup_task = None

    async def _cleanup_expired_sessions(self):
        """Periodically close idle games."""
        while True:
            try:
                await asyncio.sleep(config.SESSION_CLEANUP_INTERVAL)
                await self.engine.expire_idle_sessions()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in game cleanup loop")

    async def _send_error(self, client_id: str, code: str, message: str):
        await self.registry.send(client_id, error_message(code, message))

    async def connect(self, websocket: WebSocket):
        # Validate WebSocket origin
        origin = websocket.headers.get("origin", "")
        if self.allowed_origins and origin not in self.allowed_origins:
            logger.warning("Rejected WebSocket from unauthorized origin: %s", origin)
            await websocket.close(code=1008)
            return

        await websocket.accept()
        client_id = new_client_id()
        self.registry.register(client_id, websocket)
        msg_timestamps: List[float] = []

        try:
            await websocket.send_json(connect_message(client_id))
            while True:
                data = await websocket.receive_text()

                # Enforce message size limit
                if len(data) > config.MAX_WS_MESSAGE_SIZE:
                    await self._send_error(client_id, "message_too_large", "Message too large")
                    continue

                # Per-client rate limiting
                now = time.time()
                msg_timestamps[:] = [t for t in msg_timestamps if now - t < 1.0]
                if len(msg_timestamps) >= config.WS_RATE_LIMIT_PER_SEC:
                    await self._send_error(client_id, "rate_limited", "Too many messages")
                    continue
                msg_timestamps.append(now)

                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning("Malformed JSON from client %s: %s", client_id, data[:100])
                    await self._send_error(client_id, "invalid_json", "Invalid message format")
                    continue

                await self.handle_message(client_id, message)
        except WebSocketDisconnect:
            logger.info("Client %s disconnected", client_id)
        except Exception:
            logger.exception("WebSocket error for client %s", client_id)
        finally:
            self.registry.unregister(client_id)
            await self.engine.disconnect(client_id)

    async def handle_message(self, client_id: str, message):
        if not isinstance(message, dict):
            await self._send_error(client_id, "invalid_message", "Message must be a JSON object")
            return

        try:
            command = parse_command(message)
        except ValidationError as e:
            logger.warning("Invalid %r message from client %s: %d error(s)",
                           message.get("type"), client_id, e.error_count())
            await self._send_error(client_id, "invalid_message", "Invalid message format")
            return

        logger.debug("Message received from %s: %s", client_id, command.type)
        try:
            if command.client_id and command.client_id != client_id:
                raise ClientMismatch()

            if command.type == "create":
                await self.engine.create(client_id)
            elif command.type == "join":
                await self.engine.join(command.game_id, client_id)
            elif command.type == "start":
                await self.engine.start(command.game_id, client_id)
            elif command.type == "answer":
                await self.engine.answer(command.game_id, client_id, command.answer)
            elif command.type == "quit":
                await self.engine.quit(command.game_id, client_id)
        except GameError as e:
            logger.info("Rejected %s from client %s: %s", command.type, client_id, e.code)
            await self._send_error(client_id, e.code, e.message)
        except Exception:
            logger.exception("Error handling %s from client %s", command.type, client_id)
            await self._send_error(client_id, "internal_error", "Something went wrong")


socket_manager = SocketManager()
