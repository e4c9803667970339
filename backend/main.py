from fastapi import FastAPI, WebSocket
from contextlib import asynccontextmanager
import uvicorn
import logging

import config
config.setup_logging()

from socket_manager import socket_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Quote Duel server (%d rounds per game)", config.ROUND_QUOTA)
    socket_manager.start_cleanup_loop()
    yield
    socket_manager.stop_cleanup_loop()
    logger.info("Shutting down Quote Duel server")


app = FastAPI(title="Quote Duel Game Server", lifespan=lifespan)

if config.ALLOWED_ORIGINS.strip():
    socket_manager.allowed_origins = [o.strip() for o in config.ALLOWED_ORIGINS.split(",")]


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await socket_manager.connect(websocket)


@app.get("/")
async def root():
    return {"message": "Quote Duel server is running"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "games": len(socket_manager.store),
        "connections": len(socket_manager.registry),
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=True)
