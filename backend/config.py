"""Centralized configuration: every env var in one place."""
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# --- Quote API ---
QUOTE_API_URL = os.getenv("QUOTE_API_URL", "https://api.breakingbadquotes.xyz/v1/quotes")
QUOTE_FETCH_TIMEOUT = float(os.getenv("QUOTE_FETCH_TIMEOUT", "10"))
QUOTE_FETCH_RETRIES = int(os.getenv("QUOTE_FETCH_RETRIES", "1"))  # extra attempts after the first

# Every author the quote API can return; distractors are drawn from here
AUTHOR_POOL = (
    "Walter White",
    "Saul Goodman",
    "Jesse Pinkman",
    "Walter White Jr",
    "Skyler White",
    "Gustavo Fring",
    "Hank Schrader",
    "Mike Ehrmantraut",
    "The fly",
    "Badger",
)
NUM_OPTIONS = 4

# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "55184"))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "")

# --- WebSocket Security ---
WS_RATE_LIMIT_PER_SEC = 10  # max messages per second per client
MAX_WS_MESSAGE_SIZE = 4096  # bytes

# --- Storage Limits ---
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "500"))
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "1800"))
SESSION_CLEANUP_INTERVAL = 60  # seconds

# --- Game ---
ROUND_QUOTA = int(os.getenv("ROUND_QUOTA", "20"))
MAX_PARTICIPANTS = 2
POINTS_PER_CORRECT = 100
DISPLAY_NAMES = ("Player 1", "Player 2")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")  # empty = stdout only


def setup_logging():
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
