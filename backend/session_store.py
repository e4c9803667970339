from typing import Dict, List, Optional
import logging
import uuid

import config
from models import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory sessions keyed by id. Only the game engine mutates it."""

    def __init__(self):
        self.sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self.sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.sessions

    def create(self, round_quota: int = config.ROUND_QUOTA) -> Session:
        session_id = str(uuid.uuid4())
        session = Session(id=session_id, remaining_rounds=round_quota)
        self.sessions[session_id] = session
        logger.info("Game created: %s (%d rounds)", session_id, round_quota)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def delete(self, session_id: str) -> Optional[Session]:
        session = self.sessions.pop(session_id, None)
        if session:
            logger.info("Game %s deleted", session_id)
        return session

    def sessions_with(self, client_id: str) -> List[Session]:
        return [s for s in self.sessions.values() if s.participant(client_id)]

    def expired(self) -> List[Session]:
        """Sessions idle past the TTL. Removal is left to the caller."""
        return [s for s in self.sessions.values() if s.is_expired()]

    def clear(self):
        self.sessions.clear()
