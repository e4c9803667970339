import asyncio
import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

import config


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionState(str, Enum):
    EMPTY = "empty"
    FILLING = "filling"
    ACTIVE = "active"
    FINISHED = "finished"


class Participant(WireModel):
    id: str
    display_name: str
    score: int = Field(default=0, ge=0)
    has_turn: bool = False


class Question(WireModel):
    prompt: str
    correct_answer: str
    options: List[str]

    def public(self) -> dict:
        """Question as shown while it is in play (answer withheld)."""
        return {"prompt": self.prompt, "options": list(self.options)}


class Session(WireModel):
    id: str
    state: SessionState = SessionState.EMPTY
    participants: List[Participant] = Field(default_factory=list)
    remaining_rounds: int = Field(default=config.ROUND_QUOTA, ge=0)
    current_question: Optional[Question] = None
    last_activity: float = Field(default_factory=time.time)

    # Serializes every mutation of this session
    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    def touch(self):
        """Update last activity timestamp."""
        self.last_activity = time.time()

    def is_expired(self) -> bool:
        return time.time() - self.last_activity > config.SESSION_TTL_SECONDS

    def participant(self, client_id: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.id == client_id), None)

    def participant_ids(self) -> List[str]:
        return [p.id for p in self.participants]

    def turn_holder(self) -> Optional[Participant]:
        return next((p for p in self.participants if p.has_turn), None)

    def snapshot(self, reveal_answer: bool = False) -> dict:
        """Serialize for broadcast. The correct answer is only included when revealed."""
        question = None
        if self.current_question is not None:
            if reveal_answer:
                question = self.current_question.model_dump(by_alias=True)
            else:
                question = self.current_question.public()
        return {
            "id": self.id,
            "state": self.state.value,
            "participants": [p.model_dump(by_alias=True) for p in self.participants],
            "remainingRounds": self.remaining_rounds,
            "currentQuestion": question,
        }


def determine_winner(participants: List[Participant]) -> Optional[Participant]:
    """Return the participant with the strictly highest score, or None on a draw."""
    if not participants:
        return None
    ranked = sorted(participants, key=lambda p: p.score, reverse=True)
    if len(ranked) > 1 and ranked[0].score == ranked[1].score:
        return None
    return ranked[0]
