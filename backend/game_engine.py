"""Session lifecycle and turn engine.

Every command runs under the session's lock, so joins racing for the last
slot, or an answer arriving while the next quote is being fetched, are
applied one at a time against the stored session.
"""
from contextlib import asynccontextmanager
from typing import List, Optional
import asyncio
import logging

import config
from connection_registry import BroadcastDispatcher, ConnectionRegistry
from errors import (
    AlreadyJoined,
    AlreadyStarted,
    GameError,
    NoQuestion,
    NotAParticipant,
    NotYourTurn,
    ProviderUnavailable,
    SessionExpired,
    SessionFinished,
    SessionFull,
    SessionNotReady,
    TooManySessions,
    UnknownSession,
)
from models import Participant, Question, Session, SessionState, determine_winner
from protocol import error_message, game_message, quit_message
from session_store import SessionStore

logger = logging.getLogger(__name__)


class GameEngine:
    def __init__(self, store: SessionStore, registry: ConnectionRegistry, quote_provider,
                 round_quota: int = config.ROUND_QUOTA,
                 fetch_timeout: float = config.QUOTE_FETCH_TIMEOUT,
                 fetch_retries: int = config.QUOTE_FETCH_RETRIES):
        if round_quota < 1:
            raise ValueError("round_quota must be at least 1")
        self.store = store
        self.registry = registry
        self.dispatcher = BroadcastDispatcher(registry)
        self.quote_provider = quote_provider
        self.round_quota = round_quota
        self.fetch_timeout = fetch_timeout
        self.fetch_retries = fetch_retries

    @asynccontextmanager
    async def _locked(self, session_id: str):
        session = self.store.get(session_id)
        if session is None:
            raise UnknownSession()
        async with session.lock:
            # May have been destroyed while we waited
            if self.store.get(session_id) is not session:
                raise UnknownSession()
            session.touch()
            yield session

    @staticmethod
    def _require_participant(session: Session, client_id: str) -> Participant:
        participant = session.participant(client_id)
        if participant is None:
            raise NotAParticipant()
        return participant

    @staticmethod
    def _require_active(session: Session):
        if session.state == SessionState.FINISHED:
            raise SessionFinished()
        if session.state != SessionState.ACTIVE:
            raise SessionNotReady()

    @staticmethod
    def _refresh_state(session: Session):
        """Derive the fill state from the participant count."""
        if session.state == SessionState.FINISHED:
            return
        count = len(session.participants)
        if count == 0:
            session.state = SessionState.EMPTY
        elif count < config.MAX_PARTICIPANTS:
            session.state = SessionState.FILLING
        else:
            session.state = SessionState.ACTIVE
            # Refilled after a quit by the turn holder
            if session.turn_holder() is None:
                session.participants[0].has_turn = True

    @staticmethod
    def _renumber(session: Session):
        """Display names follow seat order."""
        for name, p in zip(config.DISPLAY_NAMES, session.participants):
            p.display_name = name

    def _reset_for_rematch(self, session: Session):
        """Put a finished game back to round one with the same two players."""
        if len(session.participants) < config.MAX_PARTICIPANTS:
            raise SessionNotReady()
        session.remaining_rounds = self.round_quota
        session.current_question = None
        for i, p in enumerate(session.participants):
            p.score = 0
            p.has_turn = i == 0
        session.state = SessionState.ACTIVE

    async def create(self, client_id: str) -> Session:
        if len(self.store) >= config.MAX_SESSIONS:
            raise TooManySessions()
        session = self.store.create(self.round_quota)
        await self.registry.send(client_id, game_message("create", session))
        return session

    async def join(self, session_id: str, client_id: str) -> Session:
        async with self._locked(session_id) as session:
            if session.state == SessionState.FINISHED:
                raise SessionFinished()
            if session.participant(client_id):
                raise AlreadyJoined()
            if len(session.participants) >= config.MAX_PARTICIPANTS:
                logger.info("Client %s rejected from full game %s", client_id, session.id)
                raise SessionFull()

            display_name = config.DISPLAY_NAMES[len(session.participants)]
            session.participants.append(Participant(
                id=client_id,
                display_name=display_name,
                has_turn=not session.participants,
            ))
            self._refresh_state(session)
            logger.info("Client %s joined game %s as '%s'", client_id, session.id, display_name)

            await self.dispatcher.broadcast(session, game_message("join", session))
            return session

    async def start(self, session_id: str, client_id: str) -> Session:
        async with self._locked(session_id) as session:
            self._require_participant(session, client_id)
            if session.state == SessionState.FINISHED:
                self._reset_for_rematch(session)
                logger.info("Game %s rematch started by %s", session.id, client_id)
            else:
                self._require_active(session)
                if session.current_question is not None:
                    raise AlreadyStarted()
                logger.info("Game %s started by %s", session.id, client_id)

            await self._issue_question(session)
            return session

    async def answer(self, session_id: str, client_id: str, submitted: Optional[str]) -> Session:
        async with self._locked(session_id) as session:
            participant = self._require_participant(session, client_id)
            self._require_active(session)
            question = session.current_question
            if question is None:
                raise NoQuestion()
            if not participant.has_turn:
                raise NotYourTurn()

            correct = submitted is not None and submitted.strip() == question.correct_answer
            points = config.POINTS_PER_CORRECT if correct else 0
            participant.score += points

            for p in session.participants:
                p.has_turn = not p.has_turn

            last_answer = {
                "clientId": client_id,
                "answer": submitted,
                "correct": correct,
                "correctAnswer": question.correct_answer,
                "points": points,
            }

            if session.remaining_rounds == 0:
                session.state = SessionState.FINISHED
                winner = determine_winner(session.participants)
                result = {"winner": winner.id if winner else None, "draw": winner is None}
                logger.info("Game %s finished: %s", session.id,
                            f"won by {winner.display_name}" if winner else "draw")
                await self.dispatcher.broadcast(session, game_message(
                    "finish", session, reveal_answer=True, lastAnswer=last_answer, result=result,
                ))
                return session

            session.current_question = None
            await self._issue_question(session, lastAnswer=last_answer)
            return session

    async def quit(self, session_id: str, client_id: str,
                   notify_departing: bool = True) -> Optional[Session]:
        """Leave a game. Returns the session, or None if it was destroyed."""
        async with self._locked(session_id) as session:
            index = next((i for i, p in enumerate(session.participants) if p.id == client_id), None)
            if index is None:
                raise NotAParticipant()

            await self.dispatcher.broadcast(session, quit_message(client_id),
                                            exclude=None if notify_departing else client_id)

            if len(session.participants) == 1:
                self.store.delete(session.id)
                logger.info("Last player %s left, game %s destroyed", client_id, session.id)
                return None

            session.participants.pop(index)
            self._renumber(session)
            self._refresh_state(session)
            logger.info("Client %s left game %s", client_id, session.id)
            return session

    async def disconnect(self, client_id: str):
        """A dropped connection quits every game the client is in."""
        for session in self.store.sessions_with(client_id):
            try:
                await self.quit(session.id, client_id, notify_departing=False)
            except GameError as e:
                logger.debug("Game %s already left by %s: %s", session.id, client_id, e.code)

    async def expire_idle_sessions(self) -> List[str]:
        """Close games idle past the TTL, telling whoever is still seated."""
        closed = []
        for session in self.store.expired():
            async with session.lock:
                # A command may have touched it while we waited
                if self.store.get(session.id) is not session or not session.is_expired():
                    continue
                e = SessionExpired()
                message = error_message(e.code, e.message)
                message["gameId"] = session.id
                await self.dispatcher.broadcast(session, message)
                self.store.delete(session.id)
                closed.append(session.id)
                logger.info("Cleaned up expired game %s", session.id)
        return closed

    async def _fetch_question(self) -> Question:
        attempts = 1 + max(0, self.fetch_retries)
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(self.quote_provider.fetch_question(),
                                              timeout=self.fetch_timeout)
            except asyncio.TimeoutError:
                logger.warning("Attempt %d/%d: quote fetch timed out after %ss",
                               attempt, attempts, self.fetch_timeout)
            except ProviderUnavailable:
                logger.warning("Attempt %d/%d: quote provider unavailable", attempt, attempts)
        raise ProviderUnavailable()

    async def _issue_question(self, session: Session, **extra) -> bool:
        """Install the next question and broadcast it, or abort the round."""
        try:
            question = await self._fetch_question()
        except ProviderUnavailable as e:
            logger.error("Game %s: round aborted, no quote available", session.id)
            message = error_message(e.code, e.message)
            message["game"] = session.snapshot()
            message.update(extra)
            await self.dispatcher.broadcast(session, message)
            return False

        session.current_question = question
        session.remaining_rounds -= 1
        await self.dispatcher.broadcast(session, game_message("update", session, **extra))
        return True
