"""Error kinds raised by the game engine and reported to clients as `error` messages."""


class GameError(Exception):
    """Base class for rejected commands. ``code`` goes on the wire."""
    code = "error"

    def __init__(self, message: str = ""):
        self.message = message or (self.__doc__ or "").strip()
        super().__init__(self.message)


class UnknownSession(GameError):
    """Game not found"""
    code = "unknown_session"


class SessionFull(GameError):
    """Game is full"""
    code = "session_full"


class AlreadyJoined(GameError):
    """Already joined this game"""
    code = "already_joined"


class NotAParticipant(GameError):
    """Not a participant of this game"""
    code = "not_a_participant"


class SessionNotReady(GameError):
    """Waiting for a second player"""
    code = "session_not_ready"


class AlreadyStarted(GameError):
    """A question is already in play"""
    code = "already_started"


class NotYourTurn(GameError):
    """It is not your turn"""
    code = "not_your_turn"


class NoQuestion(GameError):
    """No question in play"""
    code = "no_question"


class SessionFinished(GameError):
    """Game is finished"""
    code = "session_finished"


class TooManySessions(GameError):
    """Too many active games. Please try again later."""
    code = "too_many_sessions"


class ClientMismatch(GameError):
    """clientId does not match this connection"""
    code = "client_mismatch"


class ProviderUnavailable(GameError):
    """Could not fetch a quote, please start the round again"""
    code = "provider_unavailable"


class SessionExpired(GameError):
    """Game closed after being idle too long"""
    code = "session_expired"


class UnknownClient(Exception):
    """Raised when sending to a client id with no live connection."""
    pass
