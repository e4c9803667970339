"""Inbound command models and outbound message builders.

Every frame is one JSON object with a ``type`` discriminator. Commands carry
identifiers only; any ``game`` snapshot a client sends back is ignored.
"""
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from models import Session, WireModel


class Command(WireModel):
    client_id: Optional[str] = None


class CreateCommand(Command):
    type: Literal["create"]


class JoinCommand(Command):
    type: Literal["join"]
    game_id: str = Field(min_length=1)


class StartCommand(Command):
    type: Literal["start"]
    game_id: str = Field(min_length=1)


class AnswerCommand(Command):
    type: Literal["answer"]
    game_id: str = Field(min_length=1)
    # None means the turn ran out without an answer
    answer: Optional[str] = None


class QuitCommand(Command):
    type: Literal["quit"]
    game_id: str = Field(min_length=1)


AnyCommand = Annotated[
    Union[CreateCommand, JoinCommand, StartCommand, AnswerCommand, QuitCommand],
    Field(discriminator="type"),
]

_command_adapter = TypeAdapter(AnyCommand)


def parse_command(message: dict):
    """Validate a decoded frame. Raises pydantic.ValidationError if malformed."""
    return _command_adapter.validate_python(message)


def connect_message(client_id: str) -> dict:
    return {"type": "connect", "clientId": client_id}


def game_message(msg_type: str, session: Session, reveal_answer: bool = False, **extra) -> dict:
    message = {"type": msg_type, "game": session.snapshot(reveal_answer=reveal_answer)}
    message.update(extra)
    return message


def quit_message(client_id: str) -> dict:
    return {"type": "quit", "clientId": client_id}


def error_message(code: str, message: str) -> dict:
    return {"type": "error", "code": code, "message": message}
