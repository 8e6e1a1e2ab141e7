"""Requests and Response models"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Self

from pydantic import BaseModel, BeforeValidator, PlainSerializer, ValidationInfo, field_validator

from src.codenames.board import BOARD_SIZE
from src.core.exceptions import InvalidRequestError
from src.core.models import Event
from src.core.shared_types import PLAYING_TEAMS, Color, EventType, Team

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def parse_seed(value: Any) -> int:
    """Seeds use the full 64-bit range, which JS numbers can't represent: they travel as decimal strings."""
    if isinstance(value, int) and not isinstance(value, bool):
        seed = value
    elif isinstance(value, str) and value.strip().removeprefix("-").isdigit():
        seed = int(value.strip())
    else:
        raise InvalidRequestError(f"Seed must be a decimal string, got {value!r}.")
    if not INT64_MIN <= seed <= INT64_MAX:
        raise InvalidRequestError(f"Seed {value!r} is outside the 64-bit range.")
    return seed


Seed = Annotated[
    int,
    BeforeValidator(parse_seed),
    PlainSerializer(lambda seed: str(seed), return_type=str),
]


def parse_optional_seed(value: Any) -> Optional[int]:
    if value is None:
        return None
    return parse_seed(value)


OptionalSeed = Annotated[
    Optional[int],
    BeforeValidator(parse_optional_seed),
    PlainSerializer(lambda seed: None if seed is None else str(seed), return_type=Optional[str]),
]


def _require_non_empty(value: str, field_name: str) -> str:
    if not value.strip():
        raise InvalidRequestError(f"{field_name} must not be empty.")
    return value


def _require_team(value: int, allowed: tuple[Team, ...]) -> int:
    if value not in allowed:
        raise InvalidRequestError(f"team must be one of {[int(team) for team in allowed]}, got {value!r}.")
    return value


# --- REQUEST MODELS ---
class NewGameRequest(BaseModel):
    game_id: str
    words: Optional[list[str]] = None
    prev_seed: OptionalSeed = None

    @field_validator("game_id")
    @classmethod
    def validate_game_id(cls, value: str) -> str:
        return _require_non_empty(value, "game_id")


class PlayerRequest(BaseModel):
    """Fields shared by every request a player sends about a running game."""

    game_id: str
    seed: Seed
    player_id: str
    name: str = ""
    team: int = 0

    @field_validator("game_id", "player_id")
    @classmethod
    def validate_ids(cls, value: str, info: ValidationInfo) -> str:
        return _require_non_empty(value, info.field_name)

    @field_validator("team")
    @classmethod
    def validate_team(cls, value: int) -> int:
        return _require_team(value, tuple(Team))

    @field_validator("last_event", check_fields=False)
    @classmethod
    def validate_last_event(cls, value: int) -> int:
        if value < 0:
            raise InvalidRequestError("last_event must not be negative.")
        return value


class GuessRequest(PlayerRequest):
    index: int
    last_event: int = 0

    @field_validator("team")
    @classmethod
    def validate_team(cls, value: int) -> int:
        return _require_team(value, PLAYING_TEAMS)

    @field_validator("index")
    @classmethod
    def validate_index(cls, value: int) -> int:
        if not 0 <= value < BOARD_SIZE:
            raise InvalidRequestError(f"index must be between 0 and {BOARD_SIZE - 1}, got {value!r}.")
        return value


class ChatRequest(PlayerRequest):
    message: str
    last_event: int = 0

    @field_validator("team")
    @classmethod
    def validate_team(cls, value: int) -> int:
        return _require_team(value, PLAYING_TEAMS)

    @field_validator("message")
    @classmethod
    def validate_message(cls, value: str) -> str:
        return _require_non_empty(value, "message")


class EventsRequest(PlayerRequest):
    # The seed the client believes is live. Missing or stale means "send me the new game's log right away".
    seed: OptionalSeed = None
    last_event: int = 0


class PingRequest(PlayerRequest):
    pass


# --- RESPONSE MODELS ---
class EventResponse(BaseModel):
    number: int
    type: EventType
    player_id: str
    name: str
    team: int
    index: int
    message: str

    @classmethod
    def from_event(cls, event: Event) -> Self:
        return cls(
            number=event.number,
            type=event.type,
            player_id=event.player_id,
            name=event.name,
            team=event.team,
            index=event.index,
            message=event.message,
        )


class GameStateResponse(BaseModel):
    seed: Seed
    events: list[EventResponse]
    word_set: list[str]


class GameResponse(BaseModel):
    state: GameStateResponse
    created_at: datetime
    words: list[str]
    one_layout: list[Color]
    two_layout: list[Color]


class GameUpdateResponse(BaseModel):
    seed: Seed
    events: list[EventResponse]


class ActionResponse(GameUpdateResponse):
    status: Literal["ok"] = "ok"


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ErrorResponse(BaseModel):
    code: str
    message: str
