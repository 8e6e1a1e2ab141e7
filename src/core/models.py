"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
The API layer (higher) and domain/db layers (lower) all use the models defined here to send to/receive from the Service.
A GameStateModel is everything needed to rebuild a game: (seed, word pool, ordered event log).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Self

from src.core.shared_types import EventType


@dataclass(frozen=True)
class Event:
    """One fact in a room's append-only log. `number` is assigned by the game on append."""

    number: int
    type: EventType
    player_id: str
    name: str = ""
    team: int = 0
    index: int = 0
    message: str = ""

    def to_dict(self) -> dict[str, str | int]:
        return {
            "number": self.number,
            "type": str(self.type),
            "player_id": self.player_id,
            "name": self.name,
            "team": self.team,
            "index": self.index,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(
            number=int(data["number"]),
            type=EventType(data["type"]),
            player_id=data["player_id"],
            name=data.get("name", ""),
            team=int(data.get("team", 0)),
            index=int(data.get("index", 0)),
            message=data.get("message", ""),
        )


@dataclass
class GameStateModel:
    """Transport-safe representation of a game used between Service, DB, and Game layers."""

    seed: int
    word_set: list[str]
    events: list[Event] = field(default_factory=list)
    created_at: Optional[datetime] = None
