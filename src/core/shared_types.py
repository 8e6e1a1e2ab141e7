"""
Type definitions used across layers
"""

from enum import IntEnum, StrEnum


class Color(StrEnum):
    """Tile classification from one team's point of view. Serialized as a single character."""

    TAN = "t"
    GREEN = "g"
    BLACK = "b"


class EventType(StrEnum):
    JOIN_SIDE = "join_side"
    CHANGE_SIDE = "change_side"
    PLAYER_LEFT = "player_left"
    GUESS = "guess"
    CHAT = "chat"


class Team(IntEnum):
    # --- NOTE 0 is "spectator / not specified". A team of 0 in an update never overwrites a chosen side.
    UNSET = 0
    ONE = 1
    TWO = 2


PLAYING_TEAMS = (Team.ONE, Team.TWO)
