"""Protocol repository (SQLAlchemy implementation in sql_repository.py; tests use an in-memory dict)."""

from typing import Protocol

from src.core.models import GameStateModel


class GameRepository(Protocol):
    """Durable copy of each room's (seed, word pool, event log)."""

    def get_game(self, room_id: str) -> GameStateModel | None:
        """Get the snapshot for a room, if a record exists."""
        ...

    def save_game(self, room_id: str, game: GameStateModel) -> GameStateModel:
        """Store a snapshot. Older snapshots than the stored one are ignored. Returns what is stored."""
        ...

    def delete_game(self, room_id: str) -> GameStateModel | None:
        """Remove a room's record."""
        ...

    def list_games(self) -> dict[str, GameStateModel]:
        """All stored snapshots keyed by room id."""
        ...
