"""Implementation of (Game)Repository using SQLAlchemy"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from src.core.models import Event, GameStateModel
from src.db.schema import DBGame, utc_now

logger = logging.getLogger(__name__)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy.

    Requests run on many threads, so every call opens its own short-lived session.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def get_game(self, room_id: str) -> GameStateModel | None:
        """Get the snapshot for a room, if a record exists."""
        with self.session_factory() as db:
            game_db = self._fetch_game(db, room_id)
            if game_db:
                return self._to_model(game_db)
            return None

    def save_game(self, room_id: str, game: GameStateModel) -> GameStateModel:
        """Insert or update a room's snapshot, never replacing it with an older one."""
        created_at = game.created_at or utc_now()
        with self.session_factory() as db:
            game_db = self._fetch_game(db, room_id)
            if game_db is None:
                game_db = DBGame(
                    room_id=room_id,
                    seed=game.seed,
                    word_set=list(game.word_set),
                    events=[event.to_dict() for event in game.events],
                    created_at=created_at,
                )
                db.add(game_db)
            elif self._is_outdated(game_db, game, created_at):
                logger.debug("Skipping outdated snapshot for %r (seed %d)", room_id, game.seed)
                return self._to_model(game_db)
            else:
                game_db.seed = game.seed
                game_db.word_set = list(game.word_set)
                game_db.events = [event.to_dict() for event in game.events]
                game_db.created_at = created_at
            db.commit()
            db.refresh(game_db)
            return self._to_model(game_db)

    def delete_game(self, room_id: str) -> GameStateModel | None:
        """Remove a room's record."""
        with self.session_factory() as db:
            game_db = self._fetch_game(db, room_id)
            if not game_db:
                return None
            game_model = self._to_model(game_db)
            db.delete(game_db)
            db.commit()
            return game_model

    def list_games(self) -> dict[str, GameStateModel]:
        with self.session_factory() as db:
            return {game_db.room_id: self._to_model(game_db) for game_db in db.scalars(select(DBGame))}

    def _fetch_game(self, db: Session, room_id: str) -> DBGame | None:
        query = select(DBGame).where(DBGame.room_id == room_id)
        return db.scalar(query)

    def _is_outdated(self, game_db: DBGame, game: GameStateModel, created_at: datetime) -> bool:
        """Concurrent requests may save out of order: keep whichever snapshot is further along."""
        if game_db.seed == game.seed:
            return len(game.events) < len(game_db.events)
        return created_at < _as_utc(game_db.created_at)

    def _to_model(self, game_db: DBGame) -> GameStateModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameStateModel(
            seed=game_db.seed,
            word_set=list(game_db.word_set),
            events=[Event.from_dict(event) for event in game_db.events],
            created_at=_as_utc(game_db.created_at),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops the timezone on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
