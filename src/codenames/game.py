"""
The Game class is the entrypoint into the domain layer for the service layer.

A Game is a GameState plus the board derived from it. The board is never stored: it is rebuilt from
(seed, word pool), which is what allows recreating a game after a restart from a GameStateModel alone.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Self, Sequence

from src.codenames.board import Board, generate_board
from src.codenames.game_state import STALE_PLAYER_AFTER, GameState, Player
from src.core.models import Event, GameStateModel
from src.core.shared_types import Color, EventType


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Game:
    def __init__(self, state: GameState, board: Board, created_at: datetime) -> None:
        self.state = state
        self.board = board
        self.created_at = created_at

    @classmethod
    def new_game(
        cls,
        seed: int,
        words: Sequence[str],
        created_at: Optional[datetime] = None,
        stale_after: timedelta = STALE_PLAYER_AFTER,
    ) -> Self:
        """Fresh game with an empty log."""
        board = generate_board(seed, words)
        state = GameState(seed, words, stale_after=stale_after)
        return cls(state, board, created_at or utc_now())

    @classmethod
    def from_model(
        cls,
        model: GameStateModel,
        now: Optional[datetime] = None,
        stale_after: timedelta = STALE_PLAYER_AFTER,
    ) -> Self:
        """Rebuild a game from (seed, ordered event log, word pool).

        Players still on a side according to the log are re-registered as last seen `now`,
        so they either show up again or time out with a regular player_left event.
        """
        numbers = [event.number for event in model.events]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Event log for seed {model.seed} is not numbered 1..{len(numbers)}.")

        now = now or utc_now()
        board = generate_board(model.seed, model.word_set)
        state = GameState(model.seed, model.word_set, events=model.events, stale_after=stale_after)
        state.players = _replay_presence(model.events, now)
        return cls(state, board, model.created_at or now)

    def to_model(self) -> GameStateModel:
        return GameStateModel(
            seed=self.seed,
            word_set=list(self.state.word_set),
            events=self.state.events(),
            created_at=self.created_at,
        )

    # --- Convenience accessors ---
    @property
    def seed(self) -> int:
        # Fixed for the lifetime of a Game: a new seed means a new Game.
        return self.state.seed

    @property
    def words(self) -> tuple[str, ...]:
        return self.board.words

    @property
    def one_layout(self) -> tuple[Color, ...]:
        return self.board.one_layout

    @property
    def two_layout(self) -> tuple[Color, ...]:
        return self.board.two_layout

    def __repr__(self) -> str:
        return f"Game(seed={self.seed}, events={self.state.event_count}, created_at={self.created_at.isoformat()})"


def _replay_presence(events: Sequence[Event], now: datetime) -> dict[str, Player]:
    players: dict[str, Player] = {}
    for event in events:
        if event.type in (EventType.JOIN_SIDE, EventType.CHANGE_SIDE):
            players[event.player_id] = Player(team=event.team, last_seen=now, name=event.name)
        elif event.type == EventType.PLAYER_LEFT:
            players.pop(event.player_id, None)
    return players
