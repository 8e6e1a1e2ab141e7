"""Orchestration of communication from API router to the game registry and persistence layers (and the reverse direction)."""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from src.api.models import (
    ActionResponse,
    ChatRequest,
    EventResponse,
    EventsRequest,
    GameResponse,
    GameStateResponse,
    GameUpdateResponse,
    GuessRequest,
    NewGameRequest,
    PingRequest,
    PlayerRequest,
    StatusResponse,
)
from src.codenames.game import Game, utc_now
from src.codenames.registry import GameRegistry
from src.core.exceptions import GameNotFoundError, SeedMismatchError
from src.core.models import Event
from src.db.repository import GameRepository

logger = logging.getLogger(__name__)

LONG_POLL_TIMEOUT = 25.0


class GameService:
    """Orchestration of layers for the word game."""

    def __init__(
        self,
        registry: GameRegistry,
        repository: Optional[GameRepository] = None,
        long_poll_timeout: float = LONG_POLL_TIMEOUT,
        announce_spectators: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.registry = registry
        self.repo = repository
        self.long_poll_timeout = long_poll_timeout
        self.announce_spectators = announce_spectators
        self.clock = clock

    # -- API routes logic ---
    def new_game(self, request: NewGameRequest) -> GameResponse:
        """Start a game in a room, or get the live one back if `prev_seed` is not the live seed."""
        game = self.registry.reset_game(request.game_id, request.words, request.prev_seed)
        self._persist(request.game_id, game)
        return self._create_game_response(game)

    def get_game(self, game_id: str) -> GameResponse:
        """Fetch the room's game, creating one with the default word list if the room is new."""
        game = self.registry.get(game_id)
        if game is None:
            game = self.registry.get_or_create(game_id)
            self._persist(game_id, game)
        return self._create_game_response(game)

    def guess(self, request: GuessRequest) -> ActionResponse:
        game = self._fetch_game(request.game_id)
        self._check_seed(game, request)
        game.state.guess(request.player_id, request.name, request.team, request.index, self.clock())
        self._persist(request.game_id, game)
        events, _ = game.state.events_since(request.last_event)
        return ActionResponse(seed=game.seed, events=self._event_responses(events))

    def chat(self, request: ChatRequest) -> ActionResponse:
        game = self._fetch_game(request.game_id)
        self._check_seed(game, request)
        game.state.chat(request.player_id, request.name, request.team, request.message, self.clock())
        self._persist(request.game_id, game)
        events, _ = game.state.events_since(request.last_event)
        return ActionResponse(seed=game.seed, events=self._event_responses(events))

    def ping(self, request: PingRequest) -> StatusResponse:
        """Record presence only. Lets clients push player changes without waiting for the long-poll loop."""
        game = self._fetch_game(request.game_id)
        self._check_seed(game, request)
        self._mark_seen(game, request)
        return StatusResponse()

    def poll_events(
        self, request: EventsRequest, cancelled: Optional[threading.Event] = None
    ) -> GameUpdateResponse:
        """
        Long-poll for events after `request.last_event`.
        ----
        Returns at once if there is something new or the client is on an outdated seed. Otherwise waits until
        the game changes (new event or replaced game), `cancelled` is set (client went away) or the timeout elapses.
        """
        game = self._fetch_game(request.game_id)
        if request.seed != game.seed:
            # The client has the wrong game: send the current one's log without waiting.
            events, _ = game.state.events_since(request.last_event)
            return self._update_response(game.seed, events)

        try:
            self._mark_seen(game, request)
        except SeedMismatchError:
            # Replaced between the lookup and now: same as a stale seed.
            return self._current_game_update(request)

        events, changed = game.state.events_since(request.last_event)
        if events:
            return self._update_response(game.seed, events)

        if changed.wait(self.long_poll_timeout, cancelled):
            # Re-fetch the game, it may have been replaced while we were waiting.
            return self._current_game_update(request)

        return self._update_response(game.seed, events)

    def restore_games(self) -> int:
        """Reload every stored room into the registry. Returns how many were restored."""
        if self.repo is None:
            return 0
        now = self.clock()
        stored = self.repo.list_games()
        for room_id, model in stored.items():
            game = Game.from_model(model, now=now, stale_after=self.registry.stale_after)
            self.registry.restore(room_id, game)
        return len(stored)

    def forget_game(self, game_id: str) -> None:
        """Drop the stored copy of an evicted room."""
        if self.repo is not None:
            self.repo.delete_game(game_id)

    def save_game(self, game_id: str, game: Game) -> None:
        """Store a game changed outside of a request (players timed out during a sweep)."""
        self._persist(game_id, game)

    # -- Internal helpers --
    def _fetch_game(self, game_id: str) -> Game:
        """Attempt to find the game in the registry and raise error if it fails."""
        game = self.registry.get(game_id)
        if game is None:
            raise GameNotFoundError(f"Game {game_id!r} not found.")
        return game

    def _check_seed(self, game: Game, request: PlayerRequest) -> None:
        if request.seed != game.seed:
            logger.warning(
                "Request for %r intended for seed %s, live seed is %d", request.game_id, request.seed, game.seed
            )
            raise SeedMismatchError("Request intended for a different game seed.")

    def _mark_seen(self, game: Game, request: PlayerRequest) -> None:
        before = game.state.event_count
        game.state.mark_seen(
            request.player_id,
            request.name,
            request.team,
            self.clock(),
            announce_spectators=self.announce_spectators,
        )
        if game.state.event_count != before:
            self._persist(request.game_id, game)

    def _current_game_update(self, request: EventsRequest) -> GameUpdateResponse:
        game = self._fetch_game(request.game_id)
        events, _ = game.state.events_since(request.last_event)
        return self._update_response(game.seed, events)

    def _persist(self, game_id: str, game: Game) -> None:
        if self.repo is not None:
            self.repo.save_game(game_id, game.to_model())

    def _event_responses(self, events: list[Event]) -> list[EventResponse]:
        return [EventResponse.from_event(event) for event in events]

    def _update_response(self, seed: int, events: list[Event]) -> GameUpdateResponse:
        return GameUpdateResponse(seed=seed, events=self._event_responses(events))

    def _create_game_response(self, game: Game) -> GameResponse:
        """Convert a Game into a GameResponse."""
        return GameResponse(
            state=GameStateResponse(
                seed=game.seed,
                events=self._event_responses(game.state.events()),
                word_set=list(game.state.word_set),
            ),
            created_at=game.created_at,
            words=list(game.words),
            one_layout=list(game.one_layout),
            two_layout=list(game.two_layout),
        )
