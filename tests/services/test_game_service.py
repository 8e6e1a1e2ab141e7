"""Unit tests for src/services/game_service.py"""

import threading
import time
from typing import Generator

import pytest

from src.codenames.board import generate_board
from src.codenames.registry import GameRegistry
from src.core.exceptions import GameError, GameNotFoundError, SeedMismatchError, TooFewWordsError
from src.core.models import GameStateModel
from src.core.shared_types import EventType
from src.services.game_service import (
    ActionResponse,
    ChatRequest,
    EventsRequest,
    GameResponse,
    GameService,
    GameUpdateResponse,
    GuessRequest,
    NewGameRequest,
    PingRequest,
)

SHORT_POLL = 0.2


# --- MOCK DEPENDENCIES ----
class MockRepository:
    """Mock the GameRepository using a dictionary of game models."""

    def __init__(self) -> None:
        self._games: dict[str, GameStateModel] = {}

    def get_game(self, room_id: str) -> GameStateModel | None:
        return self._games.get(room_id)

    def save_game(self, room_id: str, game: GameStateModel) -> GameStateModel:
        self._games[room_id] = game
        return game

    def delete_game(self, room_id: str) -> GameStateModel | None:
        return self._games.pop(room_id, None)

    def list_games(self) -> dict[str, GameStateModel]:
        return dict(self._games)

    def clear(self) -> None:
        """Clear the repository (useful in between tests)"""
        self._games.clear()


@pytest.fixture
def mock_repository() -> Generator[MockRepository, None, None]:
    """Ensures to clear the repository between tests"""
    repo = MockRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def service(registry: GameRegistry, mock_repository: MockRepository, clock) -> GameService:
    return GameService(registry, mock_repository, long_poll_timeout=SHORT_POLL, clock=clock)


def _new_game(service: GameService, game_id: str = "R1", **kwargs) -> GameResponse:
    return service.new_game(NewGameRequest(game_id=game_id, **kwargs))


def _guess(service: GameService, seed: int, player_id: str, index: int, team: int = 1, last_event: int = 0) -> ActionResponse:
    return service.guess(
        GuessRequest(
            game_id="R1", seed=seed, player_id=player_id, name=player_id.upper(), team=team, index=index, last_event=last_event
        )
    )


def _poll(service: GameService, seed: int | None, last_event: int, cancelled: threading.Event | None = None) -> GameUpdateResponse:
    request = EventsRequest(game_id="R1", seed=seed, player_id="watcher", name="W", team=0, last_event=last_event)
    return service.poll_events(request, cancelled)


# --- SERVICE - NEW GAME ----
def test_new_game_response(service: GameService, mock_repository: MockRepository, word_pool: list[str]) -> None:
    """Board and layouts in the response are exactly what the generator gives for the seed."""
    response = _new_game(service)

    assert isinstance(response, GameResponse)
    board = generate_board(response.state.seed, word_pool)
    assert response.words == list(board.words)
    assert response.one_layout == list(board.one_layout)
    assert response.two_layout == list(board.two_layout)
    assert response.state.events == []
    assert response.state.word_set == word_pool

    # Check persisted data
    stored = mock_repository.get_game("R1")
    assert stored is not None
    assert stored.seed == response.state.seed
    assert stored.events == []


def test_new_game_with_custom_words(service: GameService) -> None:
    words = [f"CUSTOM{i}" for i in range(25)]
    response = _new_game(service, words=words)
    assert sorted(response.words) == sorted(words)


def test_new_game_too_few_words(service: GameService) -> None:
    with pytest.raises(TooFewWordsError):
        _new_game(service, words=["ONLY", "THREE", "WORDS"])


def test_new_game_stale_prev_seed(service: GameService) -> None:
    """A stale reset returns the live game with its log intact."""
    first = _new_game(service)
    second = _new_game(service, prev_seed=first.state.seed)
    _guess(service, second.state.seed, "p1", 4)

    stale = _new_game(service, prev_seed=first.state.seed)

    assert stale.state.seed == second.state.seed
    assert [event.type for event in stale.state.events] == [EventType.JOIN_SIDE, EventType.GUESS]


def test_get_game_creates_with_default_words(service: GameService, word_pool: list[str]) -> None:
    response = service.get_game("fresh")
    assert response.state.word_set == word_pool
    assert service.get_game("fresh").state.seed == response.state.seed


def test_get_existing_game_does_not_save(service: GameService, mock_repository: MockRepository) -> None:
    """Only the request that creates the room stores it. Later reads leave storage alone."""
    service.get_game("fresh")
    mock_repository.clear()

    service.get_game("fresh")

    assert mock_repository.get_game("fresh") is None


# --- SERVICE - GUESS / CHAT ----
def test_end_to_end_guessing(service: GameService, word_pool: list[str]) -> None:
    """p1 guesses tile 4 (join + guess); p2 taps the same tile for the same team: nothing new."""
    game = _new_game(service)
    seed = game.state.seed
    board = generate_board(seed, word_pool)
    assert game.words == list(board.words)

    first = _guess(service, seed, "p1", 4)
    assert first.status == "ok"
    assert [(event.number, event.type) for event in first.events] == [(1, EventType.JOIN_SIDE), (2, EventType.GUESS)]

    second = _guess(service, seed, "p2", 4, last_event=2)
    assert [(event.number, event.type) for event in second.events] == [(3, EventType.JOIN_SIDE)]

    everything = _poll(service, seed, 0)
    guesses = [event for event in everything.events if event.type == EventType.GUESS]
    assert len(guesses) == 1
    assert guesses[0].player_id == "p1"


def test_guess_unknown_room(service: GameService) -> None:
    with pytest.raises(GameNotFoundError):
        _guess(service, 1, "p1", 4)


def test_guess_wrong_seed(service: GameService) -> None:
    game = _new_game(service)
    with pytest.raises(SeedMismatchError):
        _guess(service, game.state.seed + 1, "p1", 4)


def test_guess_is_persisted(service: GameService, mock_repository: MockRepository) -> None:
    seed = _new_game(service).state.seed
    _guess(service, seed, "p1", 4)
    stored = mock_repository.get_game("R1")
    assert stored is not None
    assert [event.type for event in stored.events] == [EventType.JOIN_SIDE, EventType.GUESS]


def test_chat(service: GameService) -> None:
    seed = _new_game(service).state.seed
    response = service.chat(
        ChatRequest(game_id="R1", seed=seed, player_id="p1", name="Ann", team=2, message="try WHALE")
    )
    assert response.events[-1].type == EventType.CHAT
    assert response.events[-1].message == "try WHALE"
    assert response.events[-1].team == 2


def test_errors_share_a_base(service: GameService) -> None:
    with pytest.raises(GameError):
        service.ping(PingRequest(game_id="nowhere", seed=1, player_id="p1"))


# --- SERVICE - PING ----
def test_ping_records_presence(service: GameService, registry: GameRegistry) -> None:
    seed = _new_game(service).state.seed
    response = service.ping(PingRequest(game_id="R1", seed=seed, player_id="p1", name="Ann", team=2))

    assert response.status == "ok"
    game = registry.get("R1")
    assert game is not None
    assert game.state.players["p1"].team == 2


def test_ping_wrong_seed(service: GameService) -> None:
    seed = _new_game(service).state.seed
    with pytest.raises(SeedMismatchError):
        service.ping(PingRequest(game_id="R1", seed=seed - 1, player_id="p1"))


def test_ping_announces_spectators_when_configured(registry: GameRegistry, clock) -> None:
    service = GameService(registry, announce_spectators=True, clock=clock)
    seed = _new_game(service).state.seed
    service.ping(PingRequest(game_id="R1", seed=seed, player_id="p1", team=0))
    game = registry.get("R1")
    assert game is not None
    assert [event.type for event in game.state.events()] == [EventType.JOIN_SIDE]


# --- SERVICE - LONG POLL ----
def test_poll_returns_pending_events_immediately(service: GameService) -> None:
    seed = _new_game(service).state.seed
    _guess(service, seed, "p1", 4)

    start = time.monotonic()
    response = _poll(service, seed, 0)
    assert time.monotonic() - start < SHORT_POLL
    assert [event.number for event in response.events] == [1, 2]


def test_poll_times_out_empty(service: GameService) -> None:
    seed = _new_game(service).state.seed
    start = time.monotonic()
    response = _poll(service, seed, 0)
    assert time.monotonic() - start >= SHORT_POLL * 0.9
    assert response.seed == seed
    assert response.events == []


def test_poll_wakes_on_new_event(registry: GameRegistry, clock) -> None:
    """A waiting poll returns as soon as someone else appends, long before the timeout."""
    service = GameService(registry, long_poll_timeout=10, clock=clock)
    seed = _new_game(service).state.seed
    results: list[GameUpdateResponse] = []
    poller = threading.Thread(target=lambda: results.append(_poll(service, seed, 0)))

    start = time.monotonic()
    poller.start()
    time.sleep(0.05)
    _guess(service, seed, "p1", 9)
    poller.join(timeout=10)

    assert time.monotonic() - start < 5
    assert len(results) == 1
    assert [event.type for event in results[0].events] == [EventType.JOIN_SIDE, EventType.GUESS]


def test_poll_cancelled(registry: GameRegistry, clock) -> None:
    """A client going away ends the wait without error and without new events."""
    service = GameService(registry, long_poll_timeout=10, clock=clock)
    seed = _new_game(service).state.seed
    cancelled = threading.Event()
    threading.Timer(0.05, cancelled.set).start()

    start = time.monotonic()
    response = _poll(service, seed, 0, cancelled)

    assert time.monotonic() - start < 5
    assert response.events == []
    assert response.seed == seed


def test_poll_with_stale_seed_returns_new_game(service: GameService) -> None:
    """Wrong seed: no waiting, the current game's events since the given number under the new seed."""
    first = _new_game(service).state.seed
    second = _new_game(service, prev_seed=first).state.seed
    _guess(service, second, "p1", 2)

    start = time.monotonic()
    response = _poll(service, first, 0)

    assert time.monotonic() - start < SHORT_POLL
    assert response.seed == second
    assert len(response.events) == 2


def test_poll_with_stale_seed_does_not_mark_seen(service: GameService, registry: GameRegistry) -> None:
    first = _new_game(service).state.seed
    _new_game(service, prev_seed=first)
    _poll(service, first, 0)
    game = registry.get("R1")
    assert game is not None
    assert "watcher" not in game.state.players


def test_poll_wakes_on_reset(registry: GameRegistry, clock) -> None:
    """A reset releases pollers of the old game, who then see the new seed."""
    service = GameService(registry, long_poll_timeout=10, clock=clock)
    old_seed = _new_game(service).state.seed
    results: list[GameUpdateResponse] = []
    poller = threading.Thread(target=lambda: results.append(_poll(service, old_seed, 0)))

    poller.start()
    time.sleep(0.05)
    new_seed = _new_game(service, prev_seed=old_seed).state.seed
    poller.join(timeout=10)

    assert len(results) == 1
    assert results[0].seed == new_seed


def test_poll_unknown_room(service: GameService) -> None:
    with pytest.raises(GameNotFoundError):
        _poll(service, 1, 0)


def test_poll_marks_seen(service: GameService, registry: GameRegistry) -> None:
    seed = _new_game(service).state.seed
    _poll(service, seed, 0)
    game = registry.get("R1")
    assert game is not None
    assert "watcher" in game.state.players


# --- SERVICE - RESTORE ----
def test_restore_games(registry: GameRegistry, mock_repository: MockRepository, word_pool: list[str], clock) -> None:
    """A new process rebuilds rooms from the stored (seed, events, word pool) alone."""
    before = GameService(registry, mock_repository, clock=clock)
    seed = _new_game(before).state.seed
    _guess(before, seed, "p1", 4)
    original = registry.get("R1")
    assert original is not None

    fresh_registry = GameRegistry(word_pool, clock=clock)
    after = GameService(fresh_registry, mock_repository, clock=clock)
    assert after.restore_games() == 1

    restored = fresh_registry.get("R1")
    assert restored is not None
    assert restored.seed == seed
    assert restored.words == original.words
    assert restored.state.events() == original.state.events()

    # And play simply continues.
    response = _guess(after, seed, "p1", 5, last_event=2)
    assert [event.number for event in response.events] == [3]


def test_restore_without_repository(registry: GameRegistry) -> None:
    assert GameService(registry).restore_games() == 0


def test_forget_game(service: GameService, mock_repository: MockRepository) -> None:
    _new_game(service)
    service.forget_game("R1")
    assert mock_repository.get_game("R1") is None


def test_players_timing_out_are_saved(
    registry: GameRegistry, mock_repository: MockRepository, word_pool: list[str], clock
) -> None:
    """player_left events from a sweep reach storage, so a restart cannot hand out their numbers again."""
    service = GameService(registry, mock_repository, clock=clock)
    registry.on_prune = service.save_game
    seed = _new_game(service).state.seed
    _guess(service, seed, "p1", 4)
    clock.advance(seconds=60)

    registry.sweep()

    stored = mock_repository.get_game("R1")
    assert stored is not None
    assert [event.type for event in stored.events] == [EventType.JOIN_SIDE, EventType.GUESS, EventType.PLAYER_LEFT]

    # After a restart the next event continues the numbering.
    fresh_registry = GameRegistry(word_pool, clock=clock)
    restarted = GameService(fresh_registry, mock_repository, clock=clock)
    restarted.restore_games()
    response = _guess(restarted, seed, "p2", 6, last_event=3)
    assert [event.number for event in response.events] == [4, 5]
