"""
Collection of live games keyed by room id.

Lock order is always registry lock, then a game's lock. Nothing here waits on a game's signal,
so the registry lock is only ever held for map lookups, swaps and the sweep.
"""

import logging
import random
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from src.codenames.board import check_word_pool
from src.codenames.game import Game, utc_now
from src.codenames.game_state import STALE_PLAYER_AFTER, Player

logger = logging.getLogger(__name__)

ABANDONED_GAME_TTL = timedelta(hours=24)
SWEEP_INTERVAL = 10 * 60.0

Clock = Callable[[], datetime]


class GameRegistry:
    def __init__(
        self,
        default_words: Sequence[str],
        rand: Optional[random.Random] = None,
        clock: Clock = utc_now,
        stale_after: timedelta = STALE_PLAYER_AFTER,
        abandoned_ttl: timedelta = ABANDONED_GAME_TTL,
        on_evict: Optional[Callable[[str], None]] = None,
        on_prune: Optional[Callable[[str, Game], None]] = None,
    ) -> None:
        check_word_pool(default_words)
        self.default_words: tuple[str, ...] = tuple(default_words)
        self.clock = clock
        self.stale_after = stale_after
        self.abandoned_ttl = abandoned_ttl
        self.on_evict = on_evict
        self.on_prune = on_prune

        self._lock = threading.Lock()
        self._games: dict[str, Game] = {}
        self._rand = rand or random.Random()

        self._sweeper: Optional[threading.Thread] = None
        self._stop_sweeper = threading.Event()

    # --- LOOKUPS ---
    def get(self, room_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(room_id)

    def room_ids(self) -> list[str]:
        with self._lock:
            return list(self._games)

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)

    def get_or_create(self, room_id: str) -> Game:
        with self._lock:
            game = self._games.get(room_id)
            if game is None:
                game = self._build_game_locked(self.default_words)
                self._games[room_id] = game
                logger.info("Created game %r with seed %d", room_id, game.seed)
            return game

    # --- REPLACEMENT ---
    def reset_game(
        self,
        room_id: str,
        words: Optional[Sequence[str]] = None,
        prev_seed: Optional[int] = None,
    ) -> Game:
        """Start a new game in a room, unless someone beat us to it.

        An existing game is only replaced when `prev_seed` matches its seed. Otherwise the live game is
        returned untouched, so a delayed or duplicate "new game" request can't clobber a fresh one.
        """
        words = words or self.default_words
        with self._lock:
            old = self._games.get(room_id)
            if old is None:
                check_word_pool(words)
                game = self._build_game_locked(words)
                self._games[room_id] = game
                logger.info("Created game %r with seed %d", room_id, game.seed)
                return game

            with old.state.lock:
                if prev_seed is None or prev_seed != old.seed:
                    logger.warning(
                        "Ignoring new game request for %r: prev_seed %s does not match live seed %d",
                        room_id,
                        prev_seed,
                        old.seed,
                    )
                    return old

                check_word_pool(words)
                game = self._build_game_locked(words)
                # Carry over the players, but without teams, in case they want to switch them up.
                game.state.players = {
                    player_id: Player(team=0, last_seen=player.last_seen, name=player.name)
                    for player_id, player in old.state.players.items()
                }
                old.state.supersede_locked()
                self._games[room_id] = game

        # Wake up anyone still waiting on the old game so they pick up the new one.
        old.state.notify_all()
        logger.info("Reset game %r: seed %d -> %d", room_id, old.seed, game.seed)
        return game

    def restore(self, room_id: str, game: Game) -> None:
        """Install a game rebuilt from a snapshot."""
        with self._lock:
            self._games[room_id] = game
        logger.info("Restored game %r with seed %d (%d events)", room_id, game.seed, game.state.event_count)

    # --- SWEEP ---
    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Prune stale players everywhere and drop games that are empty and older than `abandoned_ttl`.

        Games that stay but whose log grew from the prune (player_left events) are passed to `on_prune`.
        A dropped game is marked superseded, so requests that still hold it can no longer write to it.
        """
        now = now or self.clock()
        evicted: list[Game] = []
        evicted_ids: list[str] = []
        pruned: list[tuple[str, Game]] = []
        with self._lock:
            for room_id, game in list(self._games.items()):
                before = game.state.event_count
                remaining = game.state.prune_stale_players(now)
                if remaining == 0 and game.created_at + self.abandoned_ttl <= now:
                    with game.state.lock:
                        # A player may have shown up since the prune.
                        if not game.state.players:
                            game.state.supersede_locked()
                            del self._games[room_id]
                            evicted.append(game)
                            evicted_ids.append(room_id)
                            continue
                if game.state.event_count != before:
                    pruned.append((room_id, game))

        for game in evicted:
            game.state.notify_all()
        for room_id in evicted_ids:
            logger.info("Evicted abandoned game %r", room_id)
            self._run_hook(self.on_evict, room_id)
        for room_id, game in pruned:
            self._run_hook(self.on_prune, room_id, game)
        return evicted_ids

    def start_sweeper(self, interval: float = SWEEP_INTERVAL) -> None:
        if self._sweeper is not None:
            return
        self._stop_sweeper.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_forever, args=(interval,), name="game-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.info("Game sweeper started, every %.0fs", interval)

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._stop_sweeper.set()
        self._sweeper.join()
        self._sweeper = None

    # --- INTERNAL HELPERS ---
    def _sweep_forever(self, interval: float) -> None:
        while not self._stop_sweeper.wait(interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Game sweep failed")

    def _build_game_locked(self, words: Sequence[str]) -> Game:
        seed = self._rand.getrandbits(63)
        return Game.new_game(seed, words, created_at=self.clock(), stale_after=self.stale_after)

    def _run_hook(self, hook: Optional[Callable[..., None]], room_id: str, *args: Game) -> None:
        if hook is None:
            return
        try:
            hook(room_id, *args)
        except Exception:
            # The sweep has already happened: report and carry on with the other rooms.
            logger.exception("Sweep hook %s failed for %r", getattr(hook, "__name__", hook), room_id)
