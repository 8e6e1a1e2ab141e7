"""
Per-room mutable state: the event log, the live player map and the wake-up signal for long-polling readers.

All reads and writes of the log and the player map happen while holding `GameState.lock`.
Public methods take the lock themselves. Helpers ending in `_locked` expect the caller to hold it already.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from src.codenames.signal import Signal
from src.core.exceptions import SeedMismatchError
from src.core.models import Event
from src.core.shared_types import EventType, Team

logger = logging.getLogger(__name__)

STALE_PLAYER_AFTER = timedelta(seconds=50)


@dataclass
class Player:
    team: int
    last_seen: datetime
    name: str = ""


class GameState:
    """Seed, word pool and event log of one game, plus who is currently around."""

    def __init__(
        self,
        seed: int,
        word_set: Sequence[str],
        events: Optional[Sequence[Event]] = None,
        stale_after: timedelta = STALE_PLAYER_AFTER,
    ) -> None:
        self.lock = threading.Lock()
        self.seed = seed
        self.word_set: tuple[str, ...] = tuple(word_set)
        self.stale_after = stale_after
        self.players: dict[str, Player] = {}
        self._events: list[Event] = list(events or [])
        self._changed = Signal()
        self._superseded = False

    # --- READS ---
    @property
    def event_count(self) -> int:
        with self.lock:
            return len(self._events)

    @property
    def superseded(self) -> bool:
        with self.lock:
            return self._superseded

    def events(self) -> list[Event]:
        with self.lock:
            return list(self._events)

    def events_since(self, last_seen: int) -> tuple[list[Event], Signal]:
        """Events numbered after `last_seen`, plus the signal that fires on the next change.

        Both are taken under the same lock acquisition, so nothing appended after this call can be missed
        by a caller that then waits on the returned signal.
        """
        with self.lock:
            return self._events_since_locked(last_seen), self._changed

    def player_count(self) -> int:
        with self.lock:
            return len(self.players)

    # --- WRITES ---
    def append_event(
        self,
        type: EventType,
        player_id: str,
        name: str = "",
        team: int = 0,
        index: int = 0,
        message: str = "",
    ) -> Event:
        with self.lock:
            self._ensure_live_locked()
            return self._append_event_locked(type, player_id, name, team, index, message)

    def mark_seen(
        self,
        player_id: str,
        name: str,
        team: int,
        when: datetime,
        announce_spectators: bool = False,
    ) -> None:
        with self.lock:
            self._ensure_live_locked()
            self._mark_seen_locked(player_id, name, team, when, announce_spectators)

    def guess(self, player_id: str, name: str, team: int, index: int, when: datetime) -> Optional[Event]:
        """Record a guess. Returns None if this team already guessed that tile."""
        with self.lock:
            self._ensure_live_locked()
            self._mark_seen_locked(player_id, name, team, when)

            # Identical guesses happen when several teammates tap the same tile at about the same moment.
            for event in self._events:
                if event.type == EventType.GUESS and event.team == team and event.index == index:
                    return None

            return self._append_event_locked(EventType.GUESS, player_id, name, team=team, index=index)

    def chat(self, player_id: str, name: str, team: int, message: str, when: datetime) -> Event:
        with self.lock:
            self._ensure_live_locked()
            self._mark_seen_locked(player_id, name, team, when)
            return self._append_event_locked(EventType.CHAT, player_id, name, team=team, message=message)

    def prune_stale_players(self, now: datetime) -> int:
        """Forget players not seen for longer than `stale_after`. Returns how many players remain."""
        with self.lock:
            for player_id, player in list(self.players.items()):
                if player.last_seen + self.stale_after >= now:
                    continue
                del self.players[player_id]
                logger.debug("Player %s timed out (team %d)", player_id, player.team)
                if player.team != Team.UNSET:
                    self._append_event_locked(
                        EventType.PLAYER_LEFT, player_id, player.name, team=player.team
                    )
            return len(self.players)

    def notify_all(self) -> None:
        """Wake every current long-poll waiter without appending anything."""
        with self.lock:
            self._notify_locked()

    def supersede_locked(self) -> None:
        """Mark this state as replaced by a newer game. Caller holds the lock."""
        self._superseded = True

    # --- INTERNAL HELPERS ---
    def _ensure_live_locked(self) -> None:
        if self._superseded:
            raise SeedMismatchError(
                f"Game with seed {self.seed} has been replaced by a new game."
            )

    def _events_since_locked(self, last_seen: int) -> list[Event]:
        # Numbers are 1..n without gaps, so the events after `last_seen` are a plain slice.
        return self._events[max(last_seen, 0):]

    def _append_event_locked(
        self,
        type: EventType,
        player_id: str,
        name: str = "",
        team: int = 0,
        index: int = 0,
        message: str = "",
    ) -> Event:
        event = Event(
            number=len(self._events) + 1,
            type=type,
            player_id=player_id,
            name=name,
            team=team,
            index=index,
            message=message,
        )
        assert not self._events or self._events[-1].number == event.number - 1
        self._events.append(event)
        logger.debug("seed=%d event #%d %s by %s", self.seed, event.number, event.type, player_id)
        self._notify_locked()
        return event

    def _notify_locked(self) -> None:
        self._changed.fire()
        # A replaced game keeps its fired signal, so late readers of it never wait.
        if not self._superseded:
            self._changed = Signal()

    def _mark_seen_locked(
        self,
        player_id: str,
        name: str,
        team: int,
        when: datetime,
        announce_spectators: bool = False,
    ) -> None:
        player = self.players.get(player_id)
        if player is None:
            self.players[player_id] = Player(team=team, last_seen=when, name=name)
            if team != 0 or announce_spectators:
                self._append_event_locked(EventType.JOIN_SIDE, player_id, name, team=team)
            return

        player.last_seen = when
        if name:
            player.name = name
        if team != 0 and player.team != team:
            event_type = EventType.JOIN_SIDE if player.team == 0 else EventType.CHANGE_SIDE
            player.team = team
            self._append_event_locked(event_type, player_id, player.name, team=team)
