"""Application configuration, read from environment variables."""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional, Self

_TRUTHY = ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    wordlist_dir: Path = Path("wordlists")
    default_wordlist: str = "green"
    database_url: Optional[str] = None
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    long_poll_timeout: float = 25.0
    stale_player_seconds: float = 50.0
    sweep_interval: float = 10 * 60.0
    abandoned_game_ttl: float = 24 * 60 * 60.0
    # Whether a brand new player without a side (spectator) gets a join_side event.
    announce_spectators: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Self:
        return cls(
            wordlist_dir=Path(os.environ.get("GREEN_WORDLIST_DIR", "wordlists")),
            default_wordlist=os.environ.get("GREEN_DEFAULT_WORDLIST", "green"),
            database_url=os.environ.get("GREEN_DATABASE_URL") or None,
            allowed_origins=_env_list("GREEN_ALLOWED_ORIGINS", "*"),
            long_poll_timeout=float(os.environ.get("GREEN_LONG_POLL_TIMEOUT", "25")),
            stale_player_seconds=float(os.environ.get("GREEN_STALE_PLAYER_SECONDS", "50")),
            sweep_interval=float(os.environ.get("GREEN_SWEEP_INTERVAL", "600")),
            abandoned_game_ttl=float(os.environ.get("GREEN_ABANDONED_GAME_TTL", "86400")),
            announce_spectators=os.environ.get("GREEN_ANNOUNCE_SPECTATORS", "0").lower() in _TRUTHY,
            log_level=os.environ.get("GREEN_LOG_LEVEL", "INFO").upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
