"""Unit tests for /src/core/config.py"""

from pathlib import Path

import pytest

from src.core.config import Settings, get_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GREEN_WORDLIST_DIR",
        "GREEN_DATABASE_URL",
        "GREEN_ALLOWED_ORIGINS",
        "GREEN_LONG_POLL_TIMEOUT",
        "GREEN_ANNOUNCE_SPECTATORS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.wordlist_dir == Path("wordlists")
    assert settings.default_wordlist == "green"
    assert settings.database_url is None
    assert settings.allowed_origins == ["*"]
    assert settings.long_poll_timeout == 25.0
    assert settings.stale_player_seconds == 50.0
    assert settings.sweep_interval == 600.0
    assert settings.abandoned_game_ttl == 86400.0
    assert settings.announce_spectators is False


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GREEN_WORDLIST_DIR", "/srv/words")
    monkeypatch.setenv("GREEN_DATABASE_URL", "sqlite:///games.db")
    monkeypatch.setenv("GREEN_ALLOWED_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("GREEN_LONG_POLL_TIMEOUT", "5")
    monkeypatch.setenv("GREEN_ANNOUNCE_SPECTATORS", "yes")
    monkeypatch.setenv("GREEN_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.wordlist_dir == Path("/srv/words")
    assert settings.database_url == "sqlite:///games.db"
    assert settings.allowed_origins == ["https://a.example", "https://b.example"]
    assert settings.long_poll_timeout == 5.0
    assert settings.announce_spectators is True
    assert settings.log_level == "DEBUG"


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()
