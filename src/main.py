"""
Codenames Green API: process wiring.

Builds the registry, (optionally) the snapshot repository and the service, and ties the sweeper's lifetime to the app's.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import register_error_handlers, router
from src.codenames.registry import GameRegistry
from src.codenames.wordlists import load_word_lists
from src.core.config import Settings, get_settings
from src.core.exceptions import TooFewWordsError
from src.db.database import make_session_factory
from src.db.sql_repository import SQLGameRepository
from src.services.game_service import GameService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_service(settings: Settings) -> GameService:
    word_lists = load_word_lists(settings.wordlist_dir)
    default_words = word_lists.get(settings.default_wordlist)
    if not default_words:
        raise TooFewWordsError(
            f"Default word list {settings.default_wordlist!r} not found in {str(settings.wordlist_dir)!r}."
        )

    repository = None
    if settings.database_url:
        repository = SQLGameRepository(make_session_factory(settings.database_url))

    registry = GameRegistry(
        default_words,
        stale_after=timedelta(seconds=settings.stale_player_seconds),
        abandoned_ttl=timedelta(seconds=settings.abandoned_game_ttl),
    )
    service = GameService(
        registry,
        repository,
        long_poll_timeout=settings.long_poll_timeout,
        announce_spectators=settings.announce_spectators,
    )
    registry.on_evict = service.forget_game
    registry.on_prune = service.save_game
    return service


def create_app(settings: Optional[Settings] = None, service: Optional[GameService] = None) -> FastAPI:
    settings = settings or get_settings()
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        restored = service.restore_games()
        if restored:
            logger.info("Restored %d game(s) from storage", restored)
        service.registry.start_sweeper(settings.sweep_interval)
        try:
            yield
        finally:
            service.registry.stop_sweeper()

    app = FastAPI(title="Codenames Green API", lifespan=lifespan)
    app.state.service = service

    # Allow all cross-origin requests by default.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["Content-Type"],
        max_age=1728000,  # 20 days
    )
    app.include_router(router)
    register_error_handlers(app)
    return app


def main() -> FastAPI:
    """Factory for `uvicorn --factory src.main:main`."""
    settings = get_settings()
    configure_logging(settings.log_level)
    return create_app(settings)
