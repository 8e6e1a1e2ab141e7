"""HTTP routes. Thin translation between JSON bodies and GameService calls."""

import asyncio
import logging
import threading
from contextlib import suppress

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.api.models import (
    ActionResponse,
    ChatRequest,
    ErrorResponse,
    EventsRequest,
    GameResponse,
    GameUpdateResponse,
    GuessRequest,
    NewGameRequest,
    PingRequest,
    StatusResponse,
)
from src.core.exceptions import GameError, InvalidRequestError
from src.services.game_service import GameService

logger = logging.getLogger(__name__)

# How often a pending long-poll checks whether the client is still connected.
DISCONNECT_CHECK_INTERVAL = 1.0

router = APIRouter()


def get_service(request: Request) -> GameService:
    return request.app.state.service


# Plain `def` routes run on the worker thread pool: one worker per request.
@router.post("/new-game", response_model=GameResponse)
def new_game(body: NewGameRequest, service: GameService = Depends(get_service)) -> GameResponse:
    return service.new_game(body)


@router.get("/games/{game_id}", response_model=GameResponse)
def get_game(game_id: str, service: GameService = Depends(get_service)) -> GameResponse:
    if not game_id.strip():
        raise InvalidRequestError("game_id must not be empty.")
    return service.get_game(game_id)


@router.post("/guess", response_model=ActionResponse)
def guess(body: GuessRequest, service: GameService = Depends(get_service)) -> ActionResponse:
    return service.guess(body)


@router.post("/chat", response_model=ActionResponse)
def chat(body: ChatRequest, service: GameService = Depends(get_service)) -> ActionResponse:
    return service.chat(body)


@router.post("/ping", response_model=StatusResponse)
def ping(body: PingRequest, service: GameService = Depends(get_service)) -> StatusResponse:
    return service.ping(body)


@router.post("/events", response_model=GameUpdateResponse)
async def events(
    body: EventsRequest, request: Request, service: GameService = Depends(get_service)
) -> GameUpdateResponse:
    """Long-poll. The wait happens on a worker thread; this coroutine only watches for the client leaving."""
    cancelled = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancelled))
    try:
        return await run_in_threadpool(service.poll_events, body, cancelled)
    finally:
        cancelled.set()
        watcher.cancel()
        with suppress(asyncio.CancelledError):
            await watcher


@router.get("/health", response_model=StatusResponse)
def health() -> StatusResponse:
    return StatusResponse()


async def _watch_disconnect(request: Request, cancelled: threading.Event) -> None:
    while not cancelled.is_set():
        if await request.is_disconnected():
            logger.debug("Client left during long-poll")
            cancelled.set()
            return
        await asyncio.sleep(DISCONNECT_CHECK_INTERVAL)


# --- ERROR HANDLING ---
def _error_response(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message).model_dump(),
    )


async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc)
    return _error_response(exc.code, str(exc), exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s rejected: malformed body", request.method, request.url.path)
    return _error_response(InvalidRequestError.code, "Unable to parse request body.", InvalidRequestError.status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GameError, game_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
