"""Demo application: a small books API with mirrored endpoints.

``GET /books`` is mirrored to the ``reportingAgent`` handler when
``http-twins.get-books.enabled`` resolves true (``HTTP_TWINS_GET_BOOKS_ENABLED``
in the environment). ``POST /books`` is mirrored to ``remoteERP`` and
``reportingAgent`` and to every URL in ``HTTP_TWINS_BOOKS_REMOTE_DESTINATIONS``.
"""

from __future__ import annotations

import itertools
import json
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .config import ConfigSource, Settings
from .coordinator import MirrorCoordinator
from .directive import mirrored
from .emitter import DEFAULT_EMITTER, OutcomeEmitter
from .errors import bad_request, not_found
from .middleware import MirrorMiddleware
from .registry import GLOBAL_REGISTRY, HandlerRegistry

logger = logging.getLogger(__name__)

GET_BOOKS_ACTIVATION = "${http-twins.get-books.enabled:false}"


class BookIn(BaseModel):
    title: str
    author: str


class Book(BookIn):
    id: int


class BookStore:
    def __init__(self) -> None:
        self._books: List[Book] = []
        self._ids = itertools.count(1)

    def all(self) -> List[Book]:
        return list(self._books)

    def get(self, book_id: int) -> Optional[Book]:
        for book in self._books:
            if book.id == book_id:
                return book
        return None

    def add(self, payload: BookIn) -> Book:
        book = Book(id=next(self._ids), **payload.model_dump())
        self._books.append(book)
        return book


def build_routes(store: BookStore, settings: Settings) -> List[Route]:
    @mirrored(local="reportingAgent", active=GET_BOOKS_ACTIVATION)
    async def list_books(request: Request) -> JSONResponse:
        return JSONResponse([book.model_dump(mode="json") for book in store.all()])

    @mirrored(
        local=["remoteERP", "reportingAgent"],
        remote=settings.books_remote_destinations,
    )
    async def create_book(request: Request) -> JSONResponse:
        try:
            payload = BookIn(**(await request.json()))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Rejected book payload: {e}")
            return bad_request("invalid JSON" if isinstance(e, json.JSONDecodeError) else str(e))

        book = store.add(payload)
        logger.info(f"Created book {book.id}")
        return JSONResponse(book.model_dump(mode="json"), status_code=201)

    async def get_book(request: Request) -> JSONResponse:
        book = store.get(request.path_params["book_id"])
        if book is None:
            return not_found("book not found")
        return JSONResponse(book.model_dump(mode="json"))

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "healthy"})

    return [
        Route("/books", list_books, methods=["GET"]),
        Route("/books", create_book, methods=["POST"]),
        Route("/books/{book_id:int}", get_book, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
    ]


def create_app(
    settings: Optional[Settings] = None,
    *,
    registry: HandlerRegistry = GLOBAL_REGISTRY,
    client: Optional[httpx.AsyncClient] = None,
    config_source: Optional[ConfigSource] = None,
    emitter: OutcomeEmitter = DEFAULT_EMITTER,
) -> Starlette:
    settings = settings or Settings.from_env()
    coordinator = MirrorCoordinator(
        registry=registry,
        client=client,
        emitter=emitter,
        config_source=config_source,
        settings=settings,
    )
    store = BookStore()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        yield
        await coordinator.aclose()

    app = Starlette(
        routes=build_routes(store, settings),
        middleware=[Middleware(MirrorMiddleware, coordinator=coordinator)],
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator
    app.state.books = store
    return app
