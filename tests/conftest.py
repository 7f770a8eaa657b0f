"""
Shared pytest fixtures for all tests.

Provides fake inbound requests, a recording outcome emitter, handler
registries and coordinators wired to ``httpx.MockTransport`` so remote
destinations never touch the network.
"""

from typing import Callable, Iterable, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from starlette.requests import Request

from http_twins.config import ConfigSource, Settings
from http_twins.coordinator import MirrorCoordinator
from http_twins.models import DispatchOutcome, RequestSnapshot
from http_twins.registry import HandlerRegistry, MirrorHandler


class RecordingEmitter:
    def __init__(self) -> None:
        self.outcomes: List[DispatchOutcome] = []

    def emit(self, outcome: DispatchOutcome) -> None:
        self.outcomes.append(outcome)

    def for_destination(self, identifier: str) -> List[DispatchOutcome]:
        return [o for o in self.outcomes if o.identifier == identifier]


class RecordingHandler(MirrorHandler):
    def __init__(self) -> None:
        self.calls: List[RequestSnapshot] = []

    def process(self, snapshot: RequestSnapshot) -> None:
        self.calls.append(snapshot)


class FailingHandler(MirrorHandler):
    def process(self, snapshot: RequestSnapshot) -> None:
        raise RuntimeError("handler exploded")


def make_request(
    method: str = "GET",
    path: str = "/x",
    *,
    body: bytes = b"",
    headers: Optional[Iterable[Tuple[str, str]]] = None,
    query: bytes = b"",
    chunks: Optional[List[bytes]] = None,
    receive_log: Optional[list] = None,
) -> Request:
    """Build a Starlette request backed by an in-memory receive channel."""

    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or [])
    ]
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "query_string": query,
        "headers": raw_headers,
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 50000),
    }

    parts = chunks if chunks is not None else [body]
    messages = [
        {"type": "http.request", "body": part, "more_body": index < len(parts) - 1}
        for index, part in enumerate(parts)
    ]

    async def receive():
        if receive_log is not None:
            receive_log.append(1)
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def registry():
    return HandlerRegistry()


@pytest.fixture
def remote_requests():
    """Requests received by the default mock remote transport."""
    return []


@pytest.fixture
def settings():
    return Settings(
        remote_timeout_seconds=2.0,
        dispatch_timeout_seconds=2.0,
        max_concurrency=16,
    )


@pytest_asyncio.fixture
async def http_client(remote_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        remote_requests.append(request)
        return httpx.Response(200, text="ignored")

    async with mock_client(handler) as client:
        yield client


@pytest_asyncio.fixture
async def coordinator(registry, http_client, emitter, settings):
    """MirrorCoordinator wired to the recording emitter and mock transport."""
    coordinator = MirrorCoordinator(
        registry=registry,
        client=http_client,
        emitter=emitter,
        config_source=ConfigSource(properties={}, environ={}),
        settings=settings,
    )
    yield coordinator
    await coordinator.aclose()
