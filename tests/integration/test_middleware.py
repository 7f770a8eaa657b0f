"""Integration tests for the mirroring middleware on a Starlette app."""

import asyncio
import logging

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from http_twins.coordinator import MirrorCoordinator
from http_twins.directive import mirrored
from http_twins.middleware import MirrorMiddleware
from http_twins.models import DestinationKind, FailureKind
from http_twins.registry import MirrorHandler

from conftest import RecordingHandler, mock_client


def build_app(coordinator: MirrorCoordinator, primary_bodies: list, **middleware_kwargs) -> Starlette:
    @mirrored()
    async def touch(request: Request) -> Response:
        primary_bodies.append(await request.body())
        return JSONResponse({"ok": True})

    @mirrored(local=["reportingAgent"])
    async def report(request: Request) -> Response:
        primary_bodies.append(await request.body())
        return JSONResponse({"ok": True})

    @mirrored(remote=["https://example.test/a", "https://example.test/b"])
    async def create_order(request: Request) -> Response:
        payload = await request.json()
        primary_bodies.append(await request.body())
        return JSONResponse({"received": payload}, status_code=201)

    @mirrored(local=["missing"])
    async def misconfigured(request: Request) -> Response:
        return JSONResponse({"ok": True})

    @mirrored(local=["reportingAgent"], active=False)
    async def disabled(request: Request) -> Response:
        return JSONResponse({"ok": True})

    @mirrored(local=["slow"])
    async def slow(request: Request) -> Response:
        return JSONResponse({"ok": True})

    async def plain(request: Request) -> Response:
        return JSONResponse({"ok": True})

    @mirrored(local=["reportingAgent"])
    async def nested(request: Request) -> Response:
        return JSONResponse({"ok": True})

    routes = [
        Route("/x", touch, methods=["GET"]),
        Route("/report", report, methods=["GET", "POST"]),
        Route("/orders", create_order, methods=["POST"]),
        Route("/misconfigured", misconfigured, methods=["GET"]),
        Route("/disabled", disabled, methods=["GET"]),
        Route("/slow", slow, methods=["GET"]),
        Route("/plain", plain, methods=["GET"]),
        Mount("/api", routes=[Route("/nested/{item}", nested, methods=["GET"])]),
    ]
    return Starlette(
        routes=routes,
        middleware=[Middleware(MirrorMiddleware, coordinator=coordinator, **middleware_kwargs)],
    )


@pytest.mark.asyncio
class TestMirrorMiddleware:
    async def test_fallback_for_directive_without_destinations(self, coordinator, emitter, caplog):
        primary_bodies = []
        app = build_app(coordinator, primary_bodies)

        with caplog.at_level(logging.INFO, logger="http_twins.dispatch.fallback"):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.get("/x")
            await coordinator.drain()

        assert response.status_code == 200
        fallback_records = [r for r in caplog.records if r.name == "http_twins.dispatch.fallback"]
        assert len(fallback_records) == 1
        assert fallback_records[0].method == "GET"
        assert fallback_records[0].uri == "/x"
        assert [o.kind for o in emitter.outcomes] == [DestinationKind.FALLBACK]

    async def test_local_destination_and_primary_both_read_body(
        self, coordinator, registry, remote_requests
    ):
        handler = RecordingHandler()
        registry.register_local_handler("reportingAgent", handler)
        primary_bodies = []
        app = build_app(coordinator, primary_bodies)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/report", content=b"report-body")
        await coordinator.drain()

        assert response.status_code == 200
        assert primary_bodies == [b"report-body"]
        assert len(handler.calls) == 1
        assert handler.calls[0].body == b"report-body"
        assert handler.calls[0].method == "POST"
        assert handler.calls[0].uri == "/report"
        assert remote_requests == []

    async def test_remote_destinations_receive_clone(self, coordinator, remote_requests):
        primary_bodies = []
        app = build_app(coordinator, primary_bodies)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/orders", json={"id": 1})
        await coordinator.drain()

        assert response.status_code == 201
        assert response.json() == {"received": {"id": 1}}
        assert sorted(str(r.url) for r in remote_requests) == [
            "https://example.test/a",
            "https://example.test/b",
        ]
        for mirrored_request in remote_requests:
            assert mirrored_request.method == "POST"
            assert mirrored_request.content == primary_bodies[0]
            assert mirrored_request.headers["content-type"] == "application/json"
            assert mirrored_request.headers["host"] == "test"
        assert remote_requests[0].headers.raw == remote_requests[1].headers.raw

    async def test_remote_failure_does_not_touch_primary(self, registry, emitter, settings):
        def handler(request):
            if request.url.path == "/a":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200)

        async with mock_client(handler) as http_client:
            coordinator = MirrorCoordinator(
                registry=registry, client=http_client, emitter=emitter, settings=settings
            )
            app = build_app(coordinator, [])
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post("/orders", json={"id": 1})
            await coordinator.aclose()

        assert response.status_code == 201
        outcomes = {o.identifier: o for o in emitter.outcomes}
        assert not outcomes["https://example.test/a"].succeeded
        assert outcomes["https://example.test/b"].succeeded

    async def test_missing_handler_logged_once(self, coordinator, emitter):
        app = build_app(coordinator, [])

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/misconfigured")
        await coordinator.drain()

        assert response.status_code == 200
        assert len(emitter.outcomes) == 1
        assert emitter.outcomes[0].failure is FailureKind.LOCAL_HANDLER_NOT_FOUND

    async def test_inactive_and_unannotated_routes_do_nothing(self, coordinator, registry, emitter):
        handler = RecordingHandler()
        registry.register_local_handler("reportingAgent", handler)
        app = build_app(coordinator, [])

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/disabled")).status_code == 200
            assert (await client.get("/plain")).status_code == 200
            assert (await client.get("/unknown")).status_code == 404
        await coordinator.drain()

        assert handler.calls == []
        assert emitter.outcomes == []

    async def test_mounted_route_directive(self, coordinator, registry):
        handler = RecordingHandler()
        registry.register_local_handler("reportingAgent", handler)
        app = build_app(coordinator, [])

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/nested/42?verbose=1")
        await coordinator.drain()

        assert response.status_code == 200
        assert len(handler.calls) == 1
        assert handler.calls[0].uri == "/api/nested/42?verbose=1"

    async def test_slow_destination_does_not_delay_response(self, coordinator, registry, emitter):
        release = asyncio.Event()

        class SlowHandler(MirrorHandler):
            async def process(self, snapshot):
                await release.wait()

        registry.register_local("slow", SlowHandler)
        app = build_app(coordinator, [])

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await asyncio.wait_for(client.get("/slow"), timeout=2)

        assert response.status_code == 200
        assert coordinator.pending == 1
        assert emitter.outcomes == []

        release.set()
        await coordinator.drain()
        assert emitter.outcomes[0].succeeded

    async def test_directive_source_error_is_contained(self, coordinator):
        def broken_source(request):
            raise RuntimeError("directive lookup failed")

        app = build_app(coordinator, [], directive_source=broken_source)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/x")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
