"""Fan-out of a captured request to every destination of a directive.

``MirrorCoordinator.fanout`` is awaited on the request path, but the only
step it waits for is capturing the request. Each destination then runs as
its own asyncio task, bounded by a coordinator-wide semaphore and a
per-unit timeout. Every failure is turned into a :class:`DispatchOutcome`
at the unit boundary and handed to the emitter; nothing is raised back to
the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import replace
from typing import Awaitable, Optional, Set

import httpx
from starlette.requests import Request

from .activation import ActivationResolver
from .config import ConfigSource, Settings
from .dispatch import DefaultFallbackHandler, LocalDispatcher, RemoteDispatcher
from .dispatch.fallback import FALLBACK_IDENTIFIER
from .emitter import DEFAULT_EMITTER, OutcomeEmitter
from .errors import SnapshotError
from .models import (
    DestinationKind,
    DispatchOutcome,
    FailureKind,
    MirrorDirective,
    RequestSnapshot,
)
from .registry import GLOBAL_REGISTRY, HandlerRegistry
from .snapshot import capture

logger = logging.getLogger(__name__)

_FAILURE_BY_KIND = {
    DestinationKind.LOCAL: FailureKind.LOCAL_HANDLER_FAILURE,
    DestinationKind.REMOTE: FailureKind.REMOTE_TRANSPORT_FAILURE,
}


class MirrorCoordinator:
    def __init__(
        self,
        *,
        registry: HandlerRegistry = GLOBAL_REGISTRY,
        client: Optional[httpx.AsyncClient] = None,
        emitter: OutcomeEmitter = DEFAULT_EMITTER,
        config_source: Optional[ConfigSource] = None,
        settings: Optional[Settings] = None,
        fallback: Optional[DefaultFallbackHandler] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.registry = registry
        self.emitter = emitter
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.remote_timeout_seconds
        )
        self.activation = ActivationResolver(config_source)
        self.local = LocalDispatcher(registry)
        self.remote = RemoteDispatcher(
            self.client, timeout=self.settings.remote_timeout_seconds
        )
        self.fallback = fallback or DefaultFallbackHandler()
        self._slots = asyncio.Semaphore(self.settings.max_concurrency)
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def fanout(self, directive: MirrorDirective, request: Request) -> None:
        if not self.activation.resolve(directive.activation):
            return

        try:
            snapshot = await capture(request)
        except SnapshotError as exc:
            logger.error(
                f"HttpTwins ERROR: abandoning fan-out for {request.method} "
                f"{request.url.path}: {exc}"
            )
            return

        self.dispatch(directive, snapshot)

    def dispatch(self, directive: MirrorDirective, snapshot: RequestSnapshot) -> int:
        """Schedule one unit per destination and return how many were scheduled."""

        scheduled = 0
        for name in directive.local_destinations:
            self._schedule(
                DestinationKind.LOCAL, name, self.local.dispatch(name, snapshot)
            )
            scheduled += 1

        for url in directive.remote_destinations:
            self._schedule(
                DestinationKind.REMOTE,
                url,
                self._dispatch_remote(directive.remote_processor, url, snapshot),
            )
            scheduled += 1

        if not directive.has_destinations:
            self._schedule(
                DestinationKind.FALLBACK,
                FALLBACK_IDENTIFIER,
                self.fallback.handle(snapshot),
            )
            scheduled += 1

        return scheduled

    async def _dispatch_remote(
        self, processor_name: Optional[str], url: str, snapshot: RequestSnapshot
    ) -> DispatchOutcome:
        if processor_name is None:
            return await self.remote.dispatch(url, snapshot)

        processor = self.registry.get_remote(processor_name)
        if processor is None:
            return DispatchOutcome.failed(
                DestinationKind.REMOTE,
                url,
                f"remote processor '{processor_name}' not registered",
                failure=FailureKind.REMOTE_TRANSPORT_FAILURE,
            )
        return await processor.dispatch(url, snapshot)

    # ------------------------------------------------------------------
    # Dispatch units
    # ------------------------------------------------------------------

    def _schedule(
        self,
        kind: DestinationKind,
        identifier: str,
        work: Awaitable[DispatchOutcome],
    ) -> None:
        task = asyncio.create_task(
            self._run_unit(kind, identifier, work),
            name=f"http-twins:{kind.value}:{identifier}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_unit(
        self,
        kind: DestinationKind,
        identifier: str,
        work: Awaitable[DispatchOutcome],
    ) -> None:
        """Run one destination and emit its outcome.

        The timeout covers the whole unit, including the wait for a
        concurrency slot.
        """

        timeout = self.settings.dispatch_timeout_seconds
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._bounded(work), timeout=timeout)
            outcome = self._as_outcome(kind, identifier, result)
        except asyncio.TimeoutError:
            outcome = DispatchOutcome.failed(
                kind,
                identifier,
                f"timed out after {timeout}s",
                failure=FailureKind.DISPATCH_TIMEOUT,
            )
        except Exception as exc:
            outcome = DispatchOutcome.failed(
                kind,
                identifier,
                f"{type(exc).__name__}: {exc}",
                failure=_FAILURE_BY_KIND.get(kind),
            )
        finally:
            if inspect.iscoroutine(work):
                # Never started when the timeout hit while waiting for a slot.
                work.close()

        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        outcome = replace(outcome, elapsed_ms=elapsed_ms)
        try:
            self.emitter.emit(outcome)
        except Exception:
            logger.exception(f"Outcome emitter failed for {kind.value} destination '{identifier}'")

    async def _bounded(self, work: Awaitable[DispatchOutcome]) -> object:
        async with self._slots:
            return await work

    @staticmethod
    def _as_outcome(
        kind: DestinationKind, identifier: str, result: object
    ) -> DispatchOutcome:
        if isinstance(result, DispatchOutcome):
            return result
        # Processors that return nothing completed without raising.
        if result is None:
            return DispatchOutcome.ok(kind, identifier)
        return DispatchOutcome.failed(
            kind,
            identifier,
            f"unexpected dispatch result {type(result).__name__}",
            failure=_FAILURE_BY_KIND.get(kind),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every scheduled unit has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_client:
            await self.client.aclose()
