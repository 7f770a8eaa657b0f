"""Dispatch to in-process handlers."""

from __future__ import annotations

import inspect
import logging

from starlette.concurrency import run_in_threadpool

from ..models import DestinationKind, DispatchOutcome, FailureKind, RequestSnapshot
from ..registry import GLOBAL_REGISTRY, HandlerRegistry, MirrorHandler

logger = logging.getLogger(__name__)


async def call_handler(handler: MirrorHandler, snapshot: RequestSnapshot) -> None:
    if inspect.iscoroutinefunction(handler.process):
        await handler.process(snapshot)
    else:
        await run_in_threadpool(handler.process, snapshot)


class LocalDispatcher:
    def __init__(self, registry: HandlerRegistry = GLOBAL_REGISTRY) -> None:
        self.registry = registry

    async def dispatch(self, name: str, snapshot: RequestSnapshot) -> DispatchOutcome:
        try:
            handler = self.registry.get_local(name)
            if handler is None:
                return DispatchOutcome.failed(
                    DestinationKind.LOCAL,
                    name,
                    "handler not registered",
                    failure=FailureKind.LOCAL_HANDLER_NOT_FOUND,
                )
            await call_handler(handler, snapshot)
        except Exception as exc:
            logger.debug(f"Local handler '{name}' raised", exc_info=True)
            return DispatchOutcome.failed(
                DestinationKind.LOCAL,
                name,
                f"{type(exc).__name__}: {exc}",
                failure=FailureKind.LOCAL_HANDLER_FAILURE,
            )
        return DispatchOutcome.ok(DestinationKind.LOCAL, name)
