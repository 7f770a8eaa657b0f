"""Destination registry for http_twins.

Local destinations are in-process handlers addressed by a logical name.
Remote processors decide how a snapshot is delivered to a remote URL; the
default is :class:`http_twins.dispatch.remote.RemoteDispatcher`, alternative
processors are registered here by name and selected per directive.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol

from .models import DispatchOutcome, RequestSnapshot


# ---------------------------------------------------------------------------
# Local handlers
# ---------------------------------------------------------------------------


class MirrorHandler:
    """Base class for local mirror destinations.

    Subclasses override :meth:`process`, either as a plain method (run in a
    worker thread) or as a coroutine. Raised exceptions are recorded as a
    failed dispatch and never reach the primary request.
    """

    def process(self, snapshot: RequestSnapshot) -> Any:
        raise NotImplementedError


MirrorHandlerFactory = Callable[[], MirrorHandler]


# ---------------------------------------------------------------------------
# Remote processors
# ---------------------------------------------------------------------------


class RemoteProcessor(Protocol):
    async def dispatch(
        self, url: str, snapshot: RequestSnapshot
    ) -> DispatchOutcome:  # pragma: no cover - interface
        ...


RemoteProcessorFactory = Callable[[], RemoteProcessor]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class HandlerRegistry:
    """Registry of handler and processor factories addressable by name."""

    def __init__(self) -> None:
        self._local_by_name: Dict[str, MirrorHandlerFactory] = {}
        self._remote_by_name: Dict[str, RemoteProcessorFactory] = {}

    # Local handlers --------------------------------------------------------

    def register_local(self, name: str, factory: MirrorHandlerFactory) -> None:
        self._local_by_name[name] = factory

    def register_local_handler(self, name: str, handler: MirrorHandler) -> None:
        self.register_local(name, lambda: handler)

    def unregister_local(self, name: str) -> None:
        self._local_by_name.pop(name, None)

    def get_local(self, name: str) -> Optional[MirrorHandler]:
        factory = self._local_by_name.get(name)
        if factory is None:
            return None
        return factory()

    @property
    def local_names(self) -> List[str]:
        return sorted(self._local_by_name)

    # Remote processors -----------------------------------------------------

    def register_remote(self, name: str, factory: RemoteProcessorFactory) -> None:
        self._remote_by_name[name] = factory

    def unregister_remote(self, name: str) -> None:
        self._remote_by_name.pop(name, None)

    def get_remote(self, name: str) -> Optional[RemoteProcessor]:
        factory = self._remote_by_name.get(name)
        if factory is None:
            return None
        return factory()


# Global registry instance used by default coordinators.
GLOBAL_REGISTRY = HandlerRegistry()
