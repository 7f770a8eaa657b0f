from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .coordinator import MirrorCoordinator
from .directive import DirectiveSource, directive_from_route

logger = logging.getLogger(__name__)


class MirrorMiddleware(BaseHTTPMiddleware):
    """Interception hook that runs fan-out before the primary endpoint.

    The body read during capture is cached by Starlette and replayed to the
    endpoint. Errors raised while mirroring are logged and the request
    continues untouched.
    """

    def __init__(
        self,
        app,
        *,
        coordinator: MirrorCoordinator,
        directive_source: DirectiveSource = directive_from_route,
    ):
        super().__init__(app)
        self.coordinator = coordinator
        self.directive_source = directive_source

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            directive = self.directive_source(request)
            if directive is not None:
                await self.coordinator.fanout(directive, request)
        except Exception:
            logger.exception(
                f"HttpTwins ERROR: mirroring failed for {request.method} {request.url.path}"
            )
        return await call_next(request)
