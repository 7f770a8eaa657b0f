"""Default destination for directives that declare none."""

from __future__ import annotations

import logging
from typing import Optional

from ..models import DestinationKind, DispatchOutcome, RequestSnapshot

logger = logging.getLogger(__name__)

FALLBACK_IDENTIFIER = "default"


class DefaultFallbackHandler:
    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    async def handle(self, snapshot: RequestSnapshot) -> DispatchOutcome:
        self._log.info(
            f"HttpTwins default logger: {snapshot.method} {snapshot.uri}",
            extra={
                "method": snapshot.method,
                "uri": snapshot.uri,
                "headers": [list(pair) for pair in snapshot.headers],
                "body": snapshot.text(),
            },
        )
        return DispatchOutcome.ok(DestinationKind.FALLBACK, FALLBACK_IDENTIFIER)
