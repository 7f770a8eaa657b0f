"""Observability sink for dispatch outcomes."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .models import DispatchOutcome, FailureKind

logger = logging.getLogger(__name__)


class OutcomeEmitter(Protocol):
    def emit(self, outcome: DispatchOutcome) -> None:  # pragma: no cover - interface
        ...


class LoggingEmitter:
    """Writes one structured log record per dispatch outcome."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def emit(self, outcome: DispatchOutcome) -> None:
        fields = outcome.log_fields()
        kind = outcome.kind.value
        if outcome.succeeded:
            self._log.info(
                f"HttpTwins: mirrored request to {kind} destination '{outcome.identifier}'",
                extra=fields,
            )
        elif outcome.failure is FailureKind.LOCAL_HANDLER_NOT_FOUND:
            self._log.warning(
                f"HttpTwins WARNING: no handler registered for local destination '{outcome.identifier}'",
                extra=fields,
            )
        else:
            self._log.error(
                f"HttpTwins ERROR: failed to mirror request to {kind} destination "
                f"'{outcome.identifier}'. Reason: {outcome.error_detail}",
                extra=fields,
            )


DEFAULT_EMITTER: OutcomeEmitter = LoggingEmitter()
