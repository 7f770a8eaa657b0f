"""Sample local destinations."""

from __future__ import annotations

import logging

from .models import RequestSnapshot
from .registry import HandlerRegistry, MirrorHandler

logger = logging.getLogger(__name__)


class ReportingAgent(MirrorHandler):
    name = "reportingAgent"

    def process(self, snapshot: RequestSnapshot) -> None:
        logger.info(
            f"HttpTwins request for [ReportingAgent]: processing {snapshot.method} "
            f"request for URI {snapshot.uri}"
        )


class RemoteERP(MirrorHandler):
    """Logs the full mirrored request, headers and body included."""

    name = "remoteERP"

    def process(self, snapshot: RequestSnapshot) -> None:
        lines = [
            "==================== HttpTwins Request for [RemoteERP] ====================",
            f"Method: {snapshot.method}",
            f"URI: {snapshot.uri}",
            "--- Headers ---",
        ]
        lines.extend(f"{name}: {value}" for name, value in snapshot.headers)
        lines.append("--- Body ---")
        if not snapshot.has_body:
            lines.append("[No Body]")
        elif not snapshot.body:
            lines.append("[Empty Body]")
        else:
            lines.append(snapshot.text())
        logger.info("\n".join(lines))


BUILTIN_HANDLERS = (ReportingAgent, RemoteERP)


def register_builtin_handlers(registry: HandlerRegistry) -> None:
    for handler_cls in BUILTIN_HANDLERS:
        registry.register_local(handler_cls.name, handler_cls)
