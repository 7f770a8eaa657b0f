"""Request capture.

The body of an ASGI request arrives as a stream that can be consumed once.
``capture`` reads it through the Starlette request, which caches the bytes,
so the primary endpoint and every mirror destination see the same body.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from starlette.requests import ClientDisconnect, Request

from .errors import SnapshotError
from .models import RequestSnapshot


def request_target(scope: Mapping[str, Any]) -> str:
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def snapshot_from_scope(
    scope: Mapping[str, Any], body: Optional[bytes]
) -> RequestSnapshot:
    headers = tuple(
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in scope.get("headers", [])
    )
    return RequestSnapshot(
        method=scope.get("method", "GET"),
        uri=request_target(scope),
        headers=headers,
        body=None if body is None else bytes(body),
    )


async def capture(request: Request) -> RequestSnapshot:
    try:
        body = await request.body()
    except ClientDisconnect as exc:
        raise SnapshotError("client disconnected while the body was read") from exc
    except OSError as exc:
        raise SnapshotError(f"failed to read request body: {exc}") from exc
    return snapshot_from_scope(request.scope, body)
