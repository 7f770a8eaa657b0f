"""Data model shared by the mirroring components."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator


class MirrorDirective(BaseModel):
    """Destinations a request is mirrored to, and whether mirroring is on.

    ``activation`` is either a literal boolean or a deferred expression such
    as ``"${http-twins.get-books.enabled}"`` that is resolved against the
    configuration source on every invocation.
    """

    model_config = ConfigDict(frozen=True)

    local_destinations: FrozenSet[str] = frozenset()
    remote_destinations: FrozenSet[str] = frozenset()
    activation: Union[bool, str] = True
    remote_processor: Optional[str] = None

    @field_validator("local_destinations", "remote_destinations", mode="before")
    @classmethod
    def _coerce_destinations(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset({value})
        return value

    @field_validator("local_destinations", "remote_destinations")
    @classmethod
    def _reject_blank(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        if any(not item.strip() for item in value):
            raise ValueError("destination entries must not be blank")
        return value

    @property
    def has_destinations(self) -> bool:
        return bool(self.local_destinations or self.remote_destinations)


@dataclass(frozen=True)
class RequestSnapshot:
    """Immutable, replayable capture of an inbound request.

    ``headers`` keeps every ``(name, value)`` pair in the order it was
    received, duplicates included. ``body`` is ``None`` when no body source
    was captured; an empty request body is ``b""``.
    """

    method: str
    uri: str
    headers: Tuple[Tuple[str, str], ...] = ()
    body: Optional[bytes] = None

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def header(self, name: str) -> Optional[str]:
        for value in self.header_values(name):
            return value
        return None

    def header_values(self, name: str) -> List[str]:
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]

    def text(self, encoding: str = "utf-8") -> str:
        if not self.body:
            return ""
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body)


class DestinationKind(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    FALLBACK = "fallback"


class FailureKind(str, Enum):
    LOCAL_HANDLER_NOT_FOUND = "local_handler_not_found"
    LOCAL_HANDLER_FAILURE = "local_handler_failure"
    REMOTE_TRANSPORT_FAILURE = "remote_transport_failure"
    DISPATCH_TIMEOUT = "dispatch_timeout"


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of mirroring to a single destination. Observability only."""

    kind: DestinationKind
    identifier: str
    succeeded: bool
    error_detail: Optional[str] = None
    failure: Optional[FailureKind] = None
    status_code: Optional[int] = None
    elapsed_ms: Optional[float] = None

    @classmethod
    def ok(
        cls,
        kind: DestinationKind,
        identifier: str,
        *,
        status_code: Optional[int] = None,
    ) -> "DispatchOutcome":
        return cls(
            kind=kind,
            identifier=identifier,
            succeeded=True,
            status_code=status_code,
        )

    @classmethod
    def failed(
        cls,
        kind: DestinationKind,
        identifier: str,
        error_detail: str,
        *,
        failure: Optional[FailureKind] = None,
        status_code: Optional[int] = None,
    ) -> "DispatchOutcome":
        return cls(
            kind=kind,
            identifier=identifier,
            succeeded=False,
            error_detail=error_detail,
            failure=failure,
            status_code=status_code,
        )

    def log_fields(self) -> dict[str, Any]:
        return {
            "destination_kind": self.kind.value,
            "destination": self.identifier,
            "succeeded": self.succeeded,
            "failure": self.failure.value if self.failure else None,
            "error_detail": self.error_detail,
            "status_code": self.status_code,
            "elapsed_ms": self.elapsed_ms,
        }
