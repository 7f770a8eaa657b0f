"""Exceptions and error responses for http_twins."""

from __future__ import annotations

from pydantic import BaseModel
from starlette import status
from starlette.responses import JSONResponse


class MirrorError(Exception):
    """Base class for errors raised by the mirroring layer."""


class SnapshotError(MirrorError):
    """The request body could not be captured for mirroring.

    Fan-out is abandoned for the invocation; the primary request is not
    affected.
    """


class MirrorConfigurationError(MirrorError, ValueError):
    """A mirror directive was declared with invalid values."""


class APIError(BaseModel):
    detail: str


def bad_request(detail: str) -> JSONResponse:
    return JSONResponse(
        APIError(detail=detail).model_dump(mode="json"),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def not_found(detail: str) -> JSONResponse:
    return JSONResponse(
        APIError(detail=detail).model_dump(mode="json"),
        status_code=status.HTTP_404_NOT_FOUND,
    )
