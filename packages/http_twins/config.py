"""Runtime settings and the configuration source used for activation.

## Environment Variables

- HTTP_TWINS_REMOTE_TIMEOUT_SECONDS: timeout for remote sends (default: 10)
- HTTP_TWINS_DISPATCH_TIMEOUT_SECONDS: upper bound per dispatch unit (default: 30)
- HTTP_TWINS_MAX_CONCURRENCY: concurrent dispatch units per coordinator (default: 64)
- HTTP_TWINS_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- HTTP_TWINS_LOG_FORMAT: json, text (default: text)
- HTTP_TWINS_BOOKS_REMOTE_DESTINATIONS: comma separated URLs for the demo app
- HTTP_TWINS_HOST / HTTP_TWINS_PORT: bind address for ``python -m http_twins``

Values are read from the process environment after an optional ``.env``
file has been loaded.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "HTTP_TWINS_"


def _env_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Invalid value for {ENV_PREFIX}{name}: {raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{ENV_PREFIX}{name} must be positive, using {default}")
        return default
    return value


def _split_urls(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    remote_timeout_seconds: float = 10.0
    dispatch_timeout_seconds: float = 30.0
    max_concurrency: int = 64
    log_level: str = "INFO"
    log_format: str = "text"
    books_remote_destinations: Tuple[str, ...] = ()
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        env_file: Optional[str] = ".env",
    ) -> "Settings":
        if environ is None:
            if env_file:
                load_dotenv(env_file, override=False)
            environ = os.environ

        return cls(
            remote_timeout_seconds=_env_number(
                environ, "REMOTE_TIMEOUT_SECONDS", cls.remote_timeout_seconds, float
            ),
            dispatch_timeout_seconds=_env_number(
                environ, "DISPATCH_TIMEOUT_SECONDS", cls.dispatch_timeout_seconds, float
            ),
            max_concurrency=_env_number(
                environ, "MAX_CONCURRENCY", cls.max_concurrency, int
            ),
            log_level=environ.get(ENV_PREFIX + "LOG_LEVEL", cls.log_level).upper(),
            log_format=environ.get(ENV_PREFIX + "LOG_FORMAT", cls.log_format).lower(),
            books_remote_destinations=_split_urls(
                environ.get(ENV_PREFIX + "BOOKS_REMOTE_DESTINATIONS")
            ),
            host=environ.get(ENV_PREFIX + "HOST", cls.host),
            port=_env_number(environ, "PORT", cls.port, int),
        )


def relaxed_env_name(key: str) -> str:
    """Map a dotted configuration key to its environment variable name.

    ``http-twins.get-books.enabled`` becomes ``HTTP_TWINS_GET_BOOKS_ENABLED``.
    """

    return re.sub(r"[^A-Za-z0-9]", "_", key).upper()


class ConfigSource:
    """Key lookup for activation placeholders.

    Explicit ``properties`` win over the environment. Environment lookups try
    the key verbatim first, then its relaxed name.
    """

    def __init__(
        self,
        properties: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._properties = dict(properties or {})
        self._environ = os.environ if environ is None else environ

    def get(self, key: str) -> Optional[str]:
        if key in self._properties:
            value = self._properties[key]
            return None if value is None else str(value)
        if key in self._environ:
            return self._environ[key]
        return self._environ.get(relaxed_env_name(key))
