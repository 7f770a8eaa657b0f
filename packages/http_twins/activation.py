"""Activation gate for mirror directives.

Activation fails closed: a missing key, an empty value or anything that is
not a recognized boolean token disables mirroring for the invocation.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from .config import ConfigSource

logger = logging.getLogger(__name__)

# ${key} or ${key:default}
_PLACEHOLDER = re.compile(r"\$\{([^}:]*)(?::([^}]*))?\}")

TRUE_TOKENS = frozenset({"true", "yes", "on", "1"})
FALSE_TOKENS = frozenset({"false", "no", "off", "0"})


class ActivationResolver:
    def __init__(self, config_source: Optional[ConfigSource] = None) -> None:
        self.config_source = config_source or ConfigSource()

    def resolve(self, activation: Any) -> bool:
        if isinstance(activation, bool):
            return activation
        if not isinstance(activation, str):
            logger.debug(f"Unsupported activation value {activation!r}, mirroring disabled")
            return False

        resolved = self.resolve_placeholders(activation)
        if resolved is None:
            logger.debug(f"Activation {activation!r} references a missing key, mirroring disabled")
            return False

        token = resolved.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token not in FALSE_TOKENS:
            logger.debug(f"Activation {activation!r} resolved to ambiguous {resolved!r}, mirroring disabled")
        return False

    def resolve_placeholders(self, expression: str) -> Optional[str]:
        """Substitute every placeholder in ``expression``.

        Returns ``None`` when a placeholder has neither a value nor a default.
        """

        missing = False

        def _substitute(match: re.Match) -> str:
            nonlocal missing
            key = match.group(1).strip()
            default = match.group(2)
            value = self._lookup(key) if key else None
            if value is not None:
                return value
            if default is not None:
                return default
            missing = True
            return ""

        text = _PLACEHOLDER.sub(_substitute, expression)
        return None if missing else text

    def _lookup(self, key: str) -> Optional[str]:
        try:
            return self.config_source.get(key)
        except Exception as exc:
            logger.debug(f"Configuration lookup for {key!r} failed: {exc}")
            return None
