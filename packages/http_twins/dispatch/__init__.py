"""Per-destination dispatchers."""

from .fallback import DefaultFallbackHandler
from .local import LocalDispatcher
from .remote import RemoteDispatcher

__all__ = [
    "DefaultFallbackHandler",
    "LocalDispatcher",
    "RemoteDispatcher",
]
