"""Client-facing exports for http_twins."""

from .activation import ActivationResolver
from .config import ConfigSource, Settings
from .coordinator import MirrorCoordinator
from .directive import directive_from_route, mirrored
from .emitter import DEFAULT_EMITTER, LoggingEmitter, OutcomeEmitter
from .errors import MirrorConfigurationError, MirrorError, SnapshotError
from .handlers import register_builtin_handlers
from .middleware import MirrorMiddleware
from .models import (
    DestinationKind,
    DispatchOutcome,
    FailureKind,
    MirrorDirective,
    RequestSnapshot,
)
from .registry import GLOBAL_REGISTRY, HandlerRegistry, MirrorHandler
from .snapshot import capture

register_builtin_handlers(GLOBAL_REGISTRY)

__all__ = [
    "ActivationResolver",
    "ConfigSource",
    "Settings",
    "MirrorCoordinator",
    "mirrored",
    "directive_from_route",
    "DEFAULT_EMITTER",
    "LoggingEmitter",
    "OutcomeEmitter",
    "MirrorError",
    "MirrorConfigurationError",
    "SnapshotError",
    "MirrorMiddleware",
    "DestinationKind",
    "DispatchOutcome",
    "FailureKind",
    "MirrorDirective",
    "RequestSnapshot",
    "GLOBAL_REGISTRY",
    "HandlerRegistry",
    "MirrorHandler",
    "capture",
]
