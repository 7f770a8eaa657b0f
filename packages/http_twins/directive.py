"""Declaring mirror directives on endpoints.

    @mirrored(local=["reportingAgent"], active="${http-twins.get-books.enabled}")
    async def list_books(request):
        ...

The directive is stored on the endpoint and looked up per request by
:func:`directive_from_route`.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, MutableMapping, Optional, TypeVar, Union

from pydantic import ValidationError
from starlette.requests import Request
from starlette.routing import BaseRoute, Match

from .errors import MirrorConfigurationError
from .models import MirrorDirective

DIRECTIVE_ATTRIBUTE = "__mirror_directive__"

DirectiveSource = Callable[[Request], Optional[MirrorDirective]]

E = TypeVar("E")


def mirrored(
    local: Union[str, Iterable[str]] = (),
    remote: Union[str, Iterable[str]] = (),
    *,
    active: Union[bool, str] = True,
    remote_processor: Optional[str] = None,
) -> Callable[[E], E]:
    try:
        directive = MirrorDirective(
            local_destinations=local,
            remote_destinations=remote,
            activation=active,
            remote_processor=remote_processor,
        )
    except ValidationError as exc:
        raise MirrorConfigurationError(str(exc)) from exc

    def decorator(endpoint: E) -> E:
        setattr(endpoint, DIRECTIVE_ATTRIBUTE, directive)
        return endpoint

    return decorator


def directive_for(endpoint: Any) -> Optional[MirrorDirective]:
    return getattr(endpoint, DIRECTIVE_ATTRIBUTE, None)


def _match_endpoint(
    routes: Iterable[BaseRoute], scope: MutableMapping[str, Any]
) -> Optional[Any]:
    for route in routes:
        match, child_scope = route.matches(scope)
        if match != Match.FULL:
            continue
        nested = getattr(route, "routes", None)
        if nested:
            endpoint = _match_endpoint(nested, {**scope, **child_scope})
            if endpoint is not None:
                return endpoint
            continue
        return child_scope.get("endpoint")
    return None


def directive_from_route(request: Request) -> Optional[MirrorDirective]:
    """Return the directive of the endpoint this request routes to, if any."""

    app = request.scope.get("app")
    routes = getattr(app, "routes", None)
    if not routes:
        return None
    endpoint = _match_endpoint(routes, dict(request.scope))
    if endpoint is None:
        return None
    return directive_for(endpoint)
