"""Plugin-free route registrar.

Every function here registers exactly one host route whose endpoint is the
same shim: resolve the mediator, bind the request shape from the incoming
request, ``await`` the dispatch with the request's cancellation token and
return the result unchanged.

``mediate_methods(endpoints, pattern, request_type, methods, *, mediator=get_mediator,
dispatch=send_request, **route_options)``

- ``endpoints`` is a ``FastAPI`` application or an ``APIRouter``.
- ``request_type`` must subclass ``HttpRequest``; anything else raises
  ``TypeError`` before the host is touched.
- ``mediator`` is the FastAPI dependency resolving the mediator.
- ``dispatch`` is awaited as ``dispatch(mediator, request, cancellation)``;
  the default forwards to ``mediator.send``.
- ``route_options`` go to ``add_api_route`` untouched. ``response_model``
  defaults to ``None`` and ``name`` to the request type name.
- Returns the ``APIRoute`` the host created.

``mediate`` leaves the method set to the host default. The verb helpers are
``mediate_methods`` with a fixed one-element method list.

No deduplication or conflict detection happens here; the host owns the
routing table. Errors raised by the host, by binding, or by the mediator
propagate unchanged.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Iterable, Optional, Union

from fastapi import APIRouter, Depends, FastAPI
from fastapi.routing import APIRoute

from .binding import bind_members
from .dispatch import get_cancellation_token, get_mediator, send_request
from .request import is_http_request_type

__all__ = [
    "DELETE_METHOD",
    "GET_METHOD",
    "PATCH_METHOD",
    "POST_METHOD",
    "PUT_METHOD",
    "build_endpoint",
    "check_request_type",
    "mediate",
    "mediate_delete",
    "mediate_get",
    "mediate_methods",
    "mediate_patch",
    "mediate_post",
    "mediate_put",
    "register_route",
]

Endpoints = Union[FastAPI, APIRouter]

# Shared, never mutated
GET_METHOD = ("GET",)
POST_METHOD = ("POST",)
PUT_METHOD = ("PUT",)
DELETE_METHOD = ("DELETE",)
PATCH_METHOD = ("PATCH",)


def check_request_type(request_type: Any) -> None:
    if not is_http_request_type(request_type):
        raise TypeError(f"request_type must be an HttpRequest subclass, got {request_type!r}")


def build_endpoint(
    request_type: type,
    *,
    mediator: Callable[..., Any] = get_mediator,
    dispatch: Callable[..., Any] = send_request,
) -> Callable[..., Any]:
    """Return the endpoint shim for ``request_type``.

    The shim declares three dependencies (mediator, bound request, token) via
    ``__signature__`` so FastAPI resolves them per request.
    """
    check_request_type(request_type)

    async def endpoint(*, mediator: Any, request: Any, cancellation: Any) -> Any:
        return await dispatch(mediator, request, cancellation)

    endpoint.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
        [
            inspect.Parameter(
                "mediator", inspect.Parameter.KEYWORD_ONLY, default=Depends(mediator)
            ),
            inspect.Parameter(
                "request",
                inspect.Parameter.KEYWORD_ONLY,
                default=Depends(bind_members(request_type)),
            ),
            inspect.Parameter(
                "cancellation",
                inspect.Parameter.KEYWORD_ONLY,
                default=Depends(get_cancellation_token),
            ),
        ]
    )
    endpoint.__name__ = request_type.__name__
    endpoint.__qualname__ = request_type.__qualname__
    endpoint.__doc__ = request_type.__doc__
    return endpoint


def register_route(
    endpoints: Endpoints,
    pattern: str,
    request_type: type,
    methods: Optional[Iterable[str]],
    mediator: Callable[..., Any],
    dispatch: Callable[..., Any],
    route_options: dict,
) -> APIRoute:
    endpoint = build_endpoint(request_type, mediator=mediator, dispatch=dispatch)
    route_options.setdefault("response_model", None)
    endpoints.add_api_route(
        pattern,
        endpoint,
        methods=list(methods) if methods is not None else None,
        **route_options,
    )
    return endpoints.routes[-1]  # type: ignore[return-value]


def mediate(
    endpoints: Endpoints,
    pattern: str,
    request_type: type,
    *,
    mediator: Callable[..., Any] = get_mediator,
    dispatch: Callable[..., Any] = send_request,
    **route_options: Any,
) -> APIRoute:
    """Mediate ``request_type`` on ``pattern`` using the host's default methods."""
    return register_route(endpoints, pattern, request_type, None, mediator, dispatch, route_options)


def mediate_methods(
    endpoints: Endpoints,
    pattern: str,
    request_type: type,
    methods: Iterable[str],
    *,
    mediator: Callable[..., Any] = get_mediator,
    dispatch: Callable[..., Any] = send_request,
    **route_options: Any,
) -> APIRoute:
    """Mediate ``request_type`` on ``pattern`` for the given HTTP methods."""
    return register_route(endpoints, pattern, request_type, methods, mediator, dispatch, route_options)


def mediate_get(endpoints: Endpoints, pattern: str, request_type: type, **options: Any) -> APIRoute:
    return mediate_methods(endpoints, pattern, request_type, GET_METHOD, **options)


def mediate_post(endpoints: Endpoints, pattern: str, request_type: type, **options: Any) -> APIRoute:
    return mediate_methods(endpoints, pattern, request_type, POST_METHOD, **options)


def mediate_put(endpoints: Endpoints, pattern: str, request_type: type, **options: Any) -> APIRoute:
    return mediate_methods(endpoints, pattern, request_type, PUT_METHOD, **options)


def mediate_delete(
    endpoints: Endpoints, pattern: str, request_type: type, **options: Any
) -> APIRoute:
    return mediate_methods(endpoints, pattern, request_type, DELETE_METHOD, **options)


def mediate_patch(
    endpoints: Endpoints, pattern: str, request_type: type, **options: Any
) -> APIRoute:
    return mediate_methods(endpoints, pattern, request_type, PATCH_METHOD, **options)
