"""The ``HttpRequest`` marker.

A request shape is any subclass of :class:`HttpRequest`. The marker carries no
members; subclasses declare their own annotated members, which the member
binder turns into FastAPI parameters. The result a mediator produces for a
request shape is whatever the host accepts as a response (usually a Starlette
``Response``).
"""

from __future__ import annotations

from typing import Any

__all__ = ["HttpRequest", "is_http_request_type"]


class HttpRequest:
    """Marker base for request shapes dispatched through a mediator."""

    __slots__ = ()


def is_http_request_type(candidate: Any) -> bool:
    return isinstance(candidate, type) and issubclass(candidate, HttpRequest)
