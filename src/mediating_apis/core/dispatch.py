"""Mediator protocol, cancellation signal and the default dispatch dependencies."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from fastapi import FastAPI, Request

from .request import HttpRequest

__all__ = [
    "CancellationToken",
    "Mediator",
    "get_cancellation_token",
    "get_mediator",
    "send_request",
    "use_mediator",
]


class CancellationToken:
    """Per-request cancellation signal.

    The token is cancelled explicitly via :meth:`cancel` or implicitly when the
    client disconnects. ``cancelled`` reports the last known state without
    touching the connection; :meth:`is_cancelled` also polls the client.
    """

    __slots__ = ("_request", "_cancelled")

    def __init__(self, request: Optional[Request] = None):
        self._request = request
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    async def is_cancelled(self) -> bool:
        if not self._cancelled and self._request is not None:
            self._cancelled = await self._request.is_disconnected()
        return self._cancelled

    def __repr__(self) -> str:
        return f"<CancellationToken cancelled={self._cancelled}>"


@runtime_checkable
class Mediator(Protocol):
    """In-process dispatcher routing a request value to its single handler."""

    async def send(self, request: HttpRequest, cancellation: CancellationToken) -> Any:
        ...


def get_cancellation_token(request: Request) -> CancellationToken:
    """FastAPI dependency returning the cancellation signal of ``request``."""
    return CancellationToken(request)


def get_mediator(request: Request) -> Mediator:
    """FastAPI dependency returning the mediator stored on the application.

    A missing registration raises Starlette's ``AttributeError`` unchanged.
    """
    return request.app.state.mediator


def use_mediator(app: FastAPI, mediator: Mediator) -> FastAPI:
    """Make ``mediator`` the one :func:`get_mediator` resolves for ``app``."""
    app.state.mediator = mediator
    return app


async def send_request(
    mediator: Mediator, request: HttpRequest, cancellation: CancellationToken
) -> Any:
    return await mediator.send(request, cancellation)
