"""Tests for mediator resolution and cancellation propagation."""

import pytest
from fastapi import Depends, FastAPI, Response
from fastapi.testclient import TestClient

from _shapes import GetItem, RecordingMediator
from mediating_apis import (
    CancellationToken,
    Mediator,
    get_cancellation_token,
    mediate_get,
    use_mediator,
)


def test_token_is_passed_through_unchanged():
    token = CancellationToken()
    mediator = RecordingMediator()
    app = use_mediator(FastAPI(), mediator)
    app.dependency_overrides[get_cancellation_token] = lambda: token
    mediate_get(app, "/items/{item_id}", GetItem)

    TestClient(app).get("/items/1")

    assert mediator.calls[0][1] is token


def test_cancellation_is_observed_by_mediator():
    async def respond(request, cancellation):
        if await cancellation.is_cancelled():
            return Response(status_code=499)
        return Response(status_code=200)

    token = CancellationToken()
    app = use_mediator(FastAPI(), RecordingMediator(respond))
    app.dependency_overrides[get_cancellation_token] = lambda: token
    mediate_get(app, "/items/{item_id}", GetItem)
    client = TestClient(app)

    assert client.get("/items/1").status_code == 200
    token.cancel()
    assert client.get("/items/1").status_code == 499


def test_token_is_shared_with_other_request_dependencies():
    seen = []

    def capture(token: CancellationToken = Depends(get_cancellation_token)):
        seen.append(token)

    mediator = RecordingMediator()
    app = use_mediator(FastAPI(), mediator)
    mediate_get(app, "/items/{item_id}", GetItem, dependencies=[Depends(capture)])

    TestClient(app).get("/items/1")

    assert len(seen) == 1
    assert mediator.calls[0][1] is seen[0]


def test_default_token_reports_live_request():
    states = []

    async def respond(request, cancellation):
        states.append(await cancellation.is_cancelled())
        return Response(status_code=204)

    app = use_mediator(FastAPI(), RecordingMediator(respond))
    mediate_get(app, "/items/{item_id}", GetItem)

    assert TestClient(app).get("/items/1").status_code == 204
    assert states == [False]


def test_cancellation_token_state():
    token = CancellationToken()

    assert token.cancelled is False
    token.cancel()
    assert token.cancelled is True
    assert "cancelled=True" in repr(token)


def test_missing_mediator_propagates_host_error():
    app = FastAPI()
    mediate_get(app, "/items/{item_id}", GetItem)

    with pytest.raises(AttributeError, match="mediator"):
        TestClient(app).get("/items/1")


def test_mediator_dependency_supplied_at_registration():
    primary = RecordingMediator()
    dedicated = RecordingMediator()
    app = use_mediator(FastAPI(), primary)
    mediate_get(app, "/items/{item_id}", GetItem, mediator=lambda: dedicated)

    TestClient(app).get("/items/2")

    assert primary.calls == []
    assert dedicated.calls[0][0] == GetItem(item_id=2)


def test_mediator_dependency_can_be_overridden():
    from mediating_apis import get_mediator

    replacement = RecordingMediator()
    app = use_mediator(FastAPI(), RecordingMediator())
    app.dependency_overrides[get_mediator] = lambda: replacement
    mediate_get(app, "/items/{item_id}", GetItem)

    TestClient(app).get("/items/3")

    assert len(replacement.calls) == 1


def test_custom_dispatch_receives_resolved_values(mediator):
    seen = []

    async def dispatch(resolved, request, cancellation):
        seen.append((resolved, request))
        return await resolved.send(request, cancellation)

    app = use_mediator(FastAPI(), mediator)
    mediate_get(app, "/items/{item_id}", GetItem, dispatch=dispatch)

    TestClient(app).get("/items/8")

    assert seen == [(mediator, GetItem(item_id=8))]
    assert len(mediator.calls) == 1


def test_recording_mediator_satisfies_protocol(mediator):
    assert isinstance(mediator, Mediator)
    assert not isinstance(object(), Mediator)
