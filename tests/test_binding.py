"""Tests for member-level binding of request shapes."""

import inspect
from dataclasses import InitVar, dataclass, field
from typing import Annotated, ClassVar, List, Optional

import pytest
from fastapi import Body, FastAPI, Header, Path, Query
from fastapi.testclient import TestClient

from _shapes import GetItem, RecordingMediator
from mediating_apis import HttpRequest, mediate_get, mediate_post, use_mediator
from mediating_apis.core.binding import bind_members, request_members


@dataclass
class SearchItems(HttpRequest):
    category: Annotated[str, Path(min_length=2)]
    x_tenant: Annotated[str, Header()]
    term: Annotated[Optional[str], Query(alias="q")] = None
    tags: Annotated[List[str], Query()] = field(default_factory=list)
    limit: int = 20


class PlainShape(HttpRequest):
    item_id: int
    label: str = "none"
    kind: ClassVar[str] = "plain"
    _hidden: int = 0

    def __init__(self, *args, **kwargs):
        raise AssertionError("request shapes are bound through their members")


def make_client(request_type, pattern, mediator):
    app = FastAPI()
    use_mediator(app, mediator)
    mediate_get(app, pattern, request_type)
    return TestClient(app)


def test_request_members_for_dataclass():
    members = request_members(SearchItems)

    assert [name for name, _, _ in members] == ["category", "x_tenant", "term", "tags", "limit"]
    defaults = {name: default for name, _, default in members}
    assert defaults["category"] is inspect.Parameter.empty
    assert defaults["tags"] is None
    assert defaults["limit"] == 20


def test_request_members_for_plain_class_skip_classvars_and_private():
    members = request_members(PlainShape)

    assert [(name, default) for name, _, default in members] == [
        ("item_id", inspect.Parameter.empty),
        ("label", "none"),
    ]


def test_bind_members_signature_is_keyword_only():
    signature = inspect.signature(bind_members(GetItem))

    assert list(signature.parameters) == ["item_id", "verbose"]
    assert all(
        param.kind is inspect.Parameter.KEYWORD_ONLY for param in signature.parameters.values()
    )
    assert signature.parameters["verbose"].default is False


def test_binding_honours_member_customisation():
    mediator = RecordingMediator()
    client = make_client(SearchItems, "/search/{category}", mediator)

    response = client.get(
        "/search/books",
        params=[("q", "python"), ("tags", "new"), ("tags", "used"), ("limit", "5")],
        headers={"x-tenant": "acme"},
    )

    assert response.status_code == 200
    assert mediator.calls[0][0] == SearchItems(
        category="books", x_tenant="acme", term="python", tags=["new", "used"], limit=5
    )


def test_default_factory_applies_when_member_missing():
    mediator = RecordingMediator()
    client = make_client(SearchItems, "/search/{category}", mediator)

    client.get("/search/books", headers={"x-tenant": "acme"})

    request = mediator.calls[0][0]
    assert request.tags == []
    assert request.term is None
    assert request.limit == 20


def test_binding_failure_is_reported_by_host():
    mediator = RecordingMediator()
    client = make_client(SearchItems, "/search/{category}", mediator)

    missing_header = client.get("/search/books")
    bad_path = client.get("/search/b", headers={"x-tenant": "acme"})
    bad_query = client.get("/search/books", params={"limit": "many"}, headers={"x-tenant": "a"})

    assert missing_header.status_code == 422
    assert bad_path.status_code == 422
    assert bad_query.status_code == 422
    assert mediator.calls == []


def test_plain_class_is_bound_without_its_constructor():
    mediator = RecordingMediator()
    client = make_client(PlainShape, "/plain/{item_id}", mediator)

    assert client.get("/plain/9", params={"label": "tagged"}).status_code == 200
    request = mediator.calls[0][0]
    assert isinstance(request, PlainShape)
    assert request.item_id == 9
    assert request.label == "tagged"
    assert PlainShape.kind == "plain"


def test_each_request_gets_a_fresh_instance(mediator):
    client = make_client(GetItem, "/items/{item_id}", mediator)

    client.get("/items/1")
    client.get("/items/1")

    first, second = (call[0] for call in mediator.calls)
    assert first == second
    assert first is not second


def test_binder_builds_instance_directly():
    bind = bind_members(GetItem)

    assert bind(item_id=3, verbose=True) == GetItem(item_id=3, verbose=True)
    assert bind.__name__ == "bind_GetItem"


def test_unresolvable_annotations_fail_at_registration():
    @dataclass
    class Broken(HttpRequest):
        item_id: "UndefinedType"  # noqa: F821

    with pytest.raises(NameError):
        bind_members(Broken)


class SlottedShape(HttpRequest):
    __slots__ = ("item_id",)

    item_id: int


def test_slots_are_not_member_defaults(mediator):
    (member,) = request_members(SlottedShape)
    client = make_client(SlottedShape, "/slotted", mediator)

    assert member[2] is inspect.Parameter.empty
    assert client.get("/slotted").status_code == 422
    assert client.get("/slotted", params={"item_id": "3"}).status_code == 200
    assert mediator.calls[0][0].item_id == 3


@dataclass
class TagItem(HttpRequest):
    item_id: int
    tags: Annotated[Optional[List[str]], Body(embed=True)] = field(
        default_factory=lambda: ["default"]
    )


def test_explicit_null_for_factory_member_gets_factory_value(mediator):
    app = use_mediator(FastAPI(), mediator)
    mediate_post(app, "/items/{item_id}/tags", TagItem)
    client = TestClient(app)

    client.post("/items/1/tags", json={"tags": None})
    client.post("/items/1/tags", json={"tags": ["x"]})

    assert [call[0].tags for call in mediator.calls] == [["default"], ["x"]]


def test_init_only_members_are_rejected_at_registration():
    @dataclass
    class Salted(HttpRequest):
        item_id: int
        salt: InitVar[str] = ""

    app = FastAPI()
    with pytest.raises(TypeError, match="salt"):
        mediate_get(app, "/salted/{item_id}", Salted)
    assert app.routes[-1].path != "/salted/{item_id}"
