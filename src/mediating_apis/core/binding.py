"""Member binder: build the FastAPI dependency that creates a request shape.

``bind_members(request_type)`` returns a callable whose ``__signature__``
exposes one keyword-only parameter per bindable member of ``request_type``.
FastAPI reads that signature exactly as it reads an endpoint's, so member
annotations such as ``Annotated[int, Path()]`` or ``Annotated[str, Header()]``
customise binding per member.

Members
-------
- Annotations are resolved with ``get_type_hints(..., include_extras=True)``,
  so modules using postponed annotations work too.
- Dataclasses: ``init=True`` fields in declaration order. A field with a
  ``default_factory`` binds with default ``None`` and a ``None`` value is
  dropped so the factory runs. The binder cannot tell an absent member from
  an explicit ``null``, so both get the factory value.
- Dataclasses with ``InitVar`` pseudo-fields are rejected with ``TypeError``.
- Other classes: public, non-``ClassVar`` annotations across the MRO; the
  default is the first plain value of the same name found in the class
  ``__dict__`` along the MRO. Slots and other data descriptors are not
  defaults.

Construction
------------
Members are the only binding path. Dataclasses are built through their
generated ``__init__`` (its parameters are the members). Any other class is
allocated with ``__new__`` and receives its members via ``setattr``; custom
constructors are never called.
"""

from __future__ import annotations

import dataclasses
import inspect
from typing import Any, Callable, ClassVar, List, Set, Tuple, get_origin, get_type_hints

__all__ = ["bind_members", "request_members"]

_EMPTY = inspect.Parameter.empty


def _class_default(request_type: type, name: str) -> Any:
    for klass in request_type.__mro__:
        namespace = vars(klass)
        if name in namespace:
            value = namespace[name]
            return _EMPTY if inspect.isdatadescriptor(value) else value
    return _EMPTY


def _check_init_vars(request_type: type) -> None:
    field_names = {field.name for field in dataclasses.fields(request_type) if field.init}
    extra = [
        name for name in inspect.signature(request_type).parameters if name not in field_names
    ]
    if extra:
        raise TypeError(
            f"{request_type.__name__} declares init-only members {extra}; "
            "request shapes bind fields only"
        )


def request_members(request_type: type) -> List[Tuple[str, Any, Any]]:
    """Return ``(name, annotation, default)`` for each bindable member."""
    if dataclasses.is_dataclass(request_type):
        _check_init_vars(request_type)
    hints = get_type_hints(request_type, include_extras=True)
    members: List[Tuple[str, Any, Any]] = []
    if dataclasses.is_dataclass(request_type):
        for field in dataclasses.fields(request_type):
            if not field.init:
                continue
            if field.default is not dataclasses.MISSING:
                default = field.default
            elif field.default_factory is not dataclasses.MISSING:
                default = None
            else:
                default = _EMPTY
            members.append((field.name, hints.get(field.name, Any), default))
        return members

    for name, hint in hints.items():
        if name.startswith("_") or get_origin(hint) is ClassVar:
            continue
        members.append((name, hint, _class_default(request_type, name)))
    return members


def _factory_fields(request_type: type) -> Set[str]:
    if not dataclasses.is_dataclass(request_type):
        return set()
    return {
        field.name
        for field in dataclasses.fields(request_type)
        if field.init and field.default_factory is not dataclasses.MISSING
    }


def bind_members(request_type: type) -> Callable[..., Any]:
    """Build the dependency callable that binds ``request_type`` from a request."""
    members = request_members(request_type)
    factory_fields = _factory_fields(request_type)
    is_dataclass = dataclasses.is_dataclass(request_type)

    def bind(**values: Any) -> Any:
        # absent and null look the same here
        for name in factory_fields:
            if values.get(name) is None:
                values.pop(name, None)
        if is_dataclass:
            return request_type(**values)
        instance = request_type.__new__(request_type)
        for name, value in values.items():
            setattr(instance, name, value)
        return instance

    bind.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
        [
            inspect.Parameter(
                name, inspect.Parameter.KEYWORD_ONLY, annotation=annotation, default=default
            )
            for name, annotation, default in members
        ]
    )
    bind.__name__ = f"bind_{request_type.__name__}"
    bind.__qualname__ = bind.__name__
    return bind
