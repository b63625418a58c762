"""Decorator helpers for marking request shapes as mediated routes.

``mediated(pattern, *, methods=None, name=None, **options)``

- Returns a class decorator storing a marker dict on the class under
  ``TARGET_ATTR_NAME``. Each payload holds ``pattern`` and ``methods``; a
  ``name`` sets the entry name, other ``**options`` are copied verbatim (route
  options or plugin options such as ``logging_flags``).
- Existing markers are preserved and the new one appended, so one request
  shape can be exposed on several patterns.
- Markers are read from the class ``__dict__`` only: subclasses do not inherit
  the routes of their bases.
- No router mutation happens at decoration time; ``MediatingRouter.include``
  consumes the markers.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from .request import is_http_request_type

__all__ = ["TARGET_ATTR_NAME", "mediated", "iter_markers"]

TARGET_ATTR_NAME = "__mediating_apis_targets__"


def mediated(
    pattern: str,
    *,
    methods: Optional[Iterable[str]] = None,
    name: Optional[str] = None,
    **kwargs: Any,
) -> Callable[[type], type]:
    """Mark a request shape for registration on ``pattern``.

    Args:
        pattern: Route pattern (e.g. ``"/items/{item_id}"``).
        methods: HTTP methods; ``None`` keeps the router default.
        name: Optional explicit entry name (defaults to the class name).
    """

    def decorator(cls: type) -> type:
        if not is_http_request_type(cls):
            raise TypeError(f"@mediated requires an HttpRequest subclass, got {cls!r}")
        markers: List[Dict[str, Any]] = list(vars(cls).get(TARGET_ATTR_NAME, []))
        payload: Dict[str, Any] = {
            "pattern": pattern,
            "methods": tuple(methods) if methods is not None else None,
        }
        if name is not None:
            payload["name"] = name
        payload.update(kwargs)
        markers.append(payload)
        setattr(cls, TARGET_ATTR_NAME, markers)
        return cls

    return decorator


def iter_markers(cls: type) -> List[Dict[str, Any]]:
    """Return copies of the markers declared directly on ``cls``."""
    return [dict(marker) for marker in vars(cls).get(TARGET_ATTR_NAME, [])]
