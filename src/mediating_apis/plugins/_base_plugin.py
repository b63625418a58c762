"""Plugin contract for ``MediatingRouter``.

``MediationEntry`` records one mediated registration; plugins annotate it via
``metadata``. ``BasePlugin`` subclasses set ``plugin_code`` and
``plugin_description`` and may override three hooks:

- ``on_register(router, entry)``: once per entry, also for entries that
  existed before the plugin was attached.
- ``wrap_dispatch(router, entry, call_next)``: returns an async
  ``(mediator, request, cancellation)`` callable around ``call_next``.
- ``entry_metadata(router, entry)``: extra data for ``members()``.

A subclass ``configure`` declares its options in its signature. Calls accept
two extra keywords: ``flags`` (``"enabled,before:off"``) and ``_target``
(``"--base--"``, an entry name or ``"e1,e2"``). Values go through
``pydantic.validate_call`` and land in the owning router's ``_plugin_info``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import validate_call

__all__ = ["BasePlugin", "MediationEntry", "parse_flags"]

BASE_BUCKET = "--base--"


@dataclass
class MediationEntry:
    """One mediated route registration."""

    name: str
    pattern: str
    methods: Optional[Sequence[str]]
    request_type: type
    router: Any
    route: Any = None
    plugins: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


def parse_flags(flags: str) -> Dict[str, bool]:
    """``"a,b:off"`` -> ``{"a": True, "b": False}``."""
    mapping: Dict[str, bool] = {}
    for chunk in filter(None, (part.strip() for part in flags.split(","))):
        key, _, value = chunk.partition(":")
        mapping[key.strip()] = value.strip().lower() != "off"
    return mapping


def _validated_configure(configure: Callable) -> Callable:
    validated = validate_call(configure)

    def wrapper(
        self: "BasePlugin", *, _target: str = BASE_BUCKET, flags: Optional[str] = None, **options: Any
    ) -> None:
        if flags:
            options.update(parse_flags(flags))
        for target in filter(None, (name.strip() for name in _target.split(","))):
            validated(self, **options)
            self._write_config(target, options)

    wrapper.__doc__ = configure.__doc__
    return wrapper


class BasePlugin:
    """Base class for router plugins; configuration lives on the router."""

    __slots__ = ("name", "_router")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "configure" in cls.__dict__:
            cls.configure = _validated_configure(cls.__dict__["configure"])

    def __init__(self, router: Any, **config: Any):
        self.name = self.plugin_code
        self._router = router
        self._store().setdefault(self.name, {}).setdefault(
            BASE_BUCKET, {"config": {"enabled": True}, "locals": {}}
        )
        self.configure(**config)

    def configure(self, **options: Any) -> None:
        """Accept any option."""

    def _write_config(self, target: str, config: Dict[str, Any]) -> None:
        if not config:
            return
        bucket = self._store().setdefault(self.name, {}).setdefault(
            target, {"config": {}, "locals": {}}
        )
        bucket["config"].update(config)

    def configuration(self, entry_name: Optional[str] = None) -> Dict[str, Any]:
        """Router-level config overlaid with the config of ``entry_name``."""
        plugin_bucket = self._store().get(self.name) or {}
        merged = dict(plugin_bucket.get(BASE_BUCKET, {}).get("config", {}))
        if entry_name:
            merged.update(plugin_bucket.get(entry_name, {}).get("config", {}))
        return merged

    def on_register(self, router: Any, entry: MediationEntry) -> None:
        pass

    def wrap_dispatch(self, router: Any, entry: MediationEntry, call_next: Callable) -> Callable:
        return call_next

    def entry_metadata(self, router: Any, entry: MediationEntry) -> Dict[str, Any]:
        return {}

    def _store(self) -> Dict[str, Any]:
        return self._router._plugin_info


BasePlugin.configure = _validated_configure(BasePlugin.configure)  # type: ignore[method-assign]
