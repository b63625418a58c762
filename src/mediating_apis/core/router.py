"""APIRouter with mediated registration and a plugin pipeline.

``MediatingRouter`` extends FastAPI's ``APIRouter`` with the registrar
functions as methods, a global plugin registry, per-router plugin instances
and middleware wrapping around the dispatch step.

Internal state
--------------
- ``_plugin_specs``: list of ``_PluginSpec`` (factory, kwargs copy).
- ``_plugins``: instantiated plugins in the order they were attached.
- ``_plugins_by_name``: name -> plugin instance.
- ``_plugin_info``: per-plugin store, a reserved ``"--base--"`` bucket for
  router-level config plus one bucket per entry name, each with ``config``
  and ``locals``.
- ``_entries``: ``MediationEntry`` list in registration order.
- ``_handlers``: ``id(entry)`` -> wrapped dispatch callable.
- ``_mediate_defaults``: router defaults (``mediator``, ``methods``) merged
  with per-call options through ``SmartOptions``.

Registration
------------
``mediate_methods(pattern, request_type, methods, **options)`` splits
``<plugin>_<key>`` options (for registered plugin codes) from host options,
registers the host route through the plain registrar with a dispatch callable
that looks up the entry's wrapped handler at call time, stores the entry,
applies plugin ``on_register`` hooks and rebuilds handlers. Because the lookup
is late, plugins attached after registration (or after the router is
included in an application) still apply.

Entry names are unique per router and key per-entry plugin state. An implicit
name is the request type name, suffixed ``_2``, ``_3``... when already taken;
an explicit duplicate ``name=`` raises ``ValueError``.

Wrapping pipeline
-----------------
``_wrap_dispatch(entry, call_next)`` walks ``_plugins`` in reverse order (last
attached closest to the mediator). Each layer is guarded so that
``set_plugin_enabled(entry_name, plugin, False)`` skips it at runtime.

Invariants
----------
- Plugin order is deterministic: first attached = outermost layer.
- Global registry changes do not mutate existing router instances.
- Plugin access via attribute never fails silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from fastapi import APIRouter
from fastapi.routing import APIRoute
from smartseeds import SmartOptions

from mediating_apis.core import registrar
from mediating_apis.core.decorators import iter_markers
from mediating_apis.core.request import is_http_request_type
from mediating_apis.plugins._base_plugin import BASE_BUCKET, BasePlugin, MediationEntry

__all__ = ["MediatingRouter"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


@dataclass
class _PluginSpec:
    factory: Type[BasePlugin]
    kwargs: Dict[str, Any]

    def instantiate(self, router: "MediatingRouter") -> BasePlugin:
        return self.factory(router=router, **self.kwargs)


class MediatingRouter(APIRouter):
    """APIRouter whose mediated routes dispatch through a plugin pipeline."""

    def __init__(
        self,
        *args: Any,
        mediator: Optional[Callable[..., Any]] = None,
        default_methods: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> None:
        self._plugin_specs: List[_PluginSpec] = []
        self._plugins: List[BasePlugin] = []
        self._plugins_by_name: Dict[str, BasePlugin] = {}
        self._plugin_info: Dict[str, Dict[str, Any]] = {}
        self._entries: List[MediationEntry] = []
        self._handlers: Dict[int, Callable] = {}
        defaults: Dict[str, Any] = {}
        if mediator is not None:
            defaults["mediator"] = mediator
        if default_methods is not None:
            defaults["methods"] = tuple(default_methods)
        self._mediate_defaults = defaults
        super().__init__(*args, **kwargs)

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        """Register a plugin class globally.

        Args:
            plugin_class: A BasePlugin subclass with plugin_code defined
            name: Optional override name. If provided, overwrites any existing
                  registration. If not provided, uses plugin_code and raises
                  if already registered with a different class.
        """
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        if not getattr(plugin_class, "plugin_code", None):
            raise ValueError(
                f"Plugin {plugin_class.__name__} not following standards: missing plugin_code"
            )
        code = name or plugin_class.plugin_code
        if name is None:
            existing = _PLUGIN_REGISTRY.get(code)
            if existing is not None and existing is not plugin_class:
                raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "MediatingRouter":
        """Attach a plugin by name (previously registered globally)."""
        if not isinstance(plugin, str):
            raise TypeError(
                f"Plugin must be referenced by name string, got {type(plugin).__name__}"
            )
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(
                f"Unknown plugin '{plugin}'. Register it first. Available plugins: {available}"
            )
        spec = _PluginSpec(plugin_class, dict(config))
        self._plugin_specs.append(spec)
        instance = spec.instantiate(self)
        self._plugins.append(instance)
        self._plugins_by_name[instance.name] = instance
        for entry in self._entries:
            self._apply_plugin(instance, entry)
        self._rebuild_handlers()
        return self

    def iter_plugins(self) -> List[BasePlugin]:
        """Return attached plugin instances in application order."""
        return list(self._plugins)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        plugin = self.__dict__.get("_plugins_by_name", {}).get(name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{name}' attached to router")
        return plugin

    # ------------------------------------------------------------------
    # Runtime flags (stored on _plugin_info)
    # ------------------------------------------------------------------
    def _get_plugin_bucket(self, plugin_name: str) -> Dict[str, Any]:
        bucket = self._plugin_info.get(plugin_name)
        if bucket is None:
            raise AttributeError(f"No plugin named '{plugin_name}' attached to router")
        return bucket

    def set_plugin_enabled(self, entry_name: str, plugin_name: str, enabled: bool = True) -> None:
        bucket = self._get_plugin_bucket(plugin_name)
        slot = bucket.setdefault(entry_name, {"config": {}, "locals": {}})
        slot.setdefault("locals", {})["enabled"] = bool(enabled)

    def is_plugin_enabled(self, entry_name: str, plugin_name: str) -> bool:
        bucket = self._get_plugin_bucket(plugin_name)
        entry_locals = bucket.get(entry_name, {}).get("locals", {})
        if "enabled" in entry_locals:
            return bool(entry_locals["enabled"])
        return bool(bucket.get(BASE_BUCKET, {}).get("locals", {}).get("enabled", True))

    # ------------------------------------------------------------------
    # Mediated registration
    # ------------------------------------------------------------------
    def mediate(self, pattern: str, request_type: type, **options: Any) -> APIRoute:
        """Mediate ``request_type`` on ``pattern`` with the router's default methods."""
        return self._mediate(pattern, request_type, options.pop("methods", None), options)

    def mediate_methods(
        self, pattern: str, request_type: type, methods: Iterable[str], **options: Any
    ) -> APIRoute:
        """Mediate ``request_type`` on ``pattern`` for the given HTTP methods."""
        return self._mediate(pattern, request_type, tuple(methods), options)

    def mediate_get(self, pattern: str, request_type: type, **options: Any) -> APIRoute:
        return self.mediate_methods(pattern, request_type, registrar.GET_METHOD, **options)

    def mediate_post(self, pattern: str, request_type: type, **options: Any) -> APIRoute:
        return self.mediate_methods(pattern, request_type, registrar.POST_METHOD, **options)

    def mediate_put(self, pattern: str, request_type: type, **options: Any) -> APIRoute:
        return self.mediate_methods(pattern, request_type, registrar.PUT_METHOD, **options)

    def mediate_delete(self, pattern: str, request_type: type, **options: Any) -> APIRoute:
        return self.mediate_methods(pattern, request_type, registrar.DELETE_METHOD, **options)

    def mediate_patch(self, pattern: str, request_type: type, **options: Any) -> APIRoute:
        return self.mediate_methods(pattern, request_type, registrar.PATCH_METHOD, **options)

    def include(self, *targets: Any) -> "MediatingRouter":
        """Register every ``@mediated`` marker found on the given classes or modules."""
        for target in targets:
            if isinstance(target, ModuleType):
                candidates = [
                    value
                    for value in vars(target).values()
                    if is_http_request_type(value) and value.__module__ == target.__name__
                ]
            elif is_http_request_type(target):
                candidates = [target]
            else:
                raise TypeError(f"Unsupported include target: {target!r}")
            for request_type in candidates:
                for marker in iter_markers(request_type):
                    pattern = marker.pop("pattern")
                    methods = marker.pop("methods", None)
                    self._mediate(pattern, request_type, methods, marker)
        return self

    def _mediate(
        self,
        pattern: str,
        request_type: type,
        methods: Optional[Iterable[str]],
        options: Dict[str, Any],
    ) -> APIRoute:
        registrar.check_request_type(request_type)
        call_options = {
            key: value
            for key, value in (("mediator", options.pop("mediator", None)), ("methods", methods))
            if value is not None
        }
        opts = SmartOptions(call_options, defaults=self._mediate_defaults)
        methods = getattr(opts, "methods", None)
        mediator = getattr(opts, "mediator", None) or registrar.get_mediator

        plugin_options, route_options = self._split_options(options)
        route_options["name"] = self._entry_name(request_type, route_options.get("name"))
        entry = MediationEntry(
            name=route_options["name"],
            pattern=pattern,
            methods=tuple(methods) if methods is not None else None,
            request_type=request_type,
            router=self,
        )
        entry.route = registrar.register_route(
            self,
            pattern,
            request_type,
            methods,
            mediator,
            self._dispatcher_for(entry),
            route_options,
        )
        self._entries.append(entry)
        self._after_entry_registered(entry, plugin_options)
        self._rebuild_handlers()
        return entry.route

    def _entry_name(self, request_type: type, name: Optional[str]) -> str:
        taken = {entry.name for entry in self._entries}
        if name is not None:
            if name in taken:
                raise ValueError(f"Entry '{name}' already registered on this router")
            return name
        base = request_type.__name__
        name, counter = base, 1
        while name in taken:
            counter += 1
            name = f"{base}_{counter}"
        return name

    def _split_options(
        self, options: Dict[str, Any]
    ) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, Any]]:
        plugin_options: Dict[str, Dict[str, Any]] = {}
        route_options: Dict[str, Any] = {}
        for key, value in options.items():
            if "_" in key:
                plugin_name, plug_key = key.split("_", 1)
                if plugin_name and plug_key and plugin_name in _PLUGIN_REGISTRY:
                    plugin_options.setdefault(plugin_name, {})[plug_key] = value
                    continue
            route_options[key] = value
        return plugin_options, route_options

    def _dispatcher_for(self, entry: MediationEntry) -> Callable:
        key = id(entry)

        async def dispatch(mediator: Any, request: Any, cancellation: Any) -> Any:
            return await self._handlers[key](mediator, request, cancellation)

        return dispatch

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _apply_plugin(self, plugin: BasePlugin, entry: MediationEntry) -> None:
        if plugin.name not in entry.plugins:
            entry.plugins.append(plugin.name)
        plugin.on_register(self, entry)

    def _after_entry_registered(
        self, entry: MediationEntry, plugin_options: Dict[str, Dict[str, Any]]
    ) -> None:
        for pname, cfg in plugin_options.items():
            bucket = self._plugin_info.setdefault(
                pname, {BASE_BUCKET: {"config": {}, "locals": {}}}
            )
            entry_bucket = bucket.setdefault(entry.name, {"config": {}, "locals": {}})
            entry_bucket["config"].update(cfg)
        for plugin in self._plugins:
            self._apply_plugin(plugin, entry)

    def _rebuild_handlers(self) -> None:
        self._handlers = {
            id(entry): self._wrap_dispatch(entry, registrar.send_request)
            for entry in self._entries
        }

    def _wrap_dispatch(self, entry: MediationEntry, call_next: Callable) -> Callable:
        wrapped = call_next
        for plugin in reversed(self._plugins):
            plugin_call = plugin.wrap_dispatch(self, entry, wrapped)
            wrapped = self._create_wrapper(plugin, entry, plugin_call, wrapped)
        return wrapped

    def _create_wrapper(
        self,
        plugin: BasePlugin,
        entry: MediationEntry,
        plugin_call: Callable,
        next_handler: Callable,
    ) -> Callable:
        @wraps(next_handler)
        async def wrapper(mediator: Any, request: Any, cancellation: Any) -> Any:
            if not self.is_plugin_enabled(entry.name, plugin.name):
                return await next_handler(mediator, request, cancellation)
            return await plugin_call(mediator, request, cancellation)

        return wrapper

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def entries(self) -> Tuple[str, ...]:
        """Return entry names in registration order."""
        return tuple(entry.name for entry in self._entries)

    def members(self) -> List[Dict[str, Any]]:
        """Describe registered entries with their plugin configuration."""
        result: List[Dict[str, Any]] = []
        for entry in self._entries:
            info: Dict[str, Any] = {
                "name": entry.name,
                "pattern": entry.pattern,
                "methods": entry.methods,
                "request_type": entry.request_type,
                "route": entry.route,
                "doc": entry.request_type.__doc__ or "",
            }
            plugins_info: Dict[str, Dict[str, Any]] = {}
            for plugin in self._plugins:
                plugin_data: Dict[str, Any] = {}
                config = plugin.configuration(entry.name)
                if config:
                    plugin_data["config"] = config
                meta = plugin.entry_metadata(self, entry)
                if meta:
                    plugin_data["metadata"] = meta
                if plugin_data:
                    plugins_info[plugin.name] = plugin_data
            if plugins_info:
                info["plugins"] = plugins_info
            result.append(info)
        return result
