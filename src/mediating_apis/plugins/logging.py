"""Logging plugin: start/end messages with elapsed time around each dispatch.

Options (router level via ``plug``/``configure``, per entry via
``logging_<key>=`` on a mediate call or ``configure(_target=...)``):

- ``enabled``: gate the plugin.
- ``before``: emit ``"<entry> start"``.
- ``after``: emit ``"<entry> end (<ms> ms)"``; skipped when the mediator raises.
- ``print``: write to stdout instead of the logger.
- ``log``: use ``logger.info``; falls back to stdout when the logger has no
  handlers.

The default logger is ``logging.getLogger("mediating_apis")``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from mediating_apis.core.router import MediatingRouter
from mediating_apis.plugins._base_plugin import BasePlugin, MediationEntry, parse_flags

_DEFAULTS = {"enabled": True, "before": True, "after": True, "log": True, "print": False}


class LoggingPlugin(BasePlugin):
    """Logs mediated dispatches with timing."""

    plugin_code = "logging"
    plugin_description = "Logs mediated dispatches with timing"

    __slots__ = ("_logger",)

    def __init__(self, router, *, logger: Optional[logging.Logger] = None, **cfg):
        self._logger = logger or logging.getLogger("mediating_apis")
        super().__init__(router, **cfg)

    def configure(
        self,
        enabled: bool = True,
        before: bool = True,
        after: bool = True,
        log: bool = True,
        print: bool = False,  # noqa: A002
    ):
        pass

    def _emit(self, message: str, cfg: dict) -> None:
        if cfg["print"] or (cfg["log"] and not self._logger.hasHandlers()):
            print(message)
        elif cfg["log"]:
            self._logger.info(message)

    def wrap_dispatch(self, router, entry: MediationEntry, call_next: Callable):
        async def logged(mediator, request, cancellation):
            cfg = self._entry_options(entry.name)
            if not cfg["enabled"]:
                return await call_next(mediator, request, cancellation)
            if cfg["before"]:
                self._emit(f"{entry.name} start", cfg)
            started = time.perf_counter()
            result = await call_next(mediator, request, cancellation)
            if cfg["after"]:
                elapsed = (time.perf_counter() - started) * 1000
                self._emit(f"{entry.name} end ({elapsed:.2f} ms)", cfg)
            return result

        return logged

    def _entry_options(self, entry_name: str) -> dict:
        # per-entry ``logging_flags`` are stored raw at registration
        stored = self.configuration(entry_name)
        flags = stored.pop("flags", None)
        if isinstance(flags, str):
            stored.update(parse_flags(flags))
        return {
            key: default if stored.get(key) is None else bool(stored[key])
            for key, default in _DEFAULTS.items()
        }


MediatingRouter.register_plugin(LoggingPlugin)
