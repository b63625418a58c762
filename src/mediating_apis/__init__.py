"""MediatingApis public API surface.

- Public exports: the ``HttpRequest`` marker, the ``mediate*`` registrar
  functions, ``MediatingRouter``, the ``mediated`` decorator, the ``Mediator``
  protocol and the cancellation/mediator dependencies.
- Built-in plugins (``logging``) are imported for their side effect of calling
  ``MediatingRouter.register_plugin``. Imports go through ``import_module``
  to avoid cycles.
- Import stays lightweight: no router or application is created here.
"""

from importlib import import_module

__version__ = "0.1.0"

from .core import (
    CancellationToken,
    HttpRequest,
    MediatingRouter,
    Mediator,
    get_cancellation_token,
    get_mediator,
    mediate,
    mediate_delete,
    mediate_get,
    mediate_methods,
    mediate_patch,
    mediate_post,
    mediate_put,
    mediated,
    send_request,
    use_mediator,
)

for _plugin in ("logging",):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "CancellationToken",
    "HttpRequest",
    "MediatingRouter",
    "Mediator",
    "get_cancellation_token",
    "get_mediator",
    "mediate",
    "mediate_delete",
    "mediate_get",
    "mediate_methods",
    "mediate_patch",
    "mediate_post",
    "mediate_put",
    "mediated",
    "send_request",
    "use_mediator",
]
