"""Core runtime aggregator.

Exposes the runtime building blocks from a single module. Importing it
performs only imports; it does not register plugins or create routers.

- ``request`` → ``HttpRequest`` marker
- ``dispatch`` → ``Mediator``, ``CancellationToken`` and default dependencies
- ``registrar`` → plugin-free ``mediate*`` functions
- ``router`` → ``MediatingRouter`` (plugin-enabled)
- ``decorators`` → ``mediated`` marker helper
"""

from .decorators import mediated
from .dispatch import (
    CancellationToken,
    Mediator,
    get_cancellation_token,
    get_mediator,
    send_request,
    use_mediator,
)
from .registrar import (
    mediate,
    mediate_delete,
    mediate_get,
    mediate_methods,
    mediate_patch,
    mediate_post,
    mediate_put,
)
from .request import HttpRequest
from .router import MediatingRouter

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
