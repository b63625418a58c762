"""Plugin package initialiser.

Kept side-effect free: concrete plugin modules (``logging``) register
themselves when imported by ``mediating_apis.__init__``.
"""

__all__: list[str] = []
