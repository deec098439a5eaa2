"""Service package public API definitions.

The service implementations depend on ``loft_booking.clients``, which in
turn imports ``loft_booking.services.exceptions`` and
``loft_booking.services.dates``. Importing the implementations eagerly here
would create a circular import, so they are resolved lazily on first access.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "BookingOrchestrator",
    "CardDisplayStore",
    "SessionRegistry",
]

_SERVICE_MODULES = {
    "BookingOrchestrator": "booking",
    "CardDisplayStore": "cards",
    "SessionRegistry": "registry",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .booking import BookingOrchestrator as BookingOrchestrator
    from .cards import CardDisplayStore as CardDisplayStore
    from .registry import SessionRegistry as SessionRegistry
