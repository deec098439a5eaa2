from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException

from loft_booking.clients.auth import AuthProvider
from loft_booking.clients.uschedule import SchedulingClient
from loft_booking.config import Settings, get_settings
from loft_booking.services.registry import (
    Connection,
    SessionRegistry,
    UnknownSessionError,
    get_registry,
)


def get_client_factory(
    settings: Settings = Depends(get_settings),
) -> Callable[[str], SchedulingClient]:
    def build(host: str) -> SchedulingClient:
        return SchedulingClient(settings.scheduling_config(host))

    return build


def get_auth_provider(
    settings: Settings = Depends(get_settings),
    client_factory: Callable[[str], SchedulingClient] = Depends(get_client_factory),
) -> AuthProvider:
    return AuthProvider(settings.host_urls, client_factory)


def get_session_registry() -> SessionRegistry:
    return get_registry()


def get_connection(
    x_us_authtoken: Optional[str] = Header(None, alias="X-US-AuthToken"),
    registry: SessionRegistry = Depends(get_session_registry),
) -> Connection:
    try:
        return registry.get_connection(x_us_authtoken)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
