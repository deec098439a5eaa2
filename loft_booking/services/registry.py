from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from loft_booking.clients.auth import AuthenticatedSession
from loft_booking.clients.uschedule import SchedulingClient
from loft_booking.services.booking import BookingOrchestrator
from loft_booking.services.cards import CardDisplayStore, InMemorySecureStore
from loft_booking.services.exceptions import ServiceError

logger = logging.getLogger(__name__)


class UnknownSessionError(ServiceError):
    """Raised when a token or booking session id is not registered."""


@dataclass
class Connection:
    token: str
    host: str
    client: SchedulingClient
    cards: CardDisplayStore
    username: Optional[str] = None
    bookings: Dict[str, BookingOrchestrator] = field(default_factory=dict)
    appointments: Optional[BookingOrchestrator] = None


class SessionRegistry:
    """Connected users and their in-progress booking sessions.

    Each connection keeps the client pinned to the host that authenticated
    it; booking sessions and the appointment list share that client.
    """

    def __init__(self, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._counter = itertools.count(1)
        self._connections: Dict[str, Connection] = {}

    def _next_id(self) -> str:
        return f"BKS-{next(self._counter):05d}"

    def connect(self, auth: AuthenticatedSession) -> Connection:
        connection = Connection(
            token=auth.token,
            host=auth.host,
            client=auth.client,
            cards=CardDisplayStore(InMemorySecureStore()),
            username=auth.username,
        )
        self._connections[auth.token] = connection
        logger.info("Connected %s via %s", auth.username, auth.host)
        return connection

    def get_connection(self, token: str | None) -> Connection:
        connection = self._connections.get(token or "")
        if connection is None:
            raise UnknownSessionError("Not authenticated")
        return connection

    async def disconnect(self, token: str) -> None:
        connection = self._connections.pop(token, None)
        if connection is not None:
            await connection.client.close()

    def create_booking(self, token: str) -> tuple[str, BookingOrchestrator]:
        connection = self.get_connection(token)
        session_id = self._next_id()
        orchestrator = BookingOrchestrator(connection.client, token, clock=self._clock)
        connection.bookings[session_id] = orchestrator
        logger.info("Opened booking session %s", session_id)
        return session_id, orchestrator

    def get_booking(self, token: str, session_id: str) -> BookingOrchestrator:
        orchestrator = self.get_connection(token).bookings.get(session_id)
        if orchestrator is None:
            raise UnknownSessionError(f"Booking session '{session_id}' not found")
        return orchestrator

    def discard_booking(self, token: str, session_id: str) -> None:
        bookings = self.get_connection(token).bookings
        if bookings.pop(session_id, None) is None:
            raise UnknownSessionError(f"Booking session '{session_id}' not found")
        logger.info("Discarded booking session %s", session_id)

    def appointments_for(self, token: str) -> BookingOrchestrator:
        connection = self.get_connection(token)
        if connection.appointments is None:
            connection.appointments = BookingOrchestrator(
                connection.client, token, clock=self._clock
            )
        return connection.appointments

    def now(self) -> datetime:
        return self._clock()

    async def close(self) -> None:
        connections: List[Connection] = list(self._connections.values())
        self._connections.clear()
        for connection in connections:
            await connection.client.close()


_registry: SessionRegistry | None = None


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry


def reset_registry() -> None:
    global _registry
    _registry = None
