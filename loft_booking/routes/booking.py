from fastapi import APIRouter, Depends, HTTPException

from loft_booking.dependencies.services import get_connection, get_session_registry
from loft_booking.schemas.booking import (
    BaySelection,
    BookingActionResponse,
    BookingSessionView,
    DateSelection,
    DurationSelection,
    GroupSizeSelection,
    LocationSelection,
    NotesUpdate,
    ServiceSelection,
    SlotSelection,
)
from loft_booking.schemas.vendor import AvailabilitySlot
from loft_booking.services.booking import BookingOrchestrator
from loft_booking.services.presentation import build_session_view
from loft_booking.services.registry import Connection, SessionRegistry, UnknownSessionError

router = APIRouter()


def _booking(session_id: str, connection: Connection, registry: SessionRegistry) -> BookingOrchestrator:
    try:
        return registry.get_booking(connection.token, session_id)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _respond(accepted: bool, session_id: str, orchestrator: BookingOrchestrator) -> BookingActionResponse:
    return BookingActionResponse(
        accepted=accepted, session=build_session_view(orchestrator, session_id)
    )


@router.post("", response_model=BookingSessionView)
async def open_session(
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    session_id, orchestrator = registry.create_booking(connection.token)
    if not await orchestrator.load_initial_data():
        registry.discard_booking(connection.token, session_id)
        raise HTTPException(status_code=502, detail=orchestrator.error_message)
    return build_session_view(orchestrator, session_id)


@router.get("/{session_id}", response_model=BookingSessionView)
async def get_session(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    return build_session_view(_booking(session_id, connection, registry), session_id)


@router.delete("/{session_id}")
async def discard_session(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        registry.discard_booking(connection.token, session_id)
    except UnknownSessionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"discarded": session_id}


@router.post("/{session_id}/location", response_model=BookingActionResponse)
async def choose_location(
    session_id: str,
    req: LocationSelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    location = next((loc for loc in orchestrator.locations if loc.id == req.location_id), None)
    if location is None:
        raise HTTPException(status_code=404, detail=f"Location '{req.location_id}' not found")
    return _respond(orchestrator.select_location(location), session_id, orchestrator)


@router.post("/{session_id}/service", response_model=BookingActionResponse)
async def choose_service(
    session_id: str,
    req: ServiceSelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    service = next((svc for svc in orchestrator.services if svc.id == req.service_id), None)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Service '{req.service_id}' not found")
    accepted = True
    if req.location_id is not None:
        location = next((loc for loc in orchestrator.locations if loc.id == req.location_id), None)
        if location is None:
            raise HTTPException(status_code=404, detail=f"Location '{req.location_id}' not found")
        accepted = orchestrator.select_location(location)
    orchestrator.set_service(service)
    return _respond(accepted, session_id, orchestrator)


@router.post("/{session_id}/guests", response_model=BookingActionResponse)
async def choose_group_size(
    session_id: str,
    req: GroupSizeSelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    return _respond(orchestrator.set_group_size(req.group_size), session_id, orchestrator)


@router.post("/{session_id}/duration", response_model=BookingActionResponse)
async def choose_duration(
    session_id: str,
    req: DurationSelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    return _respond(orchestrator.set_duration(req.minutes), session_id, orchestrator)


@router.post("/{session_id}/bay", response_model=BookingActionResponse)
async def choose_bay(
    session_id: str,
    req: BaySelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    bay = None
    if req.resource_unit_id is not None:
        bay = next(
            (unit for unit in orchestrator.resource_units if unit.id == req.resource_unit_id),
            None,
        )
        if bay is None:
            raise HTTPException(status_code=404, detail=f"Bay '{req.resource_unit_id}' not found")
    return _respond(orchestrator.set_bay(bay), session_id, orchestrator)


@router.post("/{session_id}/date", response_model=BookingActionResponse)
async def choose_date(
    session_id: str,
    req: DateSelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    accepted = await orchestrator.set_date(req.selected_date)
    return _respond(accepted, session_id, orchestrator)


@router.post("/{session_id}/availability", response_model=BookingActionResponse)
async def refresh_availability(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    accepted = await orchestrator.refresh_availability()
    return _respond(accepted, session_id, orchestrator)


@router.post("/{session_id}/slot", response_model=BookingActionResponse)
async def choose_slot(
    session_id: str,
    req: SlotSelection,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    accepted = orchestrator.select_slot(AvailabilitySlot(start_time=req.start_time))
    return _respond(accepted, session_id, orchestrator)


@router.post("/{session_id}/notes", response_model=BookingActionResponse)
async def update_notes(
    session_id: str,
    req: NotesUpdate,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    orchestrator.set_notes(req.notes)
    return _respond(True, session_id, orchestrator)


@router.post("/{session_id}/pricing", response_model=BookingActionResponse)
async def fetch_pricing(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    price = await orchestrator.fetch_pricing()
    return _respond(price is not None, session_id, orchestrator)


@router.post("/{session_id}/next", response_model=BookingActionResponse)
async def next_step(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    return _respond(orchestrator.next_step(), session_id, orchestrator)


@router.post("/{session_id}/previous", response_model=BookingActionResponse)
async def previous_step(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    return _respond(orchestrator.previous_step(), session_id, orchestrator)


@router.post("/{session_id}/confirm", response_model=BookingActionResponse)
async def confirm_booking(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    accepted = await orchestrator.confirm_booking()
    return _respond(accepted, session_id, orchestrator)


@router.post("/{session_id}/restart", response_model=BookingActionResponse)
async def restart_session(
    session_id: str,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = _booking(session_id, connection, registry)
    orchestrator.start_new_session()
    return _respond(True, session_id, orchestrator)
