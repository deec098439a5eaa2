from fastapi import APIRouter, Depends, HTTPException

from loft_booking.dependencies.services import get_connection, get_session_registry
from loft_booking.schemas.booking import AppointmentListResponse, AppointmentView, CancelResponse
from loft_booking.services.booking import BookingOrchestrator
from loft_booking.services.exceptions import HttpError, ServiceError
from loft_booking.services.presentation import build_appointment_view
from loft_booking.services.registry import Connection, SessionRegistry

router = APIRouter()


def _views(orchestrator: BookingOrchestrator, registry: SessionRegistry):
    now = registry.now()
    return [
        build_appointment_view(appointment, now)
        for appointment in orchestrator.upcoming_appointments
    ]


@router.get("", response_model=AppointmentListResponse)
async def list_upcoming(
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = registry.appointments_for(connection.token)
    if not await orchestrator.load_appointments():
        raise HTTPException(status_code=502, detail=orchestrator.error_message)
    items = _views(orchestrator, registry)
    return AppointmentListResponse(total=len(items), items=items)


@router.get("/{appointment_id}", response_model=AppointmentView)
async def get_appointment(
    appointment_id: int,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        appointment = await connection.client.get_appointment(connection.token, appointment_id)
    except HttpError as exc:
        status_code = 404 if exc.status_code in (400, 404) else 502
        raise HTTPException(status_code=status_code, detail=exc.message) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return build_appointment_view(appointment, registry.now())


@router.post("/{appointment_id}/cancel", response_model=CancelResponse)
async def cancel(
    appointment_id: int,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    orchestrator = registry.appointments_for(connection.token)
    cancelled = await orchestrator.cancel_appointment(appointment_id)
    return CancelResponse(
        cancelled=cancelled,
        message=orchestrator.error_message,
        appointments=_views(orchestrator, registry),
    )
