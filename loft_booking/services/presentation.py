"""Display formatting for booking state.

Pure functions only: they read orchestrator state and vendor records and
return strings or view models for the client UI.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from loft_booking.schemas.booking import (
    AppointmentView,
    BayView,
    BookingResultView,
    BookingSessionView,
    CustomerView,
    OptionView,
    PrepaidPackageView,
    PrepayOfferView,
    ServiceView,
    SlotView,
)
from loft_booking.schemas.vendor import (
    AppointmentRecord,
    AvailabilitySlot,
    CustomerProfile,
    PrepayService,
    PrepayServiceCustomer,
    ResourceUnit,
    Service,
)
from loft_booking.services.booking import DURATION_OPTIONS, BookingOrchestrator, can_cancel
from loft_booking.services.dates import parse_from_wire

PLACEHOLDER = "—"


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, remainder = divmod(minutes, 60)
    if remainder == 0:
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{hours}h {remainder}m"


def format_price(amount: Optional[float]) -> str:
    if amount is None:
        return PLACEHOLDER
    return f"${amount:.2f}"


def format_clock(value: datetime) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def format_date_label(value: date) -> str:
    return f"{value:%A}, {value:%b} {value.day}"


def format_group_size(group_size: int) -> str:
    return "1 guest" if group_size == 1 else f"{group_size} guests"


def format_slot_range(slot: Optional[AvailabilitySlot], duration: int) -> str:
    """``"2:30 PM - 3:30 PM"`` for a slot lasting ``duration`` minutes."""

    if slot is None:
        return PLACEHOLDER
    start = slot.starts_at
    if start is None:
        return slot.time_string or PLACEHOLDER
    end = start + timedelta(minutes=duration)
    return f"{format_clock(start)} - {format_clock(end)}"


def _service_view(service: Service) -> ServiceView:
    return ServiceView(
        id=service.id,
        name=service.description,
        duration_minutes=service.service_length,
        duration_label=format_duration(service.service_length) if service.service_length else None,
    )


def _bay_view(unit: ResourceUnit) -> BayView:
    return BayView(id=unit.id, name=unit.display_name, capacity=unit.capacity)


def _slot_view(slot: AvailabilitySlot, duration: int) -> SlotView:
    return SlotView(
        start_time=slot.start_time,
        label=format_slot_range(slot, duration),
        fee=slot.fee,
    )


def build_session_view(
    orchestrator: BookingOrchestrator, session_id: str | None = None
) -> BookingSessionView:
    session = orchestrator.session
    duration = session.duration
    result = session.booking_result

    return BookingSessionView(
        session_id=session_id,
        step=int(session.step),
        step_name=session.step.name.lower(),
        step_title=session.step.title,
        location=(
            OptionView(id=session.location.id, name=session.location.description)
            if session.location
            else None
        ),
        service=_service_view(session.service) if session.service else None,
        group_size=session.group_size,
        group_size_label=format_group_size(session.group_size),
        duration_minutes=duration,
        duration_label=format_duration(duration),
        duration_options=list(DURATION_OPTIONS),
        bay=_bay_view(session.selected_bay) if session.selected_bay else None,
        selected_date=session.selected_date,
        date_label=format_date_label(session.selected_date),
        selected_slot=_slot_view(session.selected_slot, duration) if session.selected_slot else None,
        time_label=format_slot_range(session.selected_slot, duration),
        estimated_price=session.estimated_price,
        price_label=format_price(session.estimated_price),
        notes=session.notes,
        locations=[OptionView(id=loc.id, name=loc.description) for loc in orchestrator.locations],
        services=[_service_view(service) for service in orchestrator.services],
        eligible_bays=[_bay_view(unit) for unit in orchestrator.available_bays],
        available_slots=[_slot_view(slot, duration) for slot in session.available_slots],
        cannot_accommodate=orchestrator.cannot_accommodate,
        can_proceed_to_guests=orchestrator.can_proceed_to_guests,
        can_proceed_to_bay=orchestrator.can_proceed_to_bay,
        can_proceed_to_date_time=orchestrator.can_proceed_to_date_time,
        can_confirm=orchestrator.can_confirm,
        is_loading=orchestrator.is_loading,
        has_error=orchestrator.has_error,
        error_message=orchestrator.error_message,
        booking_result=(
            BookingResultView(
                reservation_id=result.reservation_id,
                price=result.price,
                price_label=format_price(result.price),
                description=result.description,
                start_time=result.start_time,
            )
            if result
            else None
        ),
    )


def build_appointment_view(appointment: AppointmentRecord, now: datetime) -> AppointmentView:
    start = appointment.starts_at
    end = appointment.ends_at
    if start is None:
        time_label = PLACEHOLDER
    elif end is None:
        time_label = format_clock(start)
    else:
        time_label = f"{format_clock(start)} - {format_clock(end)}"

    status = appointment.status
    return AppointmentView(
        appointment_id=appointment.id,
        description=appointment.description,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        date_label=format_date_label(start.date()) if start else PLACEHOLDER,
        time_label=time_label,
        status=status.display_name if status else f"Status {appointment.status_id}",
        price_label=format_price(appointment.price),
        can_cancel=can_cancel(appointment, now),
    )


def build_prepaid_view(package: PrepayServiceCustomer, now: datetime) -> PrepaidPackageView:
    expires = parse_from_wire(package.end_date)
    return PrepaidPackageView(
        package_id=package.id,
        description=package.description,
        remaining_units=package.remaining_units,
        original_units=package.original_units,
        unit_name=package.unit_name or "units",
        expires=format_date_label(expires.date()) if expires else None,
        is_expired=package.is_expired(now),
    )


def build_prepay_offer_view(service: PrepayService) -> PrepayOfferView:
    return PrepayOfferView(
        service_id=service.id,
        description=service.description,
        units=service.units,
        price_label=format_price(service.price),
    )


def build_customer_view(profile: CustomerProfile, now: datetime) -> CustomerView:
    expires = parse_from_wire(profile.membership_exp)
    return CustomerView(
        customer_id=profile.id,
        full_name=profile.full_name,
        first_name=profile.first_name,
        last_name=profile.last_name,
        email=profile.email,
        phone=profile.phone,
        username=profile.username,
        membership_active=profile.is_membership_active(now),
        membership_expires=format_date_label(expires.date()) if expires else None,
    )
