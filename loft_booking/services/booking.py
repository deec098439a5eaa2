"""Booking wizard state machine.

Flow: Service -> Guests -> Bay -> Date & Time -> Confirm. The orchestrator
owns one ``BookingSession`` at a time, derives bay eligibility and the step
guards from it, and sequences the vendor calls (resource discovery,
availability, pricing, booking). Vendor failures are turned into
``error_message``; calls made while a guard is unmet are ignored and
reported through the return value, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import IntEnum
from typing import Callable, List, Optional, Sequence

from loft_booking.clients.uschedule import SchedulingClient
from loft_booking.schemas.vendor import (
    ACTIVE_STATUS_ID,
    AppointmentRecord,
    AvailabilityRequest,
    AvailabilitySlot,
    BookingConfirmation,
    BookingDraft,
    Location,
    PaymentType,
    ResourceUnit,
    Service,
    ServiceType,
)
from loft_booking.services.dates import format_for_wire
from loft_booking.services.exceptions import HttpError, ServiceError

logger = logging.getLogger(__name__)

MAX_GROUP_SIZE = 8
# Groups up to this size fit in every bay; only the large bay takes more.
SMALL_GROUP_LIMIT = 4
DURATION_OPTIONS = (60, 120, 180, 240)
DEFAULT_DURATION = 60
CANCELLATION_WINDOW = timedelta(hours=24)


class BookingStep(IntEnum):
    SELECT_SERVICE = 0
    SELECT_GUESTS = 1
    SELECT_BAY = 2
    SELECT_DATE_TIME = 3
    CONFIRMATION = 4

    @property
    def title(self) -> str:
        return {
            BookingStep.SELECT_SERVICE: "Service",
            BookingStep.SELECT_GUESTS: "Guests",
            BookingStep.SELECT_BAY: "Bay",
            BookingStep.SELECT_DATE_TIME: "Date & Time",
            BookingStep.CONFIRMATION: "Confirm",
        }[self]


def available_bays_for_group_size(
    group_size: int, units: Sequence[ResourceUnit]
) -> List[ResourceUnit]:
    """Bays a group of ``group_size`` may book.

    Small groups may use any active bay regardless of its declared capacity;
    groups of five to eight are limited to bays declaring enough capacity;
    larger groups cannot be accommodated at all.
    """

    if group_size > MAX_GROUP_SIZE:
        return []
    if group_size > SMALL_GROUP_LIMIT:
        return [unit for unit in units if (unit.capacity or 0) >= group_size]
    return list(units)


def can_cancel(appointment: AppointmentRecord, now: datetime) -> bool:
    starts_at = appointment.starts_at
    if starts_at is None or not appointment.is_active:
        return False
    return starts_at - now > CANCELLATION_WINDOW


@dataclass
class BookingSession:
    selected_date: date
    step: BookingStep = BookingStep.SELECT_SERVICE
    location: Optional[Location] = None
    service: Optional[Service] = None
    group_size: int = 1
    duration: int = DEFAULT_DURATION
    selected_bay: Optional[ResourceUnit] = None
    available_slots: List[AvailabilitySlot] = field(default_factory=list)
    selected_slot: Optional[AvailabilitySlot] = None
    estimated_price: Optional[float] = None
    notes: str = ""
    booking_result: Optional[BookingConfirmation] = None


class BookingOrchestrator:
    def __init__(
        self,
        client: SchedulingClient,
        token: str,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._client = client
        self._token = token
        self._clock = clock
        self._availability_generation = 0

        self.locations: List[Location] = []
        self.services: List[Service] = []
        self.service_types: List[ServiceType] = []
        self.resource_units: List[ResourceUnit] = []
        self.upcoming_appointments: List[AppointmentRecord] = []

        self.is_loading = False
        self.error_message: Optional[str] = None
        self.has_error = False

        self.session = self._new_session()

    # ------------------------------------------------------------------
    # Data loading

    async def load_initial_data(self) -> bool:
        """Load the four independent catalogs concurrently."""

        self.is_loading = True
        self.clear_error()
        try:
            locations, services, service_types, units = await asyncio.gather(
                self._client.list_locations(self._token),
                self._client.list_services(self._token),
                self._client.list_service_types(self._token),
                self._client.list_resource_units(self._token),
            )
        except ServiceError as exc:
            self.is_loading = False
            self._report(exc)
            return False

        self.locations = locations
        self.services = services
        self.service_types = [t for t in service_types if t.status_id == ACTIVE_STATUS_ID]
        self.resource_units = [u for u in units if u.status_id == ACTIVE_STATUS_ID]
        logger.info(
            "Loaded %s locations, %s services, %s active bays",
            len(self.locations),
            len(self.services),
            len(self.resource_units),
        )
        if len(self.locations) == 1 and self.session.location is None:
            self.session.location = self.locations[0]
        self.is_loading = False
        return True

    async def load_appointments(self) -> bool:
        try:
            await self._fetch_upcoming()
        except ServiceError as exc:
            self._report(exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Selections

    def select_location(self, location: Location) -> bool:
        if self.locations and location.id not in {loc.id for loc in self.locations}:
            logger.warning("Ignoring unknown location %s", location.id)
            return False
        self.session.location = location
        self._invalidate_slots()
        return True

    def set_service(self, service: Service) -> None:
        self.session.service = service
        if service.service_length in DURATION_OPTIONS:
            self.session.duration = service.service_length
        elif service.service_length is not None:
            logger.warning(
                "Service %s declares unsupported length %s; keeping %s minutes",
                service.id,
                service.service_length,
                self.session.duration,
            )
        self._invalidate_slots()

    def set_group_size(self, group_size: int) -> bool:
        if group_size < 1:
            logger.warning("Ignoring group size %s", group_size)
            return False
        self.session.group_size = group_size
        self.session.selected_bay = None
        self._invalidate_slots()
        # The bay was cleared, so later steps must be revisited.
        limit = BookingStep.SELECT_GUESTS if self.cannot_accommodate else BookingStep.SELECT_BAY
        if self.session.step > limit:
            self.session.step = limit
        return True

    def set_duration(self, minutes: int) -> bool:
        if minutes not in DURATION_OPTIONS:
            logger.warning("Ignoring unsupported duration %s", minutes)
            return False
        self.session.duration = minutes
        self._invalidate_slots()
        return True

    def set_bay(self, bay: Optional[ResourceUnit]) -> bool:
        if bay is not None and bay.id not in {unit.id for unit in self.available_bays}:
            logger.warning(
                "Rejecting bay %s for a group of %s", bay.id, self.session.group_size
            )
            return False
        self.session.selected_bay = bay
        self._invalidate_slots()
        return True

    async def set_date(self, day: date) -> bool:
        if day < self._clock().date():
            logger.warning("Ignoring past date %s", day)
            return False
        self.session.selected_date = day
        self._invalidate_slots()
        await self.refresh_availability()
        return True

    def select_slot(self, slot: AvailabilitySlot) -> bool:
        match = self._find_slot(slot.start_time)
        if match is None:
            logger.warning("Ignoring slot %s that is not currently available", slot.start_time)
            return False
        self.session.selected_slot = match
        self.session.estimated_price = None
        return True

    def set_notes(self, notes: str) -> None:
        self.session.notes = notes

    # ------------------------------------------------------------------
    # Vendor workflow

    async def refresh_availability(self) -> bool:
        """Discover the employee/resource pair, then query open slots.

        Only the most recent call may publish its result; a response that
        arrives after a newer refresh or an invalidating change is dropped.
        """

        session = self.session
        if session.location is None or session.service is None:
            logger.debug("Availability requested before location and service were chosen")
            return False

        self._availability_generation += 1
        generation = self._availability_generation
        self.is_loading = True

        try:
            resources = await self._client.find_available_resources(
                self._token, session.location.id, session.service.id
            )
            if self._is_stale(generation, session):
                logger.debug("Discarding stale resource discovery (generation %s)", generation)
                return False
            request = AvailabilityRequest(
                location_id=session.location.id,
                service_id=session.service.id,
                employee_id=resources.first_employee_id,
                resource_id=resources.first_resource_id,
                resource_unit_id=session.selected_bay.id if session.selected_bay else None,
                group_size=session.group_size,
                start_date=format_for_wire(session.selected_date),
                service_length=session.duration,
            )
            slots = await self._client.query_availability(self._token, request)
            if self._is_stale(generation, session):
                logger.debug("Discarding stale availability response (generation %s)", generation)
                return False

            session.available_slots = slots
            if session.selected_slot is not None:
                kept = self._find_slot(session.selected_slot.start_time)
                if kept is None:
                    session.estimated_price = None
                session.selected_slot = kept
            logger.info("Found %s slots for %s", len(slots), request.start_date)
            return True
        except ServiceError as exc:
            if not self._is_stale(generation, session):
                self._report(exc)
            return False
        finally:
            # Also runs when the caller cancels the refresh mid-flight.
            if not self._is_stale(generation, session):
                self.is_loading = False

    async def fetch_pricing(self) -> Optional[float]:
        """Preview the price of the selected slot.

        Failures only clear the preview; they never block confirmation.
        """

        session = self.session
        if not self.can_confirm:
            return None
        slot = session.selected_slot
        draft = self._build_draft(notes=None)
        try:
            result = await self._client.get_pricing(self._token, draft)
        except ServiceError as exc:
            logger.warning("Pricing preview failed: %s", exc)
            if session.selected_slot is slot:
                session.estimated_price = None
            return None

        if self.session is not session or session.selected_slot is not slot:
            return None
        session.estimated_price = result.price
        return result.price

    async def confirm_booking(self) -> bool:
        session = self.session
        if session.booking_result is not None:
            logger.warning("Booking already confirmed as %s", session.booking_result.reservation_id)
            return False
        if not self.can_confirm:
            logger.warning("Confirm requested before the booking was complete")
            return False

        notes = session.notes.strip()
        draft = self._build_draft(notes=notes or None)
        self.is_loading = True
        self.clear_error()
        try:
            result = await self._client.create_booking(self._token, draft)
        except ServiceError as exc:
            self.is_loading = False
            self._report(exc)
            return False

        session.booking_result = result
        self.is_loading = False
        logger.info("Booked reservation %s", result.reservation_id)
        await self._refresh_after_change()
        return True

    async def cancel_appointment(self, appointment_id: int) -> bool:
        self.is_loading = True
        self.clear_error()
        try:
            await self._client.cancel_booking(self._token, appointment_id)
        except HttpError as exc:
            self.is_loading = False
            if exc.status_code == 400:
                logger.info("Cancellation of %s rejected: %s", appointment_id, exc.message)
                self._show_error(exc.message)
            else:
                self._report(exc)
            return False
        except ServiceError as exc:
            self.is_loading = False
            self._report(exc)
            return False

        self.upcoming_appointments = [
            appointment
            for appointment in self.upcoming_appointments
            if appointment.id != appointment_id
        ]
        self.is_loading = False
        await self._refresh_after_change()
        return True

    def can_cancel(self, appointment: AppointmentRecord) -> bool:
        return can_cancel(appointment, self._clock())

    # ------------------------------------------------------------------
    # Navigation

    def next_step(self) -> bool:
        step = self.session.step
        if step == BookingStep.CONFIRMATION:
            return False
        if not self._guard_for(step):
            logger.debug("Guard for %s is not satisfied", step.name)
            return False
        self.session.step = BookingStep(step + 1)
        return True

    def previous_step(self) -> bool:
        step = self.session.step
        if step == BookingStep.SELECT_SERVICE:
            return False
        self.session.step = BookingStep(step - 1)
        return True

    def start_new_session(self) -> BookingSession:
        self._availability_generation += 1
        self.session = self._new_session()
        if len(self.locations) == 1:
            self.session.location = self.locations[0]
        self.clear_error()
        self.is_loading = False
        return self.session

    # ------------------------------------------------------------------
    # Derived state

    @property
    def available_bays(self) -> List[ResourceUnit]:
        return available_bays_for_group_size(self.session.group_size, self.resource_units)

    @property
    def cannot_accommodate(self) -> bool:
        return self.session.group_size > MAX_GROUP_SIZE

    @property
    def can_proceed_to_guests(self) -> bool:
        return self.session.location is not None and self.session.service is not None

    @property
    def can_proceed_to_bay(self) -> bool:
        return self.can_proceed_to_guests and 1 <= self.session.group_size <= MAX_GROUP_SIZE

    @property
    def can_proceed_to_date_time(self) -> bool:
        if not self.can_proceed_to_bay:
            return False
        eligible = self.available_bays
        if not eligible:
            return True
        bay = self.session.selected_bay
        return bay is not None and bay.id in {unit.id for unit in eligible}

    @property
    def can_confirm(self) -> bool:
        slot = self.session.selected_slot
        return (
            self.can_proceed_to_date_time
            and slot is not None
            and self._find_slot(slot.start_time) is not None
        )

    def clear_error(self) -> None:
        self.error_message = None
        self.has_error = False

    # ------------------------------------------------------------------
    # Internals

    def _new_session(self) -> BookingSession:
        return BookingSession(selected_date=self._clock().date())

    def _guard_for(self, step: BookingStep) -> bool:
        guards = {
            BookingStep.SELECT_SERVICE: lambda: self.can_proceed_to_guests,
            BookingStep.SELECT_GUESTS: lambda: self.can_proceed_to_bay,
            BookingStep.SELECT_BAY: lambda: self.can_proceed_to_date_time,
            BookingStep.SELECT_DATE_TIME: lambda: self.can_confirm,
        }
        return guards[step]()

    def _invalidate_slots(self) -> None:
        self._availability_generation += 1
        self.is_loading = False
        self.session.available_slots = []
        self.session.selected_slot = None
        self.session.estimated_price = None

    def _is_stale(self, generation: int, session: BookingSession) -> bool:
        return generation != self._availability_generation or session is not self.session

    def _find_slot(self, start_time: str) -> Optional[AvailabilitySlot]:
        for slot in self.session.available_slots:
            if slot.start_time == start_time:
                return slot
        return None

    def _build_draft(self, *, notes: Optional[str]) -> BookingDraft:
        session = self.session
        return BookingDraft(
            location_id=session.location.id,
            service_id=session.service.id,
            resource_unit_id=session.selected_bay.id if session.selected_bay else None,
            group_size=session.group_size,
            start_time=session.selected_slot.start_time,
            service_length=session.duration,
            notes=notes,
            payment_type=int(PaymentType.PAY_AT_LOCATION),
        )

    async def _fetch_upcoming(self) -> None:
        appointments = await self._client.list_appointments(self._token)
        now = self._clock()
        upcoming = [
            appointment
            for appointment in appointments
            if appointment.is_active
            and appointment.starts_at is not None
            and appointment.starts_at > now
        ]
        upcoming.sort(key=lambda appointment: appointment.starts_at)
        self.upcoming_appointments = upcoming

    async def _refresh_after_change(self) -> None:
        """Reload upcoming appointments without failing the completed change."""

        try:
            await self._fetch_upcoming()
        except ServiceError as exc:
            logger.warning("Appointment list refresh failed: %s", exc)

    def _report(self, exc: ServiceError) -> None:
        logger.exception("Booking operation failed: %s", exc)
        self._show_error(str(exc))

    def _show_error(self, message: str) -> None:
        self.error_message = message
        self.has_error = True
