from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock

from loft_booking.schemas.vendor import (
    AppointmentRecord,
    AvailabilitySlot,
    CustomerProfile,
    PrepayService,
    PrepayServiceCustomer,
)
from loft_booking.services.booking import BookingOrchestrator
from loft_booking.services.presentation import (
    PLACEHOLDER,
    build_appointment_view,
    build_customer_view,
    build_prepaid_view,
    build_prepay_offer_view,
    build_session_view,
    format_date_label,
    format_duration,
    format_group_size,
    format_price,
    format_slot_range,
)


NOW = datetime(2025, 10, 20, 9, 0)


def test_format_duration() -> None:
    assert format_duration(45) == "45 min"
    assert format_duration(60) == "1 hour"
    assert format_duration(120) == "2 hours"
    assert format_duration(90) == "1h 30m"


def test_format_price_and_group_size() -> None:
    assert format_price(45) == "$45.00"
    assert format_price(None) == PLACEHOLDER
    assert format_group_size(1) == "1 guest"
    assert format_group_size(6) == "6 guests"


def test_format_date_label() -> None:
    assert format_date_label(date(2025, 10, 25)) == "Saturday, Oct 25"


def test_slot_range_spans_duration() -> None:
    slot = AvailabilitySlot(start_time="2025-10-25T14:00:00")

    assert format_slot_range(slot, 60) == "2:00 PM - 3:00 PM"
    assert format_slot_range(slot, 150) == "2:00 PM - 4:30 PM"
    assert format_slot_range(None, 60) == PLACEHOLDER


def test_slot_range_falls_back_to_time_string() -> None:
    slot = AvailabilitySlot(start_time="soon", time_string="2:00 PM")

    assert format_slot_range(slot, 60) == "2:00 PM"


def test_appointment_view_labels() -> None:
    appointment = AppointmentRecord(
        id=42,
        start_time=(NOW + timedelta(days=2)).strftime("%Y-%m-%dT%H:%M:%S"),
        end_time=(NOW + timedelta(days=2, hours=1)).strftime("%Y-%m-%dT%H:%M:%S"),
        status_id=1,
        price=45.0,
    )

    view = build_appointment_view(appointment, NOW)

    assert view.appointment_id == 42
    assert view.date_label == "Wednesday, Oct 22"
    assert view.time_label == "9:00 AM - 10:00 AM"
    assert view.status == "Upcoming"
    assert view.price_label == "$45.00"
    assert view.can_cancel is True


def test_appointment_view_unknown_status() -> None:
    appointment = AppointmentRecord(id=43, start_time="2025-10-22T09:00:00", status_id=42)

    view = build_appointment_view(appointment, NOW)

    assert view.status == "Status 42"
    assert view.can_cancel is False


def test_prepaid_view_flags_expired_package() -> None:
    package = PrepayServiceCustomer(
        id=5,
        customer_id=1,
        remaining_units=3,
        original_units=10,
        status_id=1,
        end_date="2025-10-01T00:00:00",
    )

    view = build_prepaid_view(package, NOW)

    assert view.is_expired is True
    assert view.expires == "Wednesday, Oct 1"
    assert view.unit_name == "units"
    assert package.usage_fraction == 0.7


def test_session_view_of_fresh_orchestrator() -> None:
    orchestrator = BookingOrchestrator(AsyncMock(), "token-abc", clock=lambda: NOW)

    view = build_session_view(orchestrator, "BKS-00001")

    assert view.session_id == "BKS-00001"
    assert view.step_name == "select_service"
    assert view.step_title == "Service"
    assert view.duration_label == "1 hour"
    assert view.duration_options == [60, 120, 180, 240]
    assert view.time_label == PLACEHOLDER
    assert view.price_label == PLACEHOLDER
    assert view.can_proceed_to_guests is False
    assert view.selected_date == NOW.date()


def test_customer_view_reports_membership() -> None:
    profile = CustomerProfile(
        id=1,
        first_name="Pat",
        last_name="Golfer",
        membership_exp="2025-12-31T00:00:00",
    )

    view = build_customer_view(profile, NOW)

    assert view.full_name == "Pat Golfer"
    assert view.membership_active is True
    assert view.membership_expires == "Wednesday, Dec 31"

    lapsed = build_customer_view(CustomerProfile(id=2, membership_exp="2025-01-31T00:00:00"), NOW)
    assert lapsed.membership_active is False
    assert build_customer_view(CustomerProfile(id=3), NOW).membership_active is False


def test_prepay_offer_view() -> None:
    view = build_prepay_offer_view(
        PrepayService(id=3, description="10 Hour Pack", price=400.0, units=10)
    )

    assert view.price_label == "$400.00"
    assert view.units == 10
