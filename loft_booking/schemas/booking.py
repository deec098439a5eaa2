from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


# --- Auth ------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ImpersonateRequest(BaseModel):
    identity: str = Field(..., min_length=1, description="Username (or other field value) to act as")
    field_name: str = Field("username", description="Vendor field the identity is matched against")


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    phone: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    host: str
    username: Optional[str] = None


# --- Booking session mutations ---------------------------------------------


class LocationSelection(BaseModel):
    location_id: int


class ServiceSelection(BaseModel):
    service_id: int
    location_id: Optional[int] = None


class GroupSizeSelection(BaseModel):
    group_size: int = Field(..., ge=1, description="Number of guests")


class DurationSelection(BaseModel):
    minutes: int


class BaySelection(BaseModel):
    resource_unit_id: Optional[int] = Field(None, description="Bay to book; null clears the selection")


class DateSelection(BaseModel):
    selected_date: date


class SlotSelection(BaseModel):
    start_time: str = Field(..., description="StartTime of one of the available slots")


class NotesUpdate(BaseModel):
    notes: str = ""


# --- Views -----------------------------------------------------------------


class OptionView(BaseModel):
    id: int
    name: str


class ServiceView(OptionView):
    duration_minutes: Optional[int] = None
    duration_label: Optional[str] = None


class BayView(OptionView):
    capacity: Optional[int] = None


class SlotView(BaseModel):
    start_time: str
    label: str
    fee: Optional[float] = None


class BookingResultView(BaseModel):
    reservation_id: int
    price: Optional[float] = None
    price_label: str
    description: Optional[str] = None
    start_time: Optional[str] = None


class BookingSessionView(BaseModel):
    session_id: Optional[str] = None
    step: int
    step_name: str
    step_title: str

    location: Optional[OptionView] = None
    service: Optional[ServiceView] = None
    group_size: int
    group_size_label: str
    duration_minutes: int
    duration_label: str
    duration_options: List[int]
    bay: Optional[BayView] = None
    selected_date: date
    date_label: str
    selected_slot: Optional[SlotView] = None
    time_label: str
    estimated_price: Optional[float] = None
    price_label: str
    notes: str = ""

    locations: List[OptionView] = Field(default_factory=list)
    services: List[ServiceView] = Field(default_factory=list)
    eligible_bays: List[BayView] = Field(default_factory=list)
    available_slots: List[SlotView] = Field(default_factory=list)

    cannot_accommodate: bool
    can_proceed_to_guests: bool
    can_proceed_to_bay: bool
    can_proceed_to_date_time: bool
    can_confirm: bool
    is_loading: bool
    has_error: bool
    error_message: Optional[str] = None
    booking_result: Optional[BookingResultView] = None


class AppointmentView(BaseModel):
    appointment_id: int
    description: Optional[str] = None
    start_time: str
    end_time: Optional[str] = None
    date_label: str
    time_label: str
    status: str
    price_label: str
    can_cancel: bool


class AppointmentListResponse(BaseModel):
    total: int
    items: List[AppointmentView]


class CancelResponse(BaseModel):
    cancelled: bool
    message: Optional[str] = None
    appointments: List[AppointmentView] = Field(default_factory=list)


class PrepaidPackageView(BaseModel):
    package_id: int
    description: Optional[str] = None
    remaining_units: int
    original_units: Optional[int] = None
    unit_name: str
    expires: Optional[str] = None
    is_expired: bool


class BookingActionResponse(BaseModel):
    accepted: bool
    session: BookingSessionView


class PrepayOfferView(BaseModel):
    service_id: int
    description: Optional[str] = None
    units: Optional[int] = None
    price_label: str


class CustomerView(BaseModel):
    customer_id: int
    full_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    username: Optional[str] = None
    membership_active: bool
    membership_expires: Optional[str] = None
