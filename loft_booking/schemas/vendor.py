"""Wire schemas for the uSchedule booking API.

Every model declares which fields the vendor may omit. Unknown fields are
ignored; a missing required field fails validation, which the client turns
into a ``DecodingError`` instead of silently defaulting.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from loft_booking.services.dates import parse_from_wire

ACTIVE_STATUS_ID = 1


class VendorModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class PaymentType(IntEnum):
    PAY_AT_LOCATION = 1


class AppointmentStatus(IntEnum):
    ACTIVE = 1
    CANCELED = 9
    RESCHEDULED = 10
    TENTATIVE = 11
    COMPLETED = 99

    @property
    def display_name(self) -> str:
        return {
            AppointmentStatus.ACTIVE: "Upcoming",
            AppointmentStatus.CANCELED: "Canceled",
            AppointmentStatus.RESCHEDULED: "Rescheduled",
            AppointmentStatus.TENTATIVE: "Tentative",
            AppointmentStatus.COMPLETED: "Completed",
        }[self]


# --- Authentication -------------------------------------------------------


class LoginModel(VendorModel):
    username: str = Field(alias="UserName")
    password: str = Field(alias="Password")


class ImpersonateModel(VendorModel):
    field_name: str = Field("username", alias="FieldName")
    value: str = Field(alias="Value")


class RegisterModel(VendorModel):
    username: str = Field(alias="UserName")
    password: str = Field(alias="Password")
    first_name: str = Field(alias="FirstName")
    last_name: str = Field(alias="LastName")
    email: str = Field(alias="Email")
    phone: Optional[str] = Field(None, alias="Phone")


class UserDetails(VendorModel):
    auth_key: str = Field(alias="AuthKey", min_length=1)
    user_id: Optional[int] = Field(None, alias="UserId")
    account_id: Optional[int] = Field(None, alias="AccountID")
    username: Optional[str] = Field(None, alias="Username")
    is_customer: Optional[bool] = Field(None, alias="IsCustomer")


# --- Catalog --------------------------------------------------------------


class Location(VendorModel):
    id: int = Field(alias="Id")
    description: str = Field(alias="Description")


class Service(VendorModel):
    id: int = Field(alias="Id")
    description: str = Field(alias="Description")
    service_length: Optional[int] = Field(None, alias="ServiceLength")
    service_type_id: Optional[int] = Field(None, alias="ServiceTypeID")


class ServiceType(VendorModel):
    id: int = Field(alias="Id")
    description: str = Field(alias="Description")
    status_id: int = Field(alias="StatusID")


class ResourceUnit(VendorModel):
    """A bookable bay."""

    id: int = Field(alias="Id")
    status_id: int = Field(alias="StatusID")
    description: Optional[str] = Field(None, alias="Description")
    nick_name: Optional[str] = Field(None, alias="NickName")
    capacity: Optional[int] = Field(None, alias="Capacity")

    @property
    def display_name(self) -> str:
        return self.nick_name or self.description or f"Bay {self.id}"


class Employee(VendorModel):
    id: int = Field(alias="Id")
    first_name: Optional[str] = Field(None, alias="FirstName")
    last_name: Optional[str] = Field(None, alias="LastName")


class Resource(VendorModel):
    id: int = Field(alias="Id")
    description: Optional[str] = Field(None, alias="Description")


class AvailableResource(VendorModel):
    resource: Resource = Field(alias="Resource")


class AvailableResources(VendorModel):
    employees: List[Employee] = Field(default_factory=list, alias="AvailableEmployees")
    resources: List[AvailableResource] = Field(default_factory=list, alias="AvailableResources")

    @property
    def first_employee_id(self) -> Optional[int]:
        return self.employees[0].id if self.employees else None

    @property
    def first_resource_id(self) -> Optional[int]:
        return self.resources[0].resource.id if self.resources else None


# --- Availability, pricing and booking ------------------------------------


class AvailabilityRequest(VendorModel):
    location_id: int = Field(alias="LocationID")
    service_id: int = Field(alias="ServiceID")
    group_size: int = Field(alias="GroupSize", ge=1)
    start_date: str = Field(alias="StartDate")
    service_length: int = Field(alias="ServiceLength")
    employee_id: Optional[int] = Field(None, alias="EmployeeID")
    resource_id: Optional[int] = Field(None, alias="ResourceID")
    resource_unit_id: Optional[int] = Field(None, alias="ResourceUnitID")
    next_available: bool = Field(False, alias="NextAvailable")


class AvailabilitySlot(VendorModel):
    start_time: str = Field(alias="StartTime")
    time_string: Optional[str] = Field(None, alias="TimeString")
    fee: Optional[float] = Field(None, alias="Fee")

    @property
    def starts_at(self) -> Optional[datetime]:
        return parse_from_wire(self.start_time)


class BookingDraft(VendorModel):
    location_id: int = Field(alias="LocationID")
    service_id: int = Field(alias="ServiceID")
    group_size: int = Field(alias="GroupSize")
    start_time: str = Field(alias="StartTime")
    service_length: int = Field(alias="ServiceLength")
    resource_unit_id: Optional[int] = Field(None, alias="ResourceUnitID")
    employee_id: Optional[int] = Field(None, alias="EmployeeID")
    event_occurrence_id: Optional[int] = Field(None, alias="EventOccurrenceID")
    notes: Optional[str] = Field(None, alias="Notes")
    payment_type: int = Field(int(PaymentType.PAY_AT_LOCATION), alias="PaymentType")
    prepay_service_customer_id: Optional[int] = Field(None, alias="PrepayServiceCustomerID")


class PricingResult(VendorModel):
    price: float = Field(alias="Price")


class BookingConfirmation(VendorModel):
    reservation_id: int = Field(alias="Id")
    price: Optional[float] = Field(None, alias="Price")
    description: Optional[str] = Field(None, alias="Description")
    start_time: Optional[str] = Field(None, alias="StartTime")


# --- Appointments and customer --------------------------------------------


class AppointmentRecord(VendorModel):
    id: int = Field(alias="Id")
    start_time: str = Field(alias="StartTime")
    status_id: int = Field(alias="StatusID")
    description: Optional[str] = Field(None, alias="Description")
    end_time: Optional[str] = Field(None, alias="EndTime")
    price: Optional[float] = Field(None, alias="Price")
    location_id: Optional[int] = Field(None, alias="LocationID")
    location_name: Optional[str] = Field(None, alias="LocationName")
    service_name: Optional[str] = Field(None, alias="ServiceName")
    resource_unit_id: Optional[int] = Field(None, alias="ResourceUnitID")

    @property
    def starts_at(self) -> Optional[datetime]:
        return parse_from_wire(self.start_time)

    @property
    def ends_at(self) -> Optional[datetime]:
        return parse_from_wire(self.end_time)

    @property
    def status(self) -> Optional[AppointmentStatus]:
        try:
            return AppointmentStatus(self.status_id)
        except ValueError:
            return None

    @property
    def is_active(self) -> bool:
        return self.status_id == ACTIVE_STATUS_ID


class CustomerProfile(VendorModel):
    id: int = Field(alias="Id")
    user_id: Optional[int] = Field(None, alias="UserID")
    first_name: Optional[str] = Field(None, alias="FirstName")
    last_name: Optional[str] = Field(None, alias="LastName")
    email: Optional[str] = Field(None, alias="EmailAddress")
    phone: Optional[str] = Field(None, alias="Phone")
    birth_date: Optional[str] = Field(None, alias="BirthDate")
    gender: Optional[str] = Field(None, alias="Gender")
    username: Optional[str] = Field(None, alias="Username")
    reference1: Optional[str] = Field(None, alias="Reference1")
    reference2: Optional[str] = Field(None, alias="Reference2")
    reference3: Optional[str] = Field(None, alias="Reference3")
    status_id: Optional[int] = Field(None, alias="StatusID")
    membership_id: Optional[int] = Field(None, alias="MembershipID")
    membership_start: Optional[str] = Field(None, alias="MembershipStart")
    membership_exp: Optional[str] = Field(None, alias="MembershipExp")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def is_membership_active(self, now: datetime) -> bool:
        expires = parse_from_wire(self.membership_exp)
        return expires is not None and expires > now


class PrepayService(VendorModel):
    id: int = Field(alias="Id")
    description: Optional[str] = Field(None, alias="Description")
    price: Optional[float] = Field(None, alias="Price")
    units: Optional[int] = Field(None, alias="Units")


class PrepayServiceCustomer(VendorModel):
    id: int = Field(alias="Id")
    customer_id: int = Field(alias="CustomerID")
    remaining_units: int = Field(alias="RemainingUnits")
    status_id: int = Field(alias="StatusID")
    description: Optional[str] = Field(None, alias="Description")
    original_units: Optional[int] = Field(None, alias="OriginalUnits")
    start_date: Optional[str] = Field(None, alias="StartDate")
    end_date: Optional[str] = Field(None, alias="EndDate")
    cost: Optional[float] = Field(None, alias="Cost")
    unit_name: Optional[str] = Field(None, alias="UnitName")

    def is_expired(self, now: datetime) -> bool:
        expires = parse_from_wire(self.end_date)
        return expires is not None and expires < now

    @property
    def usage_fraction(self) -> float:
        if not self.original_units:
            return 0.0
        return (self.original_units - self.remaining_units) / self.original_units
