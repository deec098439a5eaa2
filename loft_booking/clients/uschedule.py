from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from loft_booking.config import SchedulingConfig
from loft_booking.schemas.vendor import (
    AppointmentRecord,
    AvailabilityRequest,
    AvailabilitySlot,
    AvailableResources,
    BookingConfirmation,
    BookingDraft,
    CustomerProfile,
    Location,
    PrepayService,
    PrepayServiceCustomer,
    PricingResult,
    ResourceUnit,
    Service,
    ServiceType,
)
from loft_booking.services.dates import format_for_wire
from loft_booking.services.exceptions import DecodingError, HttpError, NetworkError

logger = logging.getLogger(__name__)

APP_KEY_HEADER = "X-US-Application-Key"
AUTH_TOKEN_HEADER = "X-US-AuthToken"

T = TypeVar("T")


class SchedulingClient:
    """Async client for the uSchedule booking API of one pinned host.

    The client holds no per-user state: every call takes the session token
    it should authenticate with, so one instance can serve many sessions.
    Retries are only attempted for GET reads and only when the configuration
    asks for them.
    """

    def __init__(
        self,
        config: SchedulingConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> SchedulingConfig:
        return self._config

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.api_root,
            timeout=self._config.timeout,
            headers={
                APP_KEY_HEADER: self._config.app_key,
                "Accept": "application/json",
            },
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None,
        payload: Dict[str, Any] | None = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        client = self._ensure_client()
        headers = {AUTH_TOKEN_HEADER: token} if token else None
        attempts = 1 + (self._config.read_retries if method == "GET" else 0)

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await client.request(
                    method, path, json=payload, params=params, headers=headers
                )
                break
            except httpx.RequestError as exc:
                if attempt >= attempts:
                    logger.exception("Unable to reach booking service at %s", path)
                    raise NetworkError(cause=exc) from exc
                logger.warning(
                    "Retrying %s %s after network error (attempt %s of %s): %s",
                    method, path, attempt, attempts, exc,
                )

        if response.status_code != 200:
            logger.error(
                "Booking service returned %s for %s %s", response.status_code, method, path
            )
            raise HttpError(response.status_code, response.text)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise DecodingError(f"{path}: response is not JSON", cause=exc) from exc

    @staticmethod
    def _decode(path: str, data: Any, model: Type[T]) -> T:
        try:
            return TypeAdapter(model).validate_python(data)
        except ValidationError as exc:
            logger.error("Unexpected %s payload: %s", path, exc)
            raise DecodingError(f"{path}: {exc}", cause=exc) from exc

    async def _get(self, path: str, model: Type[T], *, token: str, params: Dict[str, Any] | None = None) -> T:
        data = await self._request("GET", path, token=token, params=params)
        return self._decode(path, data, model)

    async def _post(self, path: str, model: Type[T], *, token: str | None, payload: Dict[str, Any]) -> T:
        data = await self._request("POST", path, token=token, payload=payload)
        return self._decode(path, data, model)

    # -------- Authentication (anonymous) --------

    async def post_anonymous(self, path: str, payload: Dict[str, Any]) -> Any:
        """Issue an unauthenticated POST; used by the auth provider."""

        return await self._request("POST", path, token=None, payload=payload)

    # -------- Catalog --------

    async def list_locations(self, token: str) -> List[Location]:
        return await self._get("locations", List[Location], token=token)

    async def list_services(self, token: str) -> List[Service]:
        return await self._get("services", List[Service], token=token)

    async def list_service_types(self, token: str) -> List[ServiceType]:
        return await self._get("servicetypes", List[ServiceType], token=token)

    async def list_resource_units(self, token: str) -> List[ResourceUnit]:
        return await self._get("resourceunits", List[ResourceUnit], token=token)

    # -------- Availability, pricing, booking --------

    async def find_available_resources(
        self, token: str, location_id: int, service_id: int
    ) -> AvailableResources:
        payload = {"LocationID": location_id, "ServiceID": service_id}
        return await self._post(
            "availableemployeeresources", AvailableResources, token=token, payload=payload
        )

    async def query_availability(
        self, token: str, request: AvailabilityRequest
    ) -> List[AvailabilitySlot]:
        logger.info(
            "Querying availability for location %s service %s on %s (%s min, %s guests)",
            request.location_id,
            request.service_id,
            request.start_date,
            request.service_length,
            request.group_size,
        )
        data = await self._request(
            "POST", "getavailability", token=token, payload=request.to_wire()
        )
        return self._decode("getavailability", data or [], List[AvailabilitySlot])

    async def get_pricing(self, token: str, draft: BookingDraft) -> PricingResult:
        return await self._post("getpricing", PricingResult, token=token, payload=draft.to_wire())

    async def create_booking(self, token: str, draft: BookingDraft) -> BookingConfirmation:
        logger.info(
            "Booking service %s at %s for %s guests",
            draft.service_id,
            draft.start_time,
            draft.group_size,
        )
        return await self._post("bookit", BookingConfirmation, token=token, payload=draft.to_wire())

    async def cancel_booking(self, token: str, reservation_id: int) -> None:
        logger.info("Cancelling appointment %s", reservation_id)
        await self._request(
            "POST", "cancelappointment", token=token, payload={"id": reservation_id}
        )

    # -------- Appointments and customer --------

    async def list_appointments(
        self,
        token: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> List[AppointmentRecord]:
        params: Dict[str, Any] = {}
        if start_date is not None:
            params["StartDate"] = format_for_wire(start_date)
        if end_date is not None:
            params["EndDate"] = format_for_wire(end_date)
        data = await self._request("GET", "appointments", token=token, params=params or None)
        return self._decode("appointments", data or [], List[AppointmentRecord])

    async def get_appointment(self, token: str, appointment_id: int) -> AppointmentRecord:
        return await self._post(
            "getappointment", AppointmentRecord, token=token, payload={"id": appointment_id}
        )

    async def get_customer(self, token: str) -> CustomerProfile:
        return await self._get("customer", CustomerProfile, token=token)

    async def list_prepay_services(self, token: str) -> List[PrepayService]:
        return await self._get("prepayservices", List[PrepayService], token=token)

    async def list_prepay_service_customers(self, token: str) -> List[PrepayServiceCustomer]:
        return await self._get(
            "prepayservicecustomers", List[PrepayServiceCustomer], token=token
        )
