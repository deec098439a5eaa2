from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from loft_booking.clients.uschedule import SchedulingClient
from loft_booking.schemas.vendor import ImpersonateModel, LoginModel, RegisterModel, UserDetails
from loft_booking.services.exceptions import AuthError, DecodingError, HttpError, ServiceError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], SchedulingClient]


@dataclass
class AuthenticatedSession:
    """Session token plus the client pinned to the host that issued it."""

    token: str
    host: str
    client: SchedulingClient
    username: Optional[str] = None


def parse_duplicate_field(text: str) -> Optional[str]:
    lowered = text.lower()
    if "username" in lowered and ("exist" in lowered or "taken" in lowered):
        return "username"
    if "email" in lowered and ("exist" in lowered or "already" in lowered):
        return "email"
    if "phone" in lowered and ("exist" in lowered or "already" in lowered):
        return "phone"
    if "customer" in lowered and ("already" in lowered or "in the system" in lowered):
        return "customer"
    return None


def is_reset_password_hint(text: str) -> bool:
    lowered = text.lower()
    return "reset password" in lowered or "password reset" in lowered


def split_full_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split(" ", 1)
    first = parts[0] if parts[0] else full_name
    last = parts[1].strip() if len(parts) > 1 else ""
    return first, last


class AuthProvider:
    """Exchanges credentials for a session token.

    Hosts are tried in order (staging first, then production). The first
    host that answers successfully is pinned for the rest of the session;
    if every host fails, the last failure is surfaced.
    """

    def __init__(self, hosts: List[str], client_factory: ClientFactory) -> None:
        if not hosts:
            raise ValueError("At least one scheduling host must be configured")
        self._hosts = list(hosts)
        self._client_factory = client_factory

    async def authenticate(self, username: str, password: str) -> AuthenticatedSession:
        normalized = username.strip().lower()
        payload = LoginModel(username=normalized, password=password).to_wire()
        return await self._exchange("validateuser", payload, username=normalized)

    async def impersonate(self, identity: str, field_name: str = "username") -> AuthenticatedSession:
        normalized = identity.strip().lower()
        payload = ImpersonateModel(field_name=field_name, value=normalized).to_wire()
        return await self._exchange("impersonateuser", payload, username=normalized)

    async def register(
        self,
        *,
        full_name: str,
        email: str,
        password: str,
        username: str,
        phone: str | None = None,
    ) -> AuthenticatedSession:
        normalized_user = username.strip().lower()
        normalized_email = email.strip().lower()
        normalized_phone = "".join(ch for ch in phone if ch.isdigit()) if phone else None
        first, last = split_full_name(full_name)

        if await self.user_exists("username", normalized_user):
            raise AuthError("Username already exists", 400, duplicate_field="username")

        payload = RegisterModel(
            username=normalized_user,
            password=password,
            first_name=first,
            last_name=last,
            email=normalized_email,
            phone=normalized_phone,
        ).to_wire()
        try:
            return await self._exchange("registeruser", payload, username=normalized_user)
        except AuthError as exc:
            body = exc.cause.body if isinstance(exc.cause, HttpError) else ""
            if exc.status_code == 400 and body:
                which = parse_duplicate_field(body)
                if which:
                    raise AuthError(
                        f"Duplicate {which}: {exc.cause.message}",
                        400,
                        duplicate_field=which,
                        cause=exc.cause,
                    ) from exc
                if is_reset_password_hint(body):
                    raise AuthError(
                        f"Account exists. Try password reset. Details: {exc.cause.message}",
                        400,
                        cause=exc.cause,
                    ) from exc
            raise

    async def user_exists(self, field_name: str, value: str) -> bool:
        """Best-effort probe: a successful impersonation means the user exists."""

        payload = ImpersonateModel(field_name=field_name, value=value).to_wire()
        for host in self._hosts:
            client = self._client_factory(host)
            try:
                await client.post_anonymous("impersonateuser", payload)
                return True
            except ServiceError as exc:
                logger.debug("User probe on %s did not match: %s", host, exc)
            finally:
                await client.close()
        return False

    async def _exchange(
        self, path: str, payload: Dict[str, Any], *, username: str | None
    ) -> AuthenticatedSession:
        last_error: ServiceError | None = None
        for host in self._hosts:
            client = self._client_factory(host)
            try:
                details = await self._call(client, path, payload)
            except ServiceError as exc:
                logger.warning("Authentication via %s on %s failed: %s", path, host, exc)
                await client.close()
                last_error = exc
                continue
            logger.info("Authenticated via %s on %s", path, host)
            return AuthenticatedSession(
                token=details.auth_key,
                host=host,
                client=client,
                username=details.username or username,
            )

        status_code = getattr(last_error, "status_code", None)
        message = last_error.message if isinstance(last_error, HttpError) else str(last_error)
        raise AuthError(message, status_code, cause=last_error) from last_error

    @staticmethod
    async def _call(client: SchedulingClient, path: str, payload: Dict[str, Any]) -> UserDetails:
        data = await client.post_anonymous(path, payload)
        try:
            return UserDetails.model_validate(data)
        except ValidationError as exc:
            raise DecodingError(f"{path}: missing AuthKey", cause=exc) from exc
