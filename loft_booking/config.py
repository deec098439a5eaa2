from dataclasses import dataclass
from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_HOSTS = [
    "https://beta.uschedule.com",
    "https://clients.uschedule.com",
]

_HOST_ADAPTER = TypeAdapter(AnyHttpUrl)


@dataclass(frozen=True)
class SchedulingConfig:
    """Connection parameters for one pinned vendor host."""

    base_url: str
    alias: str
    app_key: str
    timeout: float = 20.0
    read_retries: int = 0

    @property
    def api_root(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/{self.alias}"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Loft Golf Booking Service")
    # Comma-separated, tried in order during authentication.
    uschedule_hosts: str = Field(
        default=",".join(DEFAULT_HOSTS)
    )
    uschedule_alias: str = Field(
        default="loftgolfstudios"
    )
    uschedule_app_key: str = Field(
        default=""
    )
    request_timeout: float = Field(
        default=20.0, gt=0
    )
    read_retries: int = Field(
        default=0, ge=0, le=3
    )
    log_level: str = Field(
        default="INFO"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOFT_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("uschedule_hosts")
    def _check_hosts(cls, value: str) -> str:
        hosts = [host.strip() for host in value.split(",") if host.strip()]
        if not hosts:
            raise ValueError("at least one uSchedule host is required")
        for host in hosts:
            try:
                _HOST_ADAPTER.validate_python(host)
            except ValidationError as exc:
                raise ValueError(f"invalid uSchedule host {host!r}") from exc
        return value

    @property
    def host_urls(self) -> List[str]:
        return [host.strip().rstrip("/") for host in self.uschedule_hosts.split(",") if host.strip()]

    def scheduling_config(self, host: str) -> SchedulingConfig:
        return SchedulingConfig(
            base_url=host,
            alias=self.uschedule_alias,
            app_key=self.uschedule_app_key,
            timeout=self.request_timeout,
            read_retries=self.read_retries,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
