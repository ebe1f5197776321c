import os
from dataclasses import dataclass
from typing import Optional

AMADEUS_HOSTS = {
    "test": "https://test.api.amadeus.com",
    "production": "https://api.amadeus.com",
}

TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in TRUTHY


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    amadeus_client_id: Optional[str] = None
    amadeus_client_secret: Optional[str] = None
    amadeus_hostname: str = "test"
    disable_travel_mocks: bool = False

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-2024-11-20"
    gateway_base_url: Optional[str] = None

    database_url: str = "sqlite:///trip_planner.db"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            amadeus_client_id=_blank_to_none(os.getenv("AMADEUS_CLIENT_ID")),
            amadeus_client_secret=_blank_to_none(os.getenv("AMADEUS_CLIENT_SECRET")),
            amadeus_hostname=os.getenv("AMADEUS_HOSTNAME", "test"),
            disable_travel_mocks=_flag("DISABLE_TRAVEL_MOCKS"),
            openai_api_key=_blank_to_none(os.getenv("OPENAI_API_KEY")),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-2024-11-20"),
            gateway_base_url=_blank_to_none(os.getenv("GATEWAY_BASE_URL")),
            database_url=os.getenv("DATABASE_URL", "sqlite:///trip_planner.db"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=_blank_to_none(os.getenv("LOG_FILE")),
        )

    @property
    def has_amadeus_credentials(self) -> bool:
        return bool(self.amadeus_client_id and self.amadeus_client_secret)

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def amadeus_base_url(self) -> str:
        # unknown hostnames are treated as full base URLs
        host = (self.amadeus_hostname or "test").strip()
        return AMADEUS_HOSTS.get(host.lower(), host.rstrip("/"))
