from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

DEFAULT_SRM_API_URL = "https://srm-api-recl.azurewebsites.net"
DEFAULT_CATALOG_STORE_API_URL = "https://catalogstore-api.thankfuldune-81948d3c.eastus2.azurecontainerapps.io"

REQUIRED_ENV_VARS = ("COMMUNICATION_SERVICES_CONNECTION_STRING", "CHANNEL_REGISTRATION_ID")
OPTIONAL_ENV_VARS = ("SRM_API_URL", "CATALOG_STORE_API_URL", "AZURE_STORAGE_CONNECTION_STRING", "BLOB_CONTAINER_NAME")


class ConfigurationError(Exception):
    """Raised when a required setting is missing at startup."""


class Settings(BaseSettings):
    communication_services_connection_string: str = ""
    channel_registration_id: str = ""

    srm_api_url: str = DEFAULT_SRM_API_URL
    catalog_store_api_url: str = DEFAULT_CATALOG_STORE_API_URL

    azure_storage_connection_string: Optional[str] = None
    blob_container_name: str = "whats-audio"

    default_language: str = "fr"
    store_lookup_enabled: bool = False
    voice_reply_enabled: bool = True

    http_timeout_seconds: float = 30.0
    http_max_attempts: int = 3
    http_retry_backoff_seconds: float = 0.2
    circuit_failure_threshold: int = 5
    circuit_reset_seconds: float = 30.0

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def missing_required(self) -> list[str]:
        values = {
            "COMMUNICATION_SERVICES_CONNECTION_STRING": self.communication_services_connection_string,
            "CHANNEL_REGISTRATION_ID": self.channel_registration_id,
        }
        return [name for name in REQUIRED_ENV_VARS if not (values[name] or "").strip()]

    def validate_required(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    def summary(self) -> dict[str, str]:
        """Configuration as printable strings, secrets masked."""
        return {
            "COMMUNICATION_SERVICES_CONNECTION_STRING": mask_secret(self.communication_services_connection_string),
            "CHANNEL_REGISTRATION_ID": self.channel_registration_id or "NOT SET",
            "SRM_API_URL": self.srm_api_url,
            "CATALOG_STORE_API_URL": self.catalog_store_api_url,
            "AZURE_STORAGE_CONNECTION_STRING": mask_secret(self.azure_storage_connection_string),
            "BLOB_CONTAINER_NAME": self.blob_container_name,
            "DEFAULT_LANGUAGE": self.default_language,
            "STORE_LOOKUP_ENABLED": str(self.store_lookup_enabled),
            "VOICE_REPLY_ENABLED": str(self.voice_reply_enabled),
        }


def mask_secret(value: Optional[str]) -> str:
    if not value:
        return "NOT SET"
    if len(value) > 8:
        return f"{value[:4]}****{value[-4:]}"
    return "****"


@lru_cache
def get_settings() -> Settings:
    return Settings()
