from unittest.mock import Mock

import pytest

from whatshook.config import Settings
from whatshook.services.result import Result


@pytest.fixture
def settings():
    """Settings with the required values set and no .env lookup."""
    return Settings(
        _env_file=None,
        communication_services_connection_string="endpoint=https://acs.example.com/;accesskey=dGVzdC1rZXk=",
        channel_registration_id="channel-123",
        srm_api_url="https://srm.test",
        catalog_store_api_url="https://catalog.test",
        http_retry_backoff_seconds=0,
    )


@pytest.fixture
def notifications():
    """Mock notification service that accepts every send."""
    service = Mock()
    service.send_text.return_value = Result.success(["msg-1"])
    service.send_audio.return_value = Result.success(["msg-2"])
    service.send_audio_bytes.return_value = Result.success(["msg-2"])
    service.download_media.return_value = Result.success(b"media-bytes")
    return service


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "COMMUNICATION_SERVICES_CONNECTION_STRING",
        "CHANNEL_REGISTRATION_ID",
        "SRM_API_URL",
        "CATALOG_STORE_API_URL",
        "AZURE_STORAGE_CONNECTION_STRING",
        "BLOB_CONTAINER_NAME",
        "DEFAULT_LANGUAGE",
        "STORE_LOOKUP_ENABLED",
        "VOICE_REPLY_ENABLED",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
