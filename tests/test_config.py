from unittest.mock import patch

import pytest

from whatshook import main as main_module
from whatshook.config import ConfigurationError, Settings, mask_secret


class TestSettings:
    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.srm_api_url == "https://srm-api-recl.azurewebsites.net"
        assert settings.blob_container_name == "whats-audio"
        assert settings.default_language == "fr"
        assert settings.store_lookup_enabled is False
        assert settings.voice_reply_enabled is True
        assert settings.http_timeout_seconds == 30

    def test_reads_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("COMMUNICATION_SERVICES_CONNECTION_STRING", "endpoint=https://x/;accesskey=y")
        monkeypatch.setenv("CHANNEL_REGISTRATION_ID", "chan")
        monkeypatch.setenv("STORE_LOOKUP_ENABLED", "true")
        settings = Settings(_env_file=None)
        assert settings.channel_registration_id == "chan"
        assert settings.store_lookup_enabled is True
        assert settings.missing_required() == []

    def test_missing_required(self, clean_env):
        settings = Settings(_env_file=None, channel_registration_id="  ")
        assert settings.missing_required() == ["COMMUNICATION_SERVICES_CONNECTION_STRING", "CHANNEL_REGISTRATION_ID"]
        with pytest.raises(ConfigurationError, match="COMMUNICATION_SERVICES_CONNECTION_STRING"):
            settings.validate_required()

    def test_summary_masks_secrets(self, settings):
        summary = settings.summary()
        assert summary["COMMUNICATION_SERVICES_CONNECTION_STRING"] == "endp****ZXk="
        assert summary["AZURE_STORAGE_CONNECTION_STRING"] == "NOT SET"
        assert summary["CHANNEL_REGISTRATION_ID"] == "channel-123"


class TestMaskSecret:
    def test_mask_secret(self):
        assert mask_secret(None) == "NOT SET"
        assert mask_secret("") == "NOT SET"
        assert mask_secret("short") == "****"
        assert mask_secret("0123456789") == "0123****6789"


class TestStartup:
    def test_create_app_rejects_missing_config(self, clean_env):
        with pytest.raises(ConfigurationError):
            main_module.create_app(Settings(_env_file=None))

    def test_main_exits_with_status_1(self, clean_env):
        with patch.object(main_module, "get_settings", return_value=Settings(_env_file=None)), patch.object(
            main_module.uvicorn, "run"
        ) as run:
            with pytest.raises(SystemExit) as exc_info:
                main_module.main()

        assert exc_info.value.code == 1
        run.assert_not_called()
