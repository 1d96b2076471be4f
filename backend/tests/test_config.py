"""Tests for application settings."""

import pytest

from qbd_assistant.core.config import ConfigurationMissingError, Settings
from qbd_assistant.services.llm import LLMConfig


def make_settings(**overrides) -> Settings:
    values = {
        "conductor_api_key": "sk_test_conductor",
        "conductor_end_user_id": "end_usr_test",
        "quickbooks_inventory_adjustment_account_id": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestConductorConfig:
    """Tests for Settings.conductor_config."""

    def test_built_from_settings(self):
        config = make_settings(
            conductor_base_url="https://conductor.internal/v1",
            conductor_timeout=15,
            quickbooks_inventory_adjustment_account_id="80000020-1",
        ).conductor_config()

        assert config.api_key == "sk_test_conductor"
        assert config.end_user_id == "end_usr_test"
        assert config.base_url == "https://conductor.internal/v1"
        assert config.timeout == 15.0
        assert config.adjustment_account_id == "80000020-1"

    def test_adjustment_account_optional(self):
        assert make_settings().conductor_config().adjustment_account_id is None

    @pytest.mark.parametrize("field,setting", [
        ("conductor_api_key", "CONDUCTOR_API_KEY"),
        ("conductor_end_user_id", "CONDUCTOR_END_USER_ID"),
    ])
    def test_missing_credentials(self, field, setting):
        with pytest.raises(ConfigurationMissingError) as exc_info:
            make_settings(**{field: ""}).conductor_config()

        assert exc_info.value.setting == setting
        assert setting in str(exc_info.value)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("CONDUCTOR_END_USER_ID", "end_usr_from_env")
        monkeypatch.setenv("CONDUCTOR_TIMEOUT", "5")

        settings = Settings(_env_file=None)

        assert settings.conductor_end_user_id == "end_usr_from_env"
        assert settings.conductor_timeout == 5.0


class TestLLMConfig:
    """Tests for LLM settings."""

    def test_defaults(self):
        config = LLMConfig()
        assert config.default_provider == "openai"
        assert config.intent_model == "gpt-4o-2024-08-06"
        assert config.response_model == "gpt-4o-mini"
        assert config.timeout == 60.0

    def test_from_settings(self, monkeypatch):
        from qbd_assistant.services import llm

        monkeypatch.setattr(llm, "settings", Settings(
            _env_file=None,
            default_llm_provider="ollama",
            intent_model="llama3.1",
            openai_api_key="",
            llm_timeout=30,
        ))

        config = LLMConfig.from_settings()

        assert config.default_provider == "ollama"
        assert config.intent_model == "llama3.1"
        assert config.openai_api_key is None
        assert config.timeout == 30.0
