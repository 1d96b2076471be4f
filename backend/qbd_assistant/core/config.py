"""Application configuration using Pydantic Settings."""

from dataclasses import dataclass
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationMissingError(Exception):
    """Raised when a required setting is not configured.

    Attributes:
        setting: Environment variable name of the missing setting
    """

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(message or f"{setting} environment variable is not set")


@dataclass(frozen=True)
class ConductorConfig:
    """Connection settings for the Conductor QuickBooks Desktop API.

    Built once from ``Settings`` and injected into the gateway and services.

    Attributes:
        api_key: Conductor secret key
        end_user_id: Conductor end-user ID naming the QuickBooks Desktop connection
        base_url: Conductor API base URL
        timeout: Request timeout in seconds
        adjustment_account_id: Account used for inventory quantity adjustments
    """
    api_key: str
    end_user_id: str
    base_url: str = "https://api.conductor.is/v1"
    timeout: float = 60.0
    adjustment_account_id: Optional[str] = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "QuickBooks Desktop Inventory Assistant"
    debug: bool = False

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    # Conductor / QuickBooks Desktop
    conductor_api_key: str = ""
    conductor_base_url: str = "https://api.conductor.is/v1"
    conductor_end_user_id: str = ""
    conductor_timeout: float = 60.0
    quickbooks_inventory_adjustment_account_id: str = ""

    # LLM Configuration
    default_llm_provider: str = "openai"
    intent_model: str = "gpt-4o-2024-08-06"
    response_model: str = "gpt-4o-mini"
    openai_api_key: str = ""
    lmstudio_url: str = "http://localhost:1234/v1"
    ollama_url: str = "http://localhost:11434"
    llm_timeout: float = 60.0

    def conductor_config(self) -> ConductorConfig:
        """Build the Conductor connection config.

        Returns:
            ConductorConfig with the configured credentials

        Raises:
            ConfigurationMissingError: If the API key or end-user ID is not set
        """
        if not self.conductor_api_key:
            raise ConfigurationMissingError("CONDUCTOR_API_KEY")
        if not self.conductor_end_user_id:
            raise ConfigurationMissingError("CONDUCTOR_END_USER_ID")

        return ConductorConfig(
            api_key=self.conductor_api_key,
            end_user_id=self.conductor_end_user_id,
            base_url=self.conductor_base_url,
            timeout=self.conductor_timeout,
            adjustment_account_id=self.quickbooks_inventory_adjustment_account_id or None,
        )


# Create settings instance
settings = Settings()
