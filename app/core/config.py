"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI (analysis falls back to keyword triage when no key is configured)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Twilio
    twilio_auth_token: str
    skip_webhook_signature_validation: bool = False

    # Database
    database_url: str

    # Deployment
    environment: str = "production"
    base_url: Optional[str] = None

    # Conversation
    clinic_name: str = "the clinic"
    default_locale: str = "en-US"
    language_menu_enabled: bool = False
    barge_in_enabled: bool = True
    gather_timeout_seconds: int = 5
    max_empty_turns: int = 2
    min_speech_confidence: float = 0.0

    # Analysis
    analysis_timeout_seconds: float = 6.0
    nearby_radius_meters: int = 5000
    nearby_provider_limit: int = 3

    # Emergency transfer
    default_emergency_number: str = "+15555550100"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def signature_validation_enabled(self) -> bool:
        """Signature checks may only be bypassed outside production."""
        if self.environment.lower() == "production":
            return True
        return not self.skip_webhook_signature_validation


settings = Settings()
