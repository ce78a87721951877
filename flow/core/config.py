"""
Configuration management using Pydantic Settings.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Settings
    app_name: str = "Flow API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"

    # CORS Settings - accepts comma-separated string
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    def get_allowed_origins(self) -> list[str]:
        """Get allowed origins as a list."""
        if isinstance(self.allowed_origins, list):
            return self.allowed_origins
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # Storage Settings
    storage_backend: Literal["memory", "database"] = "database"
    database_url: str = "sqlite:///./flow.db"

    # Session Settings
    session_secret: str = "flow-app-development-secret"
    session_cookie_name: str = "flow.sid"
    session_ttl_days: int = 7
    session_cookie_secure: bool = False

    # Demo login (quick "try it" account)
    demo_login_enabled: bool = True
    demo_username: str = "test"
    demo_password: str = "testing"
    demo_user_id: str = "test-user-123"
    demo_user_email: str = "test@flow.app"

    # Voice note uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # OpenAI Settings
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    openai_transcription_model: str = "whisper-1"

    # ElevenLabs Settings
    elevenlabs_api_key: str | None = None
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_model_id: str = "eleven_monolingual_v1"

    # Stripe Settings
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_pro_price_id: str | None = None
    stripe_team_price_id: str | None = None


# Global settings instance
settings = Settings()
