"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Therapy Chat"
    environment: str = "development"
    log_level: str = "info"

    # Google AI
    google_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    oracle_temperature: float = 0.7
    oracle_timeout_seconds: float = 30.0

    # MongoDB
    mongodb_uri: str = "mongodb://mongodb:27017"
    mongodb_database: str = "therapy_chat"
    sessions_collection: str = "chatsessions"

    # Telemetry (Inngest event API)
    inngest_event_key: str = ""
    inngest_base_url: str = "https://inn.gs"
    telemetry_timeout_seconds: float = 5.0

    # Authentication gateway
    auth_user_header: str = "X-User-Id"

    # CORS
    frontend_url: str = "http://localhost:3000"

    @property
    def telemetry_enabled(self) -> bool:
        return bool(self.inngest_event_key)


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency for injecting settings."""
    return settings
