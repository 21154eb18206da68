from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Storefront Core"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Locale settings
    default_language: str = "en"
    supported_languages: list[str] = ["en", "hi", "ta", "te", "kn", "ml", "mr", "gu", "bn", "pa"]
    locale_base_url: str = "http://localhost:8000"
    locale_bundle_path: str = "/locales/{locale}/bundle.json"

    # Analytics settings
    analytics_base_url: str = "http://localhost:8000"
    analytics_endpoint: str = "/api/analytics"
    persona: str = "ARVY"

    # Client storage settings
    storage_path: str | None = None
    consent_storage_key: str = "arvyam_consent"
    consent_marker_name: str = "arvy_consent_v1"
    consent_marker_days: int = 365
    language_storage_key: str = "arvyam_locale"

    # Logging settings
    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide Settings instance."""
    return settings
