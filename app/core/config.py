from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql://localhost:5432/autocare"
    database_ssl: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Business hours, end hours are exclusive. Sunday is always closed.
    weekday_start_hour: int = 9
    weekday_end_hour: int = 18
    saturday_start_hour: int = 8
    saturday_end_hour: int = 19
    # Calendar dates and booking times are interpreted in this zone, not the host's
    business_timezone: str = "UTC"

    # Language model
    llm_provider: str = "gemini"  # "gemini" or "mock"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-pro"
    llm_temperature: float = 0.7
    llm_timeout_seconds: float = 30.0

    # Env
    env: str = "development"

    site_name: str = "WheelsDoc Autocare"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def llm_configured(self) -> bool:
        return self.llm_provider == "mock" or bool(self.gemini_api_key)


settings = Settings()
