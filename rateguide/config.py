from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, populate_by_name=True)
    default_history_months: int = Field(default=12, ge=1, le=360, alias="DEFAULT_HISTORY_MONTHS")
    boe_base_url: str = Field(
        default="https://www.bankofengland.co.uk/boeapps/iadb/fromshowcolumns.asp",
        alias="BOE_BASE_URL",
    )
    ons_base_url: str = Field(default="https://api.beta.ons.gov.uk/v1", alias="ONS_BASE_URL")
    ons_cpih_version: str = Field(default="66", alias="ONS_CPIH_VERSION")
    boe_cache_ttl_seconds: int = Field(default=24 * 60 * 60, ge=1, alias="BOE_CACHE_TTL_SECONDS")
    ons_cache_ttl_seconds: int = Field(default=7 * 24 * 60 * 60, ge=1, alias="ONS_CACHE_TTL_SECONDS")
    cache_enabled: int = Field(default=1, alias="CACHE_ENABLED")
    cache_db_path: str = Field(default="./data/cache.sqlite3", alias="CACHE_DB_PATH")
    http_timeout_seconds: float = Field(default=30.0, gt=0, alias="HTTP_TIMEOUT_SECONDS")
    http_retry_attempts: int = Field(default=2, ge=0, le=2, alias="HTTP_RETRY_ATTEMPTS")
    http_retry_base_delay_ms: int = Field(default=250, ge=50, le=2000, alias="HTTP_RETRY_BASE_DELAY_MS")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-flash-latest", alias="GEMINI_MODEL")
    gemini_fallback_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_FALLBACK_MODEL")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com", alias="GEMINI_BASE_URL")
    gemini_timeout_seconds: float = Field(default=12.0, gt=0, le=120, alias="GEMINI_TIMEOUT_SECONDS")
    gemini_max_attempts: int = Field(default=2, ge=1, le=3, alias="GEMINI_MAX_ATTEMPTS")
    gemini_temperature: float = Field(default=0.2, ge=0, le=2, alias="GEMINI_TEMPERATURE")

settings = Settings()
