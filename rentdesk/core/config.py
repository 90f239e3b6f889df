from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "RentDesk API"
    # Comma-separated origins for CORS. If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Booking dates/times are wall-clock values in this zone
    TIMEZONE: str = "Asia/Kolkata"

    # WhatsApp (WasenderAPI-compatible) messaging
    WHATSAPP_API_KEY: str = ""
    WHATSAPP_API_URL: str = "https://www.wasenderapi.com"
    WHATSAPP_COUNTRY_CODE: str = "91"
    WHATSAPP_TIMEOUT_SECONDS: int = 10
    RETURN_LOCATION: str = "Main Branch Return Desk"
    SUPPORT_PHONE: str = ""

    # Return reminder job
    REMINDER_SEND_DELAY_SECONDS: float = 1.0
    REMINDER_RUN_TIMEOUT_SECONDS: int = 240

    MAX_EXTENSION_DAYS: int = 30


settings = Settings()
