from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # project root
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
    )

    DATABASE_URL: str

    # "jwt" verifies tokens locally, "remote" asks the identity service
    AUTH_MODE: str = "jwt"
    SUPABASE_URL: str = ""
    SUPABASE_API_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""
    JWT_ALG: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    WEBHOOK_SECRET: str = ""
    TICKET_HASH_SECRET: str = "change-me"

    TIMEZONE: str = "UTC"

    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    CORS_ORIGINS: list[str] = [
        "http://localhost:5000",
        "http://127.0.0.1:5000",
    ]

    AUTO_CREATE_TABLES: bool = True
    SEED_DEMO_DATA: bool = False


settings = Settings()
