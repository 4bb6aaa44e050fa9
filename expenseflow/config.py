from dotenv import load_dotenv
from pydantic import BaseModel
from typing import List
import os

# Carga el .env automáticamente
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "development")
    port: int = int(os.getenv("PORT", "3001"))
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./expenses.db")
    sql_echo: bool = _env_flag("SQL_ECHO", "0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    external_lookups: bool = _env_flag("EXTERNAL_LOOKUPS", "1")
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))
    exchange_rate_api_url: str = os.getenv(
        "EXCHANGE_RATE_API_URL", "https://api.exchangerate-api.com/v4/latest/{base}"
    )
    countries_api_url: str = os.getenv(
        "COUNTRIES_API_URL", "https://restcountries.com/v3.1/all?fields=name,currencies"
    )
    rate_cache_ttl_seconds: int = int(os.getenv("RATE_CACHE_TTL_SECONDS", "3600"))

    cors_origins: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]


# Instancia global de settings
settings = Settings()
