import os
import json
from pathlib import Path
from decimal import Decimal
from typing import List, Union, Optional, Any
from pydantic import Field, field_validator, PostgresDsn, ValidationInfo
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

DEFAULT_RBAC_MATRIX_PATH = str(Path(__file__).resolve().parent / "rbac_matrix.json")


class Settings(BaseSettings):
    """
    Application settings, read from environment variables (and `.env`).
    """
    # --- General ---
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Service Desk API")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api/v1")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-access-secret")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")

    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    REFRESH_TOKEN_SECRET_KEY: str = os.getenv("REFRESH_TOKEN_SECRET_KEY", "change-me-refresh-secret")
    REFRESH_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

    # --- Database ---
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "servicedesk")
    DATABASE_DRIVER: str = os.getenv("DATABASE_DRIVER", "psycopg")

    # An explicit DATABASE_URI wins over the POSTGRES_* parts
    DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("DATABASE_URI", mode='before')
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> Any:
        if isinstance(v, str) and v:
            return v

        driver = info.data.get("DATABASE_DRIVER", "psycopg")
        return str(PostgresDsn.build(
            scheme=f"postgresql+{driver}",
            username=info.data.get("POSTGRES_USER"),
            password=info.data.get("POSTGRES_PASSWORD"),
            host=info.data.get("POSTGRES_SERVER"),
            port=int(info.data.get("POSTGRES_PORT", 5432)),
            path=f"{info.data.get('POSTGRES_DB') or ''}",
        ))

    # --- CORS ---
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and v:
            if v.startswith("[") and v.endswith("]"):
                return json.loads(v)
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        elif isinstance(v, list):
            return v
        return []

    # --- Celery ---
    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    CELERY_RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    # --- RBAC / route guard ---
    RBAC_MATRIX_PATH: str = os.getenv("RBAC_MATRIX_PATH", DEFAULT_RBAC_MATRIX_PATH)
    LOGIN_ROUTE: str = os.getenv("LOGIN_ROUTE", "/login")
    DEFAULT_FALLBACK_ROUTE: str = os.getenv("DEFAULT_FALLBACK_ROUTE", "/")

    # --- Hours bank ---
    HOURS_BANK_LOW_BALANCE_THRESHOLD: Decimal = Decimal(os.getenv("HOURS_BANK_LOW_BALANCE_THRESHOLD", "5"))

    # --- Initial superuser ---
    SUPERUSER_USERNAME: str = os.getenv("SUPERUSER_USERNAME", "admin")
    SUPERUSER_EMAIL: Optional[str] = os.getenv("SUPERUSER_EMAIL")
    SUPERUSER_PASSWORD: Optional[str] = os.getenv("SUPERUSER_PASSWORD")

    class Config:
        case_sensitive = True
        env_file = ".env"
        env_file_encoding = 'utf-8'

settings = Settings()
