# app/core/config.py
import os
from typing import ClassVar, List
from pydantic import BaseModel, Field

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'certchain.db')}")

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}

def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]

class Settings(BaseModel):
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")))
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))

    # base pública usada no link de verificação embutido no QR
    PUBLIC_BASE_URL: str = Field(default_factory=lambda: os.getenv("PUBLIC_BASE_URL", ""))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    # "console" ou "json"
    LOG_FORMAT: str = Field(default_factory=lambda: os.getenv("LOG_FORMAT", "console").strip().lower())
    ISSUE_MAX_ATTEMPTS: int = Field(default_factory=lambda: int(os.getenv("ISSUE_MAX_ATTEMPTS", "3")))
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: _env_list("CORS_ORIGINS", "*"))
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", "true"))

    SUPERADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_EMAIL", ""))
    SUPERADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_PASSWORD", ""))
    SUPERADMIN_NAME: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_NAME", "Super Admin"))

settings = Settings()
