from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en la raíz del repo; las variables reales del entorno tienen prioridad.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def load_env() -> None:
    env_file = os.getenv("TELEMETRY_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)


@dataclass(frozen=True)
class Settings:
    database_url: str

    device_registry_url: str
    maintenance_log_url: str
    http_timeout_seconds: float
    http_retry_attempts: int

    reading_retention_days: int


def get_settings() -> Settings:
    load_env()

    database_url = os.getenv("DATABASE_URL", "sqlite:///./telemetry.db")

    # URLs de fallback cuando no hay discovery (mismos puertos que el resto de la plataforma)
    device_registry_url = os.getenv("DEVICE_REGISTRY_URL", "http://localhost:3004")
    maintenance_log_url = os.getenv("MAINTENANCE_LOG_URL", device_registry_url)

    return Settings(
        database_url=database_url,
        device_registry_url=device_registry_url,
        maintenance_log_url=maintenance_log_url,
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "3.0")),
        http_retry_attempts=int(os.getenv("HTTP_RETRY_ATTEMPTS", "3")),
        reading_retention_days=int(os.getenv("READING_RETENTION_DAYS", "365")),
    )
