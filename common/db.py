from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from .config import get_settings


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def build_engine(url: str) -> Engine:
    parsed = make_url(url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine backend=%s host=%s db=%s",
        parsed.get_backend_name(),
        parsed.host,
        parsed.database,
    )

    connect_args = {}
    if parsed.get_backend_name() == "sqlite":
        # FastAPI atiende requests sync en un threadpool
        connect_args["check_same_thread"] = False

    engine = create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    return engine


def get_engine() -> Engine:
    """Engine singleton construido desde DATABASE_URL."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


def reset_engine() -> None:
    """Descarta el engine singleton (útil para tests)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None
