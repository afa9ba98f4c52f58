"""API key opcional y actor de la request.

La autenticación real la hace el gateway; este servicio solo recibe la
identidad ya verificada en headers (X-Actor-Id / X-Actor-Role).
"""

from __future__ import annotations

import logging
import os

from fastapi import Header, HTTPException

from .core.domain import Actor, Role

logger = logging.getLogger(__name__)


def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key")
) -> None:
    """Si TELEMETRY_API_KEY está configurado, exige que coincida."""
    expected = os.getenv("TELEMETRY_API_KEY")
    if not expected:
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key required")

    if x_api_key != expected:
        logger.warning("Invalid API key attempt from request")
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_actor(
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
    x_actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
) -> Actor:
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="X-Actor-Id header required")
    role = (x_actor_role or Role.USER.value).strip().lower()
    try:
        return Actor(actor_id=x_actor_id.strip(), role=Role(role))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown actor role '{x_actor_role}'") from None
