"""Resolución de la URL base de cada servicio externo."""

from __future__ import annotations

import os
from typing import Mapping, Optional, Protocol

from ..errors import Unavailable


class ServiceLocator(Protocol):
    def base_url(self, service: str) -> str:
        ...


class StaticServiceLocator:
    """URLs fijas, típico de tests o despliegues sin discovery."""

    def __init__(self, urls: Mapping[str, str]):
        self._urls = {name: url.rstrip("/") for name, url in urls.items()}

    def base_url(self, service: str) -> str:
        url = self._urls.get(service)
        if not url:
            raise Unavailable(f"No endpoint configured for service '{service}'", service=service)
        return url


class EnvServiceLocator:
    """Lee `<SERVICE>_URL` del entorno en cada llamada.

    Ej: service "device_registry" -> DEVICE_REGISTRY_URL. Si la variable no
    está, usa `defaults` (normalmente construidos desde Settings).
    """

    def __init__(self, defaults: Optional[Mapping[str, str]] = None):
        self._defaults = dict(defaults or {})

    def base_url(self, service: str) -> str:
        env_var = f"{service.upper()}_URL"
        url = os.getenv(env_var) or self._defaults.get(service)
        if not url:
            raise Unavailable(f"{env_var} is not set", service=service)
        return url.rstrip("/")
