"""Transporte HTTP saliente.

Solo sabe hacer una request con timeout y clasificar el resultado: los
5xx y los errores de conexión son `TransportError` (transitorios, se
reintentan); cualquier otra respuesta vuelve al llamador, que decide qué
significa un 404 para su recurso.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    payload: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class TransportError(Exception):
    """Fallo transitorio: timeout, conexión rechazada o 5xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class HttpTransport(Protocol):
    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> TransportResponse:
        ...


class RequestsTransport:
    """HttpTransport sobre una `requests.Session` compartida."""

    def __init__(
        self,
        timeout_seconds: float = 3.0,
        session: Optional[requests.Session] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        if headers:
            self._session.headers.update(headers)

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> TransportResponse:
        try:
            resp = self._session.request(
                method, url, params=params, json=json, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if resp.status_code >= 500:
            raise TransportError(
                f"{method} {url} -> HTTP {resp.status_code}", status_code=resp.status_code
            )

        payload = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                logger.warning("[HTTP] Non-JSON body from %s %s status=%d", method, url, resp.status_code)
        return TransportResponse(status_code=resp.status_code, payload=payload)
