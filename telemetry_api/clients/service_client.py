"""Cliente genérico de un servicio externo: locator + transporte.

Es el único punto donde los errores de transporte se convierten en
`Unavailable`; las capas de arriba solo ven la taxonomía del dominio.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..errors import Unavailable
from ..metrics import DEPENDENCY_FAILURES
from ..resilience import CircuitBreakerOpen
from .locator import ServiceLocator
from .transport import HttpTransport, TransportError, TransportResponse

logger = logging.getLogger(__name__)


class ServiceClient:
    def __init__(self, name: str, locator: ServiceLocator, transport: HttpTransport):
        self.name = name
        self._locator = locator
        self._transport = transport

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> TransportResponse:
        return self._request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> TransportResponse:
        return self._request("POST", path, json=json)

    def patch(self, path: str, json: Any = None) -> TransportResponse:
        return self._request("PATCH", path, json=json)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> TransportResponse:
        url = f"{self._locator.base_url(self.name)}{path}"
        try:
            return self._transport.request(method, url, params=params, json=json)
        except CircuitBreakerOpen as e:
            DEPENDENCY_FAILURES.labels(service=self.name).inc()
            logger.warning("DEPENDENCY_UNAVAILABLE service=%s reason=circuit_open", self.name)
            raise Unavailable(str(e), service=self.name) from e
        except TransportError as e:
            DEPENDENCY_FAILURES.labels(service=self.name).inc()
            logger.warning("DEPENDENCY_UNAVAILABLE service=%s err=%s", self.name, e)
            raise Unavailable(f"{self.name} unavailable: {e}", service=self.name) from e
