"""Cliente del Maintenance Log (historial de mantenimiento por dispositivo)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from ..core.domain import MaintenanceRecord, MaintenanceStatus
from ..core.domain.timeutils import parse_datetime
from ..errors import Unavailable
from .service_client import ServiceClient

logger = logging.getLogger(__name__)


class MaintenanceLog(Protocol):
    def list_maintenance(self, device_id: str) -> List[MaintenanceRecord]:
        """Raises Unavailable si el servicio no responde."""
        ...


class HttpMaintenanceLog:
    def __init__(self, client: ServiceClient):
        self._client = client

    def list_maintenance(self, device_id: str) -> List[MaintenanceRecord]:
        resp = self._client.get(f"/api/devices/{device_id}/maintenance")
        if resp.status_code == 404:
            # Sin historial para el dispositivo
            return []
        if not resp.ok:
            raise Unavailable(
                f"Maintenance log returned HTTP {resp.status_code} for {device_id}",
                service=self._client.name,
            )
        payload = resp.payload
        if isinstance(payload, Mapping):
            payload = payload.get("data", [])
        if not isinstance(payload, list):
            raise Unavailable(
                f"Malformed maintenance payload for {device_id}", service=self._client.name
            )
        return [_record_from_payload(item, device_id) for item in payload if isinstance(item, Mapping)]


def _record_from_payload(item: Mapping[str, Any], device_id: str) -> MaintenanceRecord:
    try:
        status = MaintenanceStatus(item.get("status") or MaintenanceStatus.SCHEDULED.value)
        return MaintenanceRecord(
            device_id=str(item.get("device") or item.get("deviceId") or device_id),
            maintenance_type=str(item.get("maintenanceType") or item.get("type") or "routine"),
            status=status,
            scheduled_date=parse_datetime(item.get("scheduledDate")),
            completed_date=parse_datetime(item.get("completedDate")),
            next_maintenance=parse_datetime(item.get("nextMaintenance")),
        )
    except ValueError as e:
        raise Unavailable(
            f"Malformed maintenance record for {device_id}: {e}", service="maintenance_log"
        ) from e


class InMemoryMaintenanceLog:
    def __init__(self, records: Optional[Iterable[MaintenanceRecord]] = None):
        self._records: Dict[str, List[MaintenanceRecord]] = {}
        for record in records or ():
            self.add(record)
        self.available = True

    def add(self, record: MaintenanceRecord) -> None:
        self._records.setdefault(record.device_id, []).append(record)

    def list_maintenance(self, device_id: str) -> List[MaintenanceRecord]:
        if not self.available:
            raise Unavailable("Maintenance log unavailable", service="maintenance_log")
        return list(self._records.get(device_id, []))
