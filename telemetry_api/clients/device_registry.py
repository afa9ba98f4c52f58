"""Cliente del Device Registry (servicio externo dueño de los dispositivos).

El core solo lee dispositivos y, tras cada lectura aceptada, avisa al
registry de la última comunicación y el nivel de batería. Ese aviso es
best-effort: si falla se loguea y la lectura ya persistida no se revierte.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

from ..core.domain import Device, DeviceStatus, DeviceType
from ..core.domain.timeutils import ensure_utc, parse_datetime
from ..errors import NotFound, TelemetryError, Unavailable
from .service_client import ServiceClient

logger = logging.getLogger(__name__)


class DeviceRegistry(Protocol):
    def get_device(self, device_id: str) -> Device:
        """Raises NotFound si no existe, Unavailable si el registry no responde."""
        ...

    def record_telemetry(
        self, device_id: str, at: datetime, battery_level: Optional[float] = None
    ) -> None:
        ...


class HttpDeviceRegistry:
    """DeviceRegistry sobre la API REST del servicio de dispositivos."""

    def __init__(self, client: ServiceClient):
        self._client = client

    def get_device(self, device_id: str) -> Device:
        resp = self._client.get(f"/api/devices/{device_id}")
        if resp.status_code == 404:
            raise NotFound(f"Device {device_id} not found")
        if not resp.ok or not isinstance(resp.payload, dict):
            raise Unavailable(
                f"Device registry returned HTTP {resp.status_code} for {device_id}",
                service=self._client.name,
            )
        return device_from_payload(resp.payload, device_id)

    def record_telemetry(
        self, device_id: str, at: datetime, battery_level: Optional[float] = None
    ) -> None:
        body: Dict[str, Any] = {"lastCommunication": ensure_utc(at).isoformat()}
        if battery_level is not None:
            body["battery"] = {"level": battery_level}
        try:
            resp = self._client.patch(f"/api/devices/{device_id}/telemetry", json=body)
        except TelemetryError as e:
            logger.warning("REGISTRY_TOUCH_FAILED device=%s err=%s", device_id, e)
            return
        if not resp.ok:
            logger.warning(
                "REGISTRY_TOUCH_FAILED device=%s status=%d", device_id, resp.status_code
            )


def device_from_payload(payload: Mapping[str, Any], device_id: str) -> Device:
    """Traduce el JSON del registry ({data: {...}} o plano) a Device."""
    data = payload.get("data", payload)
    if not isinstance(data, Mapping):
        raise Unavailable(f"Malformed device payload for {device_id}", service="device_registry")

    battery = data.get("battery") or {}
    level = battery.get("level") if isinstance(battery, Mapping) else None
    charging = bool(battery.get("charging", False)) if isinstance(battery, Mapping) else False
    if level is None and data.get("batteryLevel") is not None:
        level = data.get("batteryLevel")

    try:
        return Device(
            id=str(data.get("id") or data.get("_id") or device_id),
            device_type=DeviceType(data.get("deviceType") or DeviceType.OTHER.value),
            owner=str(data.get("owner") or ""),
            field=data.get("field"),
            status=DeviceStatus(data.get("status") or DeviceStatus.ACTIVE.value),
            battery_level=float(level) if level is not None else None,
            battery_charging=charging,
            last_communication=parse_datetime(data.get("lastCommunication")),
            next_maintenance=parse_datetime(data.get("nextMaintenance")),
        )
    except ValueError as e:
        raise Unavailable(
            f"Malformed device payload for {device_id}: {e}", service="device_registry"
        ) from e


class InMemoryDeviceRegistry:
    """DeviceRegistry en memoria para tests y ejecución local."""

    def __init__(self, devices: Optional[Iterable[Device]] = None):
        self._devices: Dict[str, Device] = {d.id: d for d in devices or ()}
        self._lock = threading.Lock()
        self.available = True

    def add(self, device: Device) -> None:
        with self._lock:
            self._devices[device.id] = device

    def get_device(self, device_id: str) -> Device:
        if not self.available:
            raise Unavailable("Device registry unavailable", service="device_registry")
        with self._lock:
            device = self._devices.get(device_id)
        if device is None:
            raise NotFound(f"Device {device_id} not found")
        return device

    def record_telemetry(
        self, device_id: str, at: datetime, battery_level: Optional[float] = None
    ) -> None:
        if not self.available:
            logger.warning("REGISTRY_TOUCH_FAILED device=%s err=unavailable", device_id)
            return
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                return
            at = ensure_utc(at)
            if device.last_communication is not None and device.last_communication > at:
                at = device.last_communication
            changes: Dict[str, Any] = {"last_communication": at}
            if battery_level is not None:
                changes["battery_level"] = float(battery_level)
            self._devices[device_id] = replace(device, **changes)
