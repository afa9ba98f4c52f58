"""Vistas de solo lectura sobre datos externos (Device Registry, Maintenance Log)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .enums import DeviceStatus, DeviceType, MaintenanceStatus


@dataclass(frozen=True)
class Device:
    id: str
    device_type: DeviceType
    owner: str
    field: Optional[str] = None
    status: DeviceStatus = DeviceStatus.ACTIVE
    battery_level: Optional[float] = None
    battery_charging: bool = False
    last_communication: Optional[datetime] = None
    next_maintenance: Optional[datetime] = None


@dataclass(frozen=True)
class MaintenanceRecord:
    device_id: str
    maintenance_type: str
    status: MaintenanceStatus
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    next_maintenance: Optional[datetime] = None


class Role(str, Enum):
    """Roles que llegan del servicio de autenticación."""
    ADMIN = "admin"
    USER = "user"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Identidad que ejecuta una mutación (resolver/purgar alertas)."""
    actor_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SYSTEM)

    def can_manage(self, device: Device) -> bool:
        """Admin o dueño del dispositivo."""
        return self.is_admin or device.owner == self.actor_id


SYSTEM_ACTOR = Actor(actor_id="system", role=Role.SYSTEM)
