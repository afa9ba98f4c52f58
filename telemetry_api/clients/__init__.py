"""Clientes de servicios externos (Device Registry, Maintenance Log)."""

from .transport import HttpTransport, RequestsTransport, TransportError, TransportResponse
from .resilient import ResilientTransport
from .locator import EnvServiceLocator, ServiceLocator, StaticServiceLocator
from .service_client import ServiceClient
from .device_registry import DeviceRegistry, HttpDeviceRegistry, InMemoryDeviceRegistry
from .maintenance_log import HttpMaintenanceLog, InMemoryMaintenanceLog, MaintenanceLog

__all__ = [
    "HttpTransport",
    "RequestsTransport",
    "TransportError",
    "TransportResponse",
    "ResilientTransport",
    "EnvServiceLocator",
    "ServiceLocator",
    "StaticServiceLocator",
    "ServiceClient",
    "DeviceRegistry",
    "HttpDeviceRegistry",
    "InMemoryDeviceRegistry",
    "HttpMaintenanceLog",
    "InMemoryMaintenanceLog",
    "MaintenanceLog",
]
