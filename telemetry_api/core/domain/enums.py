"""Enumeraciones del dominio de telemetría."""

from __future__ import annotations

from enum import Enum


class DeviceType(str, Enum):
    SOIL_SENSOR = "soil_sensor"
    WEATHER_STATION = "weather_station"
    IRRIGATION_CONTROLLER = "irrigation_controller"
    CAMERA = "camera"
    DRONE = "drone"
    SMART_SPRAYER = "smart_sprayer"
    GPS_TRACKER = "gps_tracker"
    OTHER = "other"


class DeviceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"
    ERROR = "error"


class MetricType(str, Enum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    SOIL_MOISTURE = "soil_moisture"
    SOIL_TEMPERATURE = "soil_temperature"
    SOIL_PH = "soil_ph"
    SOIL_EC = "soil_ec"
    SOIL_NITROGEN = "soil_nitrogen"
    SOIL_PHOSPHORUS = "soil_phosphorus"
    SOIL_POTASSIUM = "soil_potassium"
    LIGHT_INTENSITY = "light_intensity"
    RAINFALL = "rainfall"
    WIND_SPEED = "wind_speed"
    WIND_DIRECTION = "wind_direction"
    ATMOSPHERIC_PRESSURE = "atmospheric_pressure"
    WATER_LEVEL = "water_level"
    BATTERY_LEVEL = "battery_level"
    SIGNAL_STRENGTH = "signal_strength"
    OTHER = "other"


# Métricas acumulativas: se agregan con sum/max en vez de avg/min/max
CUMULATIVE_METRICS = frozenset({MetricType.RAINFALL})


class ReadingQuality(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"


class AlertType(str, Enum):
    LOW_BATTERY = "low_battery"
    OFFLINE = "offline"
    THRESHOLD_EXCEEDED = "threshold_exceeded"
    THRESHOLD_BELOW = "threshold_below"
    MAINTENANCE_REQUIRED = "maintenance_required"
    TAMPER_DETECTED = "tamper_detected"
    CONNECTIVITY_ISSUE = "connectivity_issue"
    SYSTEM_ERROR = "system_error"
    OTHER = "other"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Interval(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
