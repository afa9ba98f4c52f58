"""Validador de lecturas entrantes.

Normaliza los campos crudos (strings del request, floats, dicts de
ubicación) a tipos de dominio o levanta `ValidationError` con el primer
problema encontrado. No toca la BD ni el registry.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from ..domain import Location, MetricType, ReadingQuality
from ..domain.timeutils import ensure_utc
from ...errors import ValidationError

logger = logging.getLogger(__name__)

# Rangos físicos duros: fuera de esto la lectura es un error del sensor,
# no una anomalía.
PHYSICAL_RANGES = {
    MetricType.HUMIDITY: (0.0, 100.0),
    MetricType.SOIL_MOISTURE: (0.0, 100.0),
    MetricType.BATTERY_LEVEL: (0.0, 100.0),
    MetricType.SOIL_PH: (0.0, 14.0),
    MetricType.WIND_DIRECTION: (0.0, 360.0),
    MetricType.RAINFALL: (0.0, math.inf),
    MetricType.WIND_SPEED: (0.0, math.inf),
    MetricType.LIGHT_INTENSITY: (0.0, math.inf),
}

MAX_UNIT_LENGTH = 32


@dataclass(frozen=True)
class ValidatedReading:
    device_id: str
    metric: MetricType
    value: float
    unit: str
    timestamp: Optional[datetime]
    location: Optional[Location]
    quality: ReadingQuality


class ReadingValidator:
    """Valida y normaliza una lectura antes de pasarla al detector."""

    def validate(
        self,
        *,
        device_id: Any,
        metric: Any,
        value: Any,
        unit: Any,
        timestamp: Optional[datetime] = None,
        location: Union[Location, Mapping[str, Any], None] = None,
        quality: Any = None,
    ) -> ValidatedReading:
        if not device_id or not str(device_id).strip():
            raise ValidationError("device is required")

        metric_type = self._metric(metric)
        numeric = self._value(metric_type, value)

        if unit is None or not str(unit).strip():
            raise ValidationError("unit is required")
        unit = str(unit).strip()
        if len(unit) > MAX_UNIT_LENGTH:
            raise ValidationError(f"unit must be at most {MAX_UNIT_LENGTH} characters")

        return ValidatedReading(
            device_id=str(device_id).strip(),
            metric=metric_type,
            value=numeric,
            unit=unit,
            timestamp=ensure_utc(timestamp) if timestamp is not None else None,
            location=self._location(location),
            quality=self._quality(quality),
        )

    def _metric(self, metric: Any) -> MetricType:
        if metric is None or metric == "":
            raise ValidationError("metric is required")
        if isinstance(metric, MetricType):
            return metric
        try:
            return MetricType(str(metric))
        except ValueError:
            raise ValidationError(f"Unknown metric '{metric}'") from None

    def _value(self, metric: MetricType, value: Any) -> float:
        if value is None or isinstance(value, bool):
            raise ValidationError("value is required and must be numeric")
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"value must be numeric, got {value!r}") from None
        if not math.isfinite(numeric):
            raise ValidationError("value must be a finite number")

        bounds = PHYSICAL_RANGES.get(metric)
        if bounds is not None and not (bounds[0] <= numeric <= bounds[1]):
            raise ValidationError(
                f"value {numeric} out of range [{bounds[0]}, {bounds[1]}] for {metric.value}"
            )
        return numeric

    def _quality(self, quality: Any) -> ReadingQuality:
        if quality is None or quality == "":
            return ReadingQuality.GOOD
        try:
            return ReadingQuality(quality)
        except ValueError:
            raise ValidationError(f"Unknown quality '{quality}'") from None

    def _location(self, location: Union[Location, Mapping[str, Any], None]) -> Optional[Location]:
        if location is None:
            return None
        if isinstance(location, Location):
            lat, lon = location.latitude, location.longitude
        else:
            try:
                lat = float(location["latitude"])
                lon = float(location["longitude"])
            except (KeyError, TypeError, ValueError):
                raise ValidationError("location requires numeric latitude and longitude") from None
        if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
            raise ValidationError(f"location out of range lat={lat} lon={lon}")
        return Location(latitude=lat, longitude=lon)
