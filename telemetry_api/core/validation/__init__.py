"""Validation layer - Validación de lecturas entrantes."""

from .reading_validator import ReadingValidator, ValidatedReading

__all__ = ["ReadingValidator", "ValidatedReading"]
