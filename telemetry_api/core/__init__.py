"""Core module - Dominio de telemetría.

Estructura:
- domain/      → Modelos, enums y factories de dominio
- validation/  → Validación de lecturas entrantes
"""
