"""Infraestructura: persistencia SQL."""
