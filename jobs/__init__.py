"""Batch jobs del servicio de telemetría."""
