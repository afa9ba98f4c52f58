"""Maintenance runner configuration."""

from __future__ import annotations

from dataclasses import dataclass

TASK_RETENTION = "retention"
TASK_SWEEP = "sweep"
TASK_ALL = "all"
TASKS = (TASK_RETENTION, TASK_SWEEP, TASK_ALL)


@dataclass(frozen=True)
class RunnerConfig:
    """Configuración del runner de mantenimiento de telemetría."""
    task: str = TASK_ALL
    sweep_lookback_days: int = 7
    workers: int = 1
    sleep_seconds: float = 300.0
    once: bool = False

    @property
    def runs_retention(self) -> bool:
        return self.task in (TASK_RETENTION, TASK_ALL)

    @property
    def runs_sweep(self) -> bool:
        return self.task in (TASK_SWEEP, TASK_ALL)
