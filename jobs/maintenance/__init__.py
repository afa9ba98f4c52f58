"""Maintenance runner package.

Modules:
- config: RunnerConfig dataclass
- runner: run_once (retention purge + alert sweep)
- cli: CLI entry point (main)
"""

from .config import RunnerConfig
from .runner import CycleStats, run_once
from .cli import main

__all__ = ["RunnerConfig", "CycleStats", "run_once", "main"]
