"""CLI entry point for the maintenance runner."""

from __future__ import annotations

import argparse
import logging
import time

from .config import TASK_ALL, TASKS, RunnerConfig
from .runner import run_once

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="Telemetry maintenance runner (retention + alert sweep)")
    p.add_argument("--task", choices=TASKS, default=TASK_ALL)
    p.add_argument("--sweep-lookback-days", type=int, default=7)
    p.add_argument("--workers", type=int, default=1)
    p.add_argument("--sleep-seconds", type=float, default=300.0)
    p.add_argument("--once", action="store_true", help="run a single iteration and exit")
    args = p.parse_args()

    cfg = RunnerConfig(
        task=args.task,
        sweep_lookback_days=args.sweep_lookback_days,
        workers=args.workers,
        sleep_seconds=args.sleep_seconds,
        once=bool(args.once),
    )

    logger.info("Maintenance Runner started")
    logger.info(
        "Config: task=%s lookback=%dd workers=%d sleep=%.1fs",
        cfg.task, cfg.sweep_lookback_days, cfg.workers, cfg.sleep_seconds,
    )

    while True:
        try:
            run_once(cfg)
            if cfg.once:
                return
            logger.info("Iteración completada, esperando %.1fs...", cfg.sleep_seconds)
            time.sleep(cfg.sleep_seconds)
        except Exception as e:
            logger.error("Error en iteración: %s", e)
            if cfg.once:
                raise
            logger.info("Continuando con siguiente iteración...")
            time.sleep(cfg.sleep_seconds)


if __name__ == "__main__":
    main()
