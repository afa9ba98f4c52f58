"""Maintenance runner - purga por retención + barrido de alertas por dispositivo."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from telemetry_api.container import ServiceContainer, get_container
from telemetry_api.core.domain.timeutils import utc_now

from .config import RunnerConfig

logger = logging.getLogger(__name__)


@dataclass
class CycleStats:
    purged: int = 0
    devices: int = 0
    ok: int = 0
    failed: int = 0
    degraded: int = 0
    alerts_created: int = 0
    alerts_resolved: int = 0


def run_once(
    cfg: RunnerConfig,
    container: Optional[ServiceContainer] = None,
    now: Optional[datetime] = None,
) -> CycleStats:
    """Un ciclo de mantenimiento.

    - retention: borra lecturas con `expires_at` vencido.
    - sweep: evalúa alertas (batería, conectividad, mantenimiento) para
      cada dispositivo con lecturas en los últimos `sweep_lookback_days`.
      El fallo de un dispositivo se loguea y no corta el ciclo.
    """
    container = container or get_container()
    stats = CycleStats()
    now = now or utc_now()
    t0 = time.monotonic()

    if cfg.runs_retention:
        stats.purged = container.store.purge_expired(now)

    if cfg.runs_sweep:
        since = now - timedelta(days=cfg.sweep_lookback_days)
        device_ids = container.store.device_ids_active_since(since)
        stats.devices = len(device_ids)

        with ThreadPoolExecutor(max_workers=max(1, cfg.workers)) as pool:
            futures = {
                pool.submit(container.alert_engine.evaluate_device, device_id, now): device_id
                for device_id in device_ids
            }
            for fut in as_completed(futures):
                device_id = futures[fut]
                try:
                    evaluation = fut.result()
                except Exception as exc:
                    stats.failed += 1
                    logger.error("sweep_device_failed device=%s err=%s", device_id, exc)
                    continue
                stats.ok += 1
                stats.alerts_created += len(evaluation.created)
                stats.alerts_resolved += len(evaluation.resolved)
                if evaluation.degraded:
                    stats.degraded += 1

    cycle_ms = (time.monotonic() - t0) * 1000
    logger.info(
        "maintenance_cycle task=%s ms=%.1f purged=%d devices=%d ok=%d fail=%d degraded=%d "
        "alerts_created=%d alerts_resolved=%d",
        cfg.task, cycle_ms, stats.purged, stats.devices, stats.ok, stats.failed,
        stats.degraded, stats.alerts_created, stats.alerts_resolved,
    )
    return stats
