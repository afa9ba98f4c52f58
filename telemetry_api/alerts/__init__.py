"""Motor de alertas: reglas de disparo y ciclo de vida."""

from .alert_rules import AlertCandidate, AlertConfig
from .alert_engine import AlertEngine, AlertEvaluation

__all__ = ["AlertCandidate", "AlertConfig", "AlertEngine", "AlertEvaluation"]
