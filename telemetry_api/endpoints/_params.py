"""Helpers de parámetros de query compartidos por los routers."""

from __future__ import annotations

from typing import List, Optional


def split_csv(raw: Optional[str]) -> Optional[List[str]]:
    """"a, b,,c" -> ["a", "b", "c"]; None/"" -> None."""
    if raw is None:
        return None
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return items or None
