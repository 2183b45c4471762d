# src/httpmon/alerts/rules.py
from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True, slots=True)
class AlertPolicy:
    """
    Shared, read-only alerting knobs.
    - cooldown_s           → minimum gap between two notifications for one URL (0 = never suppress)
    - latency_threshold_s  → 2xx responses slower than this are SLOW (0 = disabled)
    """
    cooldown_s: float = 60.0
    latency_threshold_s: float = 0.0

    def __post_init__(self):
        if self.cooldown_s < 0:
            raise ValueError("cooldown_s must be >= 0")
        if self.latency_threshold_s < 0:
            raise ValueError("latency_threshold_s must be >= 0")

    @property
    def latency_check_enabled(self) -> bool:
        return self.latency_threshold_s > 0
