from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypedDict

# ---- probe-level primitives ----

class Status(str, Enum):
    """Classification of a single poll. Values double as the metrics label."""
    HEALTHY = "OK"
    ERROR = "ERROR"
    SLOW = "SLOW"

    @property
    def alert_worthy(self) -> bool:
        return self is not Status.HEALTHY


@dataclass(frozen=True, slots=True)
class PollOutcome:
    url: str
    status: Status
    latency_s: float   # request start -> headers received (or failure)
    detail: str
    ts: float          # epoch seconds


# ---- alert payload (what notifiers receive, flattened for formatting) ----

class AlertEvent(TypedDict, total=False):
    url: str
    status: str
    detail: str
    latency_s: float
    ts: float
