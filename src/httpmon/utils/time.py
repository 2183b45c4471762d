from __future__ import annotations

import time

# --- clock helpers ---

def utc_now_s() -> float:
    """Unix epoch seconds (float)."""
    return time.time()

def monotonic_s() -> float:
    """Monotonic seconds, for intervals and cooldowns."""
    return time.monotonic()

def seconds_until(ts_target: float, now: float) -> float:
    """Non-negative time until target (clamped at 0)."""
    return max(0.0, ts_target - now)

def next_tick(start: float, interval: float, now: float) -> float:
    """
    First tick of the schedule start + k*interval strictly after `now`.
    Missed ticks are dropped rather than queued.
    """
    if interval <= 0:
        return now
    if now < start:
        return start
    k = int((now - start) // interval) + 1
    return start + k * interval

def format_duration(seconds: float) -> str:
    """
    Human readable duration: 812ms, 1.25s, 2m5s.
    """
    if seconds < 0:
        seconds = 0.0
    if seconds < 1.0:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60.0:
        return f"{seconds:.2f}".rstrip("0").rstrip(".") + "s"
    mins, secs = divmod(int(round(seconds)), 60)
    return f"{mins}m{secs}s"
