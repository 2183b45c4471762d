from __future__ import annotations

import threading
from dataclasses import dataclass

@dataclass(slots=True)
class AlertState:
    last_alert_at: float | None = None


class AlertStateStore:
    """
    Per-URL alert bookkeeping behind a lock.

    An entry exists only while a URL has an alert on record. reset() drops the
    entry, so a URL that recovered may alert again immediately, while one that
    merely waited out its cooldown is still governed by the old timestamp.
    The metrics listener reads through snapshot(); the table is never handed out.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._states: dict[str, AlertState] = {}

    def should_notify(self, url: str, now: float, cooldown_s: float) -> bool:
        if cooldown_s <= 0:
            return True
        with self._lock:
            st = self._states.get(url)
            if st is None or st.last_alert_at is None:
                return True
            return now - st.last_alert_at >= cooldown_s

    def record_alert(self, url: str, now: float) -> None:
        with self._lock:
            st = self._states.get(url)
            if st is None:
                st = AlertState()
                self._states[url] = st
            st.last_alert_at = now

    def reset(self, url: str) -> None:
        with self._lock:
            self._states.pop(url, None)

    def last_alert_at(self, url: str) -> float | None:
        with self._lock:
            st = self._states.get(url)
            return None if st is None else st.last_alert_at

    def snapshot(self) -> dict[str, float]:
        """url -> last_alert_at for every URL with an alert on record."""
        with self._lock:
            return {
                url: st.last_alert_at
                for url, st in self._states.items()
                if st.last_alert_at is not None
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
