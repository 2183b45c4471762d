# src/httpmon/probe/prober.py
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional

import aiohttp
import structlog

from httpmon.alerts.rules import AlertPolicy
from httpmon.utils.time import format_duration, utc_now_s
from httpmon.utils.types import PollOutcome, Status

log = structlog.get_logger("prober")


def classify(
    url: str,
    *,
    error: Optional[str],
    status_code: Optional[int],
    latency_s: float,
    policy: AlertPolicy,
    ts: float = 0.0,
) -> PollOutcome:
    """
    Map one request result to a PollOutcome. Priority:
      1) transport error / timeout          → ERROR (detail = error text)
      2) status outside [200, 300)          → ERROR
      3) 2xx slower than threshold (strict) → SLOW  (threshold 0 disables)
      4) anything else                      → HEALTHY
    Depends on nothing but its arguments.
    """
    if error is not None:
        return PollOutcome(url, Status.ERROR, latency_s, error, ts)

    if status_code is None or not 200 <= status_code < 300:
        return PollOutcome(url, Status.ERROR, latency_s, f"HTTP status code: {status_code}", ts)

    if policy.latency_check_enabled and latency_s > policy.latency_threshold_s:
        detail = (
            f"response took {format_duration(latency_s)}, "
            f"exceeding threshold {format_duration(policy.latency_threshold_s)}"
        )
        return PollOutcome(url, Status.SLOW, latency_s, detail, ts)

    return PollOutcome(url, Status.HEALTHY, latency_s, f"HTTP {status_code}, took {format_duration(latency_s)}", ts)


@dataclass(slots=True)
class ProberConfig:
    timeout_s: float = 5.0
    policy: AlertPolicy = field(default_factory=AlertPolicy)
    user_agent: str = "http-monitor/0.1"


class Prober:
    """
    One GET per call, bounded by timeout_s, never retried. The request body
    is not read: latency stops at response headers.
    """
    def __init__(self, cfg: Optional[ProberConfig] = None, session: Optional[aiohttp.ClientSession] = None):
        self.cfg = cfg or ProberConfig()
        self._session = session
        self._owns_session = session is None

    async def start(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self.cfg.user_agent})
            self._owns_session = True

    async def stop(self):
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def probe(self, url: str) -> PollOutcome:
        if self._session is None:
            await self.start()
        assert self._session is not None

        timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
        ts = utc_now_s()
        error: Optional[str] = None
        status_code: Optional[int] = None

        start = time.perf_counter()
        try:
            async with self._session.get(url, timeout=timeout, allow_redirects=True) as resp:
                latency = time.perf_counter() - start
                status_code = resp.status
        except asyncio.TimeoutError:
            latency = time.perf_counter() - start
            error = f"request timed out after {format_duration(self.cfg.timeout_s)}"
        except (aiohttp.ClientError, ValueError) as e:
            # ValueError: malformed URL rejected before any I/O
            latency = time.perf_counter() - start
            error = str(e) or type(e).__name__

        outcome = classify(
            url,
            error=error,
            status_code=status_code,
            latency_s=latency,
            policy=self.cfg.policy,
            ts=ts,
        )
        log.debug("probe_done", url=url, status=outcome.status.value, latency_s=round(latency, 4))
        return outcome
