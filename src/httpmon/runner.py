from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

import structlog

from httpmon.alerts.notifiers import Notifier
from httpmon.alerts.rules import AlertPolicy
from httpmon.alerts.state import AlertStateStore
from httpmon.metrics.prometheus import MetricsSink
from httpmon.probe.prober import classify
from httpmon.utils.time import format_duration, monotonic_s, next_tick, seconds_until, utc_now_s
from httpmon.utils.types import PollOutcome, Status

log = structlog.get_logger("runner")


class Probe(Protocol):
    async def probe(self, url: str) -> PollOutcome: ...


@dataclass(slots=True)
class RunnerConfig:
    urls: Sequence[str]
    interval_s: float = 10.0
    policy: AlertPolicy = field(default_factory=AlertPolicy)
    max_concurrency: int = 8


class CycleRunner:
    """
    Drives the polling loop.
    Each cycle probes every URL once (fan-out bounded by max_concurrency),
    then per URL:
      - HEALTHY → reset alert state
      - ERROR / SLOW → notify unless the URL is inside its cooldown;
                      the timestamp is recorded only when delivery succeeded
    Cycles start on ticks at start + k*interval. A cycle that overruns its
    tick is followed immediately by the next one; missed ticks are dropped.
    """
    def __init__(
        self,
        cfg: RunnerConfig,
        prober: Probe,
        store: AlertStateStore,
        notifier: Optional[Notifier] = None,
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], float] = monotonic_s,
    ):
        if not cfg.urls:
            raise ValueError("at least one URL is required")
        self.cfg = cfg
        self.urls = tuple(cfg.urls)
        self.prober = prober
        self.store = store
        self.notifier = notifier
        self.metrics = metrics
        self._clock = clock
        self._sem = asyncio.Semaphore(max(1, cfg.max_concurrency))
        self._url_locks: dict[str, asyncio.Lock] = {}
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.cycles = 0

    async def start(self):
        self._stop.clear()
        self._task = asyncio.create_task(self.run_forever(), name="cycle-runner")

    async def stop(self):
        self._stop.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def request_stop(self) -> None:
        """Signal-handler friendly: ends run_forever() at its next suspension point."""
        self._stop.set()

    async def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Wait for run_forever() to return. False if it is still running after `timeout`."""
        if self._task is None:
            return True
        done, _ = await asyncio.wait({self._task}, timeout=timeout)
        return bool(done)

    # --- loop ---

    async def run_forever(self):
        policy = self.cfg.policy
        log.info(
            "monitor_started",
            urls=len(self.urls),
            interval=format_duration(self.cfg.interval_s),
            cooldown=format_duration(policy.cooldown_s),
            latency_threshold=format_duration(policy.latency_threshold_s),
        )
        interval = self.cfg.interval_s
        start = monotonic_s()
        pending = start + interval
        while not self._stop.is_set():
            await self.run_once()
            now = monotonic_s()
            if now >= pending:
                # overran: one missed tick fires at once, the rest are dropped
                delay = 0.0
                pending = next_tick(start, interval, now)
            else:
                delay = seconds_until(pending, now)
                pending += interval
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue
        log.info("monitor_loop_exiting", cycles=self.cycles)

    async def run_once(self) -> list[PollOutcome]:
        """One full pass. Results come back in configured URL order; failed URLs are omitted."""
        results = await asyncio.gather(*(self._bounded_check(u) for u in self.urls))
        self.cycles += 1
        return [r for r in results if r is not None]

    async def _bounded_check(self, url: str) -> Optional[PollOutcome]:
        async with self._sem:
            try:
                return await self.check_url(url)
            except asyncio.CancelledError:
                raise
            except Exception:
                # never let one URL abort the pass
                log.exception("check_failed", url=url)
                return None

    # --- per URL ---

    def _lock_for(self, url: str) -> asyncio.Lock:
        lock = self._url_locks.get(url)
        if lock is None:
            lock = asyncio.Lock()
            self._url_locks[url] = lock
        return lock

    async def check_url(self, url: str) -> PollOutcome:
        try:
            outcome = await self.prober.probe(url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # the URL still counts as polled and can alert
            log.exception("check_raised", url=url)
            outcome = classify(
                url,
                error=f"unexpected error: {e!r}",
                status_code=None,
                latency_s=0.0,
                policy=self.cfg.policy,
                ts=utc_now_s(),
            )
        self._record_metrics(outcome)
        async with self._lock_for(url):
            await self.handle_outcome(outcome)
        return outcome

    async def handle_outcome(self, outcome: PollOutcome) -> bool:
        """Apply the decision table to one outcome. Returns True if a notification went out."""
        url = outcome.url
        if not outcome.status.alert_worthy:
            log.info("url_ok", url=url, detail=outcome.detail)
            self.store.reset(url)
            return False

        log.warning("url_alert", url=url, status=outcome.status.value, detail=outcome.detail)
        if self.notifier is None:
            return False

        cooldown = self.cfg.policy.cooldown_s
        if not self.store.should_notify(url, self._clock(), cooldown):
            log.info("alert_suppressed", url=url, status=outcome.status.value,
                     cooldown=format_duration(cooldown))
            return False

        try:
            await self.notifier.send(url, outcome.status, outcome.detail, outcome.latency_s)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # leave state untouched so the next cycle retries
            log.error("notify_failed", url=url, status=outcome.status.value, err=str(e))
            return False

        self.store.record_alert(url, self._clock())
        log.info("alert_sent", url=url, status=outcome.status.value)
        return True

    def _record_metrics(self, outcome: PollOutcome) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.increment_request_counter(outcome.url, Status(outcome.status).value)
            self.metrics.observe_latency(outcome.url, outcome.latency_s)
        except Exception as e:
            log.warning("metrics_record_failed", url=outcome.url, err=str(e))
