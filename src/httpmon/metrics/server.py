from __future__ import annotations

from typing import Optional

import structlog
from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST

from httpmon.config import parse_addr
from httpmon.metrics.prometheus import PrometheusMetrics

log = structlog.get_logger("metrics_server")


class MetricsServer:
    """
    Scrape endpoint on aiohttp.web with its own lifecycle.
    stop() closes the listener first, then gives in-flight scrapes up to
    shutdown_timeout seconds to finish.
    """
    def __init__(
        self,
        metrics: PrometheusMetrics,
        addr: str = ":2112",
        path: str = "/metrics",
        shutdown_timeout: float = 5.0,
    ):
        self.metrics = metrics
        self.host, self.port = parse_addr(addr)
        self.path = path
        self.shutdown_timeout = shutdown_timeout
        self._runner: Optional[web.AppRunner] = None

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(self.path, self._handle_metrics)
        return app

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        return web.Response(body=self.metrics.render(), headers={"Content-Type": CONTENT_TYPE_LATEST})

    async def start(self) -> bool:
        """Bind and serve. Returns False (and logs) if the address is unavailable."""
        runner = web.AppRunner(self.make_app(), shutdown_timeout=self.shutdown_timeout)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            log.error("metrics_server_bind_failed", host=self.host, port=self.port, err=str(e))
            await runner.cleanup()
            return False
        self._runner = runner
        log.info("metrics_server_listening", addresses=[str(a) for a in runner.addresses], path=self.path)
        return True

    @property
    def bound_port(self) -> Optional[int]:
        if self._runner is None or not self._runner.addresses:
            return None
        return self._runner.addresses[0][1]

    async def stop(self):
        if self._runner is None:
            return
        try:
            await self._runner.cleanup()
        except Exception as e:
            log.warning("metrics_server_shutdown_failed", err=str(e))
        finally:
            self._runner = None
        log.info("metrics_server_stopped")
