from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

from httpmon.alerts.formatting import build_feishu_card
from httpmon.errors import NotifyError
from httpmon.utils.time import utc_now_s
from httpmon.utils.types import AlertEvent, Status

log = structlog.get_logger("feishu")

# --------- config & client ----------

@dataclass(slots=True)
class FeishuConfig:
    webhook: str
    timeout_s: float = 8.0


class FeishuNotifier:
    """
    Posts one interactive message card per alert to a Feishu group bot.
    Single attempt per send(); a failed delivery raises NotifyError and the
    caller decides when to try again.
    """
    def __init__(self, cfg: FeishuConfig, session: Optional[aiohttp.ClientSession] = None):
        if not cfg.webhook:
            raise ValueError("webhook is required")
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None

    async def start(self):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def stop(self):
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def send(self, url: str, status: Status, detail: str, latency_s: float) -> None:
        if self._session is None:
            await self.start()
        assert self._session is not None

        evt: AlertEvent = {
            "url": url,
            "status": Status(status).value,
            "detail": detail,
            "latency_s": float(latency_s),
            "ts": utc_now_s(),
        }
        payload = build_feishu_card(evt)
        try:
            async with self._session.post(self.cfg.webhook, json=payload) as resp:
                if 200 <= resp.status < 300:
                    log.debug("feishu_sent", url=url, status=evt["status"])
                    return
                body = await _maybe_text(resp)
                raise NotifyError(f"feishu returned HTTP {resp.status}: {body[:200]}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotifyError(f"feishu request failed: {e!r}") from e

async def _maybe_text(resp: aiohttp.ClientResponse) -> str:
    try:
        return await resp.text()
    except Exception:
        return "<no body>"
