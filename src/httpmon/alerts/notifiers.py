# src/httpmon/alerts/notifiers.py
from __future__ import annotations
from typing import Protocol, runtime_checkable

from httpmon.utils.types import Status


@runtime_checkable
class Notifier(Protocol):
    """
    Outbound alert channel. send() returns on delivery and raises
    httpmon.errors.NotifyError (or any other exception) when the alert
    did not reach the channel.
    """
    async def send(self, url: str, status: Status, detail: str, latency_s: float) -> None: ...
