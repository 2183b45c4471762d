from __future__ import annotations
from datetime import datetime, timezone

from httpmon.utils.time import format_duration
from httpmon.utils.types import AlertEvent

CARD_TITLE = "HTTP Monitor Alert"

def _fmt_ts(ts_s: float) -> str:
    return datetime.fromtimestamp(ts_s, timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

def format_alert_text(evt: AlertEvent) -> str:
    """lark_md body: one bold label per line."""
    lines = [
        f"**URL**: {evt.get('url', '?')}",
        f"**Status**: {evt.get('status', '?')}",
        f"**Detail**: {evt.get('detail', '')}",
        f"**Latency**: {format_duration(float(evt.get('latency_s', 0.0)))}",
    ]
    if evt.get("ts"):
        lines.append(f"**Time**: {_fmt_ts(float(evt['ts']))}")
    return "\n".join(lines)

def build_feishu_card(evt: AlertEvent) -> dict:
    """Interactive message-card payload for a Feishu group bot webhook."""
    return {
        "msg_type": "interactive",
        "card": {
            "config": {"wide_screen_mode": True},
            "header": {
                "title": {"tag": "plain_text", "content": CARD_TITLE},
                "template": "red",
            },
            "elements": [
                {
                    "tag": "div",
                    "text": {"tag": "lark_md", "content": format_alert_text(evt)},
                },
            ],
        },
    }
