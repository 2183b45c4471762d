# src/httpmon/config.py
"""
Configuration sources, in priority order:
  1. config.yaml (or --config PATH) when the file exists
  2. environment variables (a .env file is loaded by main)

  MONITOR_URLS                comma separated list of URLs (required)
  FEISHU_WEBHOOK              Feishu group bot webhook; alerts are only logged without it
  INTERVAL_SECONDS            polling interval, default 10
  TIMEOUT_SECONDS             per-request timeout, default 5
  ALERT_COOLDOWN_SECONDS      default 60
  ALERT_LATENCY_THRESHOLD_MS  default 0 (disabled)
  LOG_FILE / LOG_LEVEL        default monitor.log / INFO
  METRICS_ADDR                default :2112
  MAX_CONCURRENCY             default 8
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from httpmon.alerts.rules import AlertPolicy
from httpmon.errors import ConfigError

DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_INTERVAL_S = 10.0
DEFAULT_TIMEOUT_S = 5.0
DEFAULT_COOLDOWN_S = 60.0
DEFAULT_LOG_FILE = "monitor.log"
DEFAULT_METRICS_ADDR = ":2112"
DEFAULT_MAX_CONCURRENCY = 8


@dataclass(frozen=True, slots=True)
class MonitorConfig:
    urls: tuple[str, ...]
    interval_s: float = DEFAULT_INTERVAL_S
    timeout_s: float = DEFAULT_TIMEOUT_S
    cooldown_s: float = DEFAULT_COOLDOWN_S
    latency_threshold_s: float = 0.0
    webhook: Optional[str] = None
    log_file: str = DEFAULT_LOG_FILE
    log_level: str = "INFO"
    metrics_addr: str = DEFAULT_METRICS_ADDR
    metrics_path: str = "/metrics"
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    source: str = "env"

    @property
    def policy(self) -> AlertPolicy:
        return AlertPolicy(cooldown_s=self.cooldown_s, latency_threshold_s=self.latency_threshold_s)


# ---------------------------
# Coercion helpers
# ---------------------------

def _num(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return float(str(raw).strip())
    except ValueError:
        return None

def _positive(raw: Any, default: float) -> float:
    v = _num(raw)
    return v if v is not None and v > 0 else default

def _non_negative(raw: Any, default: float) -> float:
    v = _num(raw)
    if v is None:
        return default
    return max(0.0, v)

def _split_urls(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else raw
    if not isinstance(items, (list, tuple)):
        raise ConfigError(f"urls must be a list, got {type(raw).__name__}")
    return tuple(s for s in (str(u).strip() for u in items) if s)

def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    sec = data.get(name) or {}
    if not isinstance(sec, Mapping):
        raise ConfigError(f"config section {name!r} must be a mapping")
    return sec


def parse_addr(addr: str) -> tuple[str, int]:
    """':2112' → ('0.0.0.0', 2112); 'host:port' → ('host', port)."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"metrics address must be host:port, got {addr!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"metrics port must be a number, got {port!r}") from None
    if not 0 <= port_num <= 65535:
        raise ValueError(f"metrics port out of range: {port_num}")
    return (host.strip("[]") or "0.0.0.0"), port_num


def build_config(
    *,
    urls: Any,
    interval: Any = None,
    timeout: Any = None,
    cooldown: Any = None,
    latency_threshold_ms: Any = None,
    webhook: Any = None,
    log_file: Any = None,
    log_level: Any = None,
    metrics_addr: Any = None,
    metrics_path: Any = None,
    max_concurrency: Any = None,
    source: str = "env",
) -> MonitorConfig:
    """Apply defaults and validation to raw values from either source."""
    url_list = _split_urls(urls)
    if not url_list:
        raise ConfigError("no URLs configured: set monitor.urls in config.yaml or MONITOR_URLS")

    addr = str(metrics_addr or DEFAULT_METRICS_ADDR)
    try:
        parse_addr(addr)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    return MonitorConfig(
        urls=url_list,
        interval_s=_positive(interval, DEFAULT_INTERVAL_S),
        timeout_s=_positive(timeout, DEFAULT_TIMEOUT_S),
        cooldown_s=_non_negative(cooldown, DEFAULT_COOLDOWN_S),
        latency_threshold_s=_non_negative(latency_threshold_ms, 0.0) / 1000.0,
        webhook=(str(webhook).strip() or None) if webhook else None,
        log_file=str(log_file or DEFAULT_LOG_FILE),
        log_level=str(log_level or "INFO").upper(),
        metrics_addr=addr,
        metrics_path=str(metrics_path or "/metrics"),
        max_concurrency=int(_positive(max_concurrency, DEFAULT_MAX_CONCURRENCY)),
        source=source,
    )


def config_from_mapping(data: Mapping[str, Any], source: str = "yaml") -> MonitorConfig:
    mon = _section(data, "monitor")
    alert = _section(data, "alert")
    logc = _section(data, "log")
    metrics = _section(data, "metrics")
    feishu = _section(data, "feishu")
    return build_config(
        urls=mon.get("urls"),
        interval=mon.get("interval_seconds"),
        timeout=mon.get("timeout_seconds"),
        max_concurrency=mon.get("max_concurrency"),
        cooldown=alert.get("cooldown_seconds"),
        latency_threshold_ms=alert.get("latency_threshold_ms"),
        webhook=feishu.get("webhook"),
        log_file=logc.get("file"),
        log_level=logc.get("level"),
        metrics_addr=metrics.get("addr"),
        metrics_path=metrics.get("path"),
        source=source,
    )


def config_from_env(env: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    e = os.environ if env is None else env
    return build_config(
        urls=e.get("MONITOR_URLS", ""),
        interval=e.get("INTERVAL_SECONDS"),
        timeout=e.get("TIMEOUT_SECONDS"),
        cooldown=e.get("ALERT_COOLDOWN_SECONDS"),
        latency_threshold_ms=e.get("ALERT_LATENCY_THRESHOLD_MS"),
        webhook=e.get("FEISHU_WEBHOOK"),
        log_file=e.get("LOG_FILE"),
        log_level=e.get("LOG_LEVEL"),
        metrics_addr=e.get("METRICS_ADDR"),
        max_concurrency=e.get("MAX_CONCURRENCY"),
        source="env",
    )


def load_config(path: str | os.PathLike = DEFAULT_CONFIG_PATH, env: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """YAML file if present, environment otherwise. Raises ConfigError on anything unusable."""
    p = Path(path)
    if p.is_file():
        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {p}: {e}") from e
        if not isinstance(data, Mapping):
            raise ConfigError(f"{p} must contain a mapping at top level")
        return config_from_mapping(data, source=str(p))
    return config_from_env(env)
