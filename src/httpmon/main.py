# src/httpmon/main.py
import argparse
import asyncio
import signal
import sys

import structlog
from dotenv import load_dotenv

from httpmon.config import DEFAULT_CONFIG_PATH, MonitorConfig, load_config
from httpmon.errors import ConfigError, ServiceError

from httpmon.alerts.state import AlertStateStore
from httpmon.probe.prober import Prober, ProberConfig
from httpmon.runner import CycleRunner, RunnerConfig

# Metrics
from httpmon.metrics.prometheus import PrometheusMetrics
from httpmon.metrics.server import MetricsServer

# Feishu notifier (optional)
from httpmon.notify.feishu import FeishuConfig, FeishuNotifier

from httpmon.service.systemd import ALL_COMMANDS, CONTROL_COMMANDS, SystemdService
from httpmon.utils.log import setup_logging

log = structlog.get_logger()

STOP_GRACE_S = 1.0


# ---------------------------
# Signals
# ---------------------------

def install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals):
        log.info("signal_received", signal=sig.name)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except (NotImplementedError, RuntimeError):
            # not on the main thread / platform without signal support
            pass


# ---------------------------
# Main
# ---------------------------

async def run_monitor(cfg: MonitorConfig, stop_event: asyncio.Event) -> None:
    """Wire every component, run until stop_event is set, then tear down."""
    store = AlertStateStore()
    metrics = PrometheusMetrics(alert_store=store)
    metrics_server = MetricsServer(metrics, addr=cfg.metrics_addr, path=cfg.metrics_path)

    prober = Prober(ProberConfig(timeout_s=cfg.timeout_s, policy=cfg.policy))

    notifier = None
    if cfg.webhook:
        notifier = FeishuNotifier(FeishuConfig(webhook=cfg.webhook))
        log.info("feishu_enabled")
    else:
        log.warning("feishu_disabled_missing_webhook",
                    hint="alerts will only be written to the console and log file")

    runner = CycleRunner(
        RunnerConfig(
            urls=cfg.urls,
            interval_s=cfg.interval_s,
            policy=cfg.policy,
            max_concurrency=cfg.max_concurrency,
        ),
        prober=prober,
        store=store,
        notifier=notifier,
        metrics=metrics,
    )

    await metrics_server.start()
    await prober.start()
    if notifier is not None:
        await notifier.start()

    try:
        await runner.start()
        await stop_event.wait()
    finally:
        # graceful shutdown to avoid unclosed sessions; in-flight requests get one timeout to finish
        runner.request_stop()
        if not await runner.wait_stopped(timeout=cfg.timeout_s + STOP_GRACE_S):
            log.warning("runner_stop_timeout", abandoning="in-flight requests")
        await runner.stop()
        await metrics_server.stop()
        if notifier is not None:
            await notifier.stop()
        await prober.stop()
        log.info("monitor_stopped", cycles=runner.cycles)


async def main(cfg: MonitorConfig) -> None:
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)
    await run_monitor(cfg, stop_event)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="http-monitor", description="Poll HTTP endpoints and alert on failures.")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH,
                   help="YAML config file; environment variables are used when it is missing")
    p.add_argument("--service", choices=ALL_COMMANDS, default=None,
                   help="control the systemd service instead of running in the foreground")
    return p


def cli(argv=None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    if args.service in CONTROL_COMMANDS:
        setup_logging(None)
        try:
            SystemdService().control(args.service, args.config)
        except ServiceError as e:
            log.error("service_command_failed", command=args.service, err=str(e))
            return 1
        return 0

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        setup_logging(None)
        log.error("config_invalid", err=str(e))
        return 1

    setup_logging(cfg.log_file, cfg.log_level)
    log.info("config_loaded", source=cfg.source, urls=len(cfg.urls))

    try:
        asyncio.run(main(cfg))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(cli())
