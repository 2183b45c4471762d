"""
Host service control for Linux/systemd.

  http-monitor --service install    write + enable the unit
  http-monitor --service uninstall  disable + remove the unit
  http-monitor --service start|stop systemctl start/stop
  http-monitor --service run        run in the foreground (what the unit executes)

systemd stops the unit with SIGTERM, which main turns into the monitor's
stop signal.
"""
from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

import structlog

from httpmon.errors import ServiceError

log = structlog.get_logger("service")

CONTROL_COMMANDS = ("install", "uninstall", "start", "stop")
ALL_COMMANDS = CONTROL_COMMANDS + ("run",)

UNIT_TEMPLATE = """\
[Unit]
Description={description}
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
WorkingDirectory={workdir}
ExecStart={exec_start}
Restart=on-failure
RestartSec=5
KillSignal=SIGTERM
TimeoutStopSec=15

[Install]
WantedBy=multi-user.target
"""

Runner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]


def systemd_quote(arg: str) -> str:
    """One ExecStart= argument: double-quoted, with quotes, backslashes and % specifiers escaped."""
    escaped = arg.replace("\\", "\\\\").replace("\"", "\\\"").replace("%", "%%")
    return f"\"{escaped}\""


def _run(cmd: Sequence[str]) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(list(cmd), capture_output=True, text=True, timeout=30)


@dataclass
class SystemdService:
    name: str = "http-monitor"
    description: str = "HTTP Monitor: polls HTTP endpoints and sends Feishu alerts"
    unit_dir: Path = Path("/etc/systemd/system")
    python: str = field(default_factory=lambda: sys.executable)
    runner: Runner = _run

    @property
    def unit_path(self) -> Path:
        return self.unit_dir / f"{self.name}.service"

    def render_unit(self, config_path: str | Path) -> str:
        cfg = Path(config_path).resolve()
        exec_start = f"{systemd_quote(self.python)} -m httpmon.main --config {systemd_quote(str(cfg))} --service run"
        return UNIT_TEMPLATE.format(
            description=self.description,
            workdir=str(cfg.parent).replace("%", "%%"),
            exec_start=exec_start,
        )

    def _systemctl(self, *args: str) -> str:
        cmd = ["systemctl", *args]
        try:
            result = self.runner(cmd)
        except (OSError, subprocess.SubprocessError) as e:
            raise ServiceError(f"{' '.join(cmd)} failed: {e}") from e
        if result.returncode != 0:
            raise ServiceError(f"{' '.join(cmd)} exited {result.returncode}: {(result.stderr or '').strip()}")
        return result.stdout or ""

    def install(self, config_path: str | Path) -> Path:
        try:
            self.unit_path.write_text(self.render_unit(config_path), encoding="utf-8")
        except OSError as e:
            raise ServiceError(f"cannot write {self.unit_path}: {e}") from e
        self._systemctl("daemon-reload")
        self._systemctl("enable", self.name)
        log.info("service_installed", unit=str(self.unit_path))
        return self.unit_path

    def uninstall(self) -> None:
        if not self.unit_path.exists():
            raise ServiceError(f"{self.unit_path} is not installed")
        self._systemctl("disable", "--now", self.name)
        try:
            self.unit_path.unlink()
        except OSError as e:
            raise ServiceError(f"cannot remove {self.unit_path}: {e}") from e
        self._systemctl("daemon-reload")
        log.info("service_uninstalled", unit=str(self.unit_path))

    def start(self) -> None:
        self._systemctl("start", self.name)
        log.info("service_started", name=self.name)

    def stop(self) -> None:
        self._systemctl("stop", self.name)
        log.info("service_stopped", name=self.name)

    def control(self, command: str, config_path: str | Path) -> None:
        if command == "install":
            self.install(config_path)
        elif command == "uninstall":
            self.uninstall()
        elif command == "start":
            self.start()
        elif command == "stop":
            self.stop()
        else:
            raise ServiceError(f"unknown service command: {command}")
