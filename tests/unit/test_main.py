import asyncio
import logging

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

import httpmon.main as main_mod
from httpmon.config import MonitorConfig
from httpmon.errors import ServiceError


@pytest_asyncio.fixture
async def endpoints():
    hooks = []

    async def _boom(request):
        return web.Response(status=500)

    async def _ok(request):
        return web.Response(text="ok")

    async def _hook(request):
        hooks.append(await request.json())
        return web.json_response({"code": 0})

    app = web.Application()
    app.router.add_get("/boom", _boom)
    app.router.add_get("/ok", _ok)
    app.router.add_post("/hook", _hook)
    srv = TestServer(app)
    await srv.start_server()
    yield srv, hooks
    await srv.close()


@pytest.mark.asyncio
async def test_run_monitor_alerts_once_per_cooldown(endpoints):
    srv, hooks = endpoints
    cfg = MonitorConfig(
        urls=(str(srv.make_url("/boom")), str(srv.make_url("/ok"))),
        interval_s=0.05,
        timeout_s=1.0,
        cooldown_s=60.0,
        webhook=str(srv.make_url("/hook")),
        metrics_addr="127.0.0.1:0",
    )
    stop = asyncio.Event()
    task = asyncio.create_task(main_mod.run_monitor(cfg, stop))
    await asyncio.sleep(0.3)
    stop.set()
    await asyncio.wait_for(task, timeout=5.0)

    assert len(hooks) == 1
    assert "/boom" in hooks[0]["card"]["elements"][0]["text"]["content"]


@pytest.mark.asyncio
async def test_run_monitor_without_webhook(endpoints):
    srv, hooks = endpoints
    cfg = MonitorConfig(urls=(str(srv.make_url("/boom")),), interval_s=0.05, metrics_addr="127.0.0.1:0")
    stop = asyncio.Event()
    task = asyncio.create_task(main_mod.run_monitor(cfg, stop))
    await asyncio.sleep(0.1)
    stop.set()
    await asyncio.wait_for(task, timeout=5.0)
    assert hooks == []


def test_cli_exits_on_empty_url_list(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MONITOR_URLS", raising=False)
    called = []
    monkeypatch.setattr(main_mod.asyncio, "run", lambda coro: called.append(coro))
    try:
        assert main_mod.cli(["--config", str(tmp_path / "none.yaml")]) == 1
    finally:
        logging.getLogger().handlers.clear()
    assert called == []


def test_cli_service_commands(monkeypatch):
    seen = []

    def _control(self, command, config_path):
        seen.append((command, config_path))
        if command == "stop":
            raise ServiceError("not running")

    monkeypatch.setattr(main_mod.SystemdService, "control", _control)
    try:
        assert main_mod.cli(["--service", "start", "--config", "c.yaml"]) == 0
        assert main_mod.cli(["--service", "stop"]) == 1
    finally:
        logging.getLogger().handlers.clear()
    assert seen == [("start", "c.yaml"), ("stop", "config.yaml")]


def test_parser_rejects_unknown_service_command():
    with pytest.raises(SystemExit):
        main_mod.build_parser().parse_args(["--service", "restart"])


def test_cli_exits_on_malformed_metrics_addr(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MONITOR_URLS", "http://127.0.0.1:1/")
    monkeypatch.setenv("METRICS_ADDR", "2112")
    called = []
    monkeypatch.setattr(main_mod.asyncio, "run", lambda coro: called.append(coro))
    try:
        assert main_mod.cli(["--config", str(tmp_path / "none.yaml")]) == 1
    finally:
        logging.getLogger().handlers.clear()
    assert called == []
