import aiohttp
import pytest

from httpmon.alerts.state import AlertStateStore
from httpmon.metrics.prometheus import MetricsSink, PrometheusMetrics
from httpmon.metrics.server import MetricsServer, parse_addr


def test_counter_and_histogram():
    m = PrometheusMetrics()
    m.increment_request_counter("https://a.test", "OK")
    m.increment_request_counter("https://a.test", "OK")
    m.increment_request_counter("https://a.test", "ERROR")
    m.observe_latency("https://a.test", 0.2)

    reg = m.registry
    assert reg.get_sample_value("http_monitor_requests_total", {"url": "https://a.test", "status": "OK"}) == 2
    assert reg.get_sample_value("http_monitor_requests_total", {"url": "https://a.test", "status": "ERROR"}) == 1
    assert reg.get_sample_value("http_monitor_request_duration_seconds_count", {"url": "https://a.test"}) == 1
    assert isinstance(m, MetricsSink)


def test_alert_gauge_follows_store():
    store = AlertStateStore()
    m = PrometheusMetrics(alert_store=store)
    store.record_alert("https://a.test", 10.0)
    assert m.registry.get_sample_value("http_monitor_alert_active", {"url": "https://a.test"}) == 1
    store.reset("https://a.test")
    assert m.registry.get_sample_value("http_monitor_alert_active", {"url": "https://a.test"}) is None


def test_separate_instances_do_not_collide():
    PrometheusMetrics()
    PrometheusMetrics()


def test_parse_addr():
    assert parse_addr(":2112") == ("0.0.0.0", 2112)
    assert parse_addr("127.0.0.1:9000") == ("127.0.0.1", 9000)
    with pytest.raises(ValueError):
        parse_addr("2112")


@pytest.mark.asyncio
async def test_server_serves_and_stops():
    m = PrometheusMetrics()
    m.increment_request_counter("https://a.test", "SLOW")
    srv = MetricsServer(m, addr="127.0.0.1:0", shutdown_timeout=1.0)
    assert await srv.start()
    port = srv.bound_port
    try:
        async with aiohttp.ClientSession() as s:
            async with s.get(f"http://127.0.0.1:{port}/metrics") as resp:
                assert resp.status == 200
                assert resp.headers["Content-Type"].startswith("text/plain")
                text = await resp.text()
        assert 'http_monitor_requests_total{url="https://a.test",status="SLOW"} 1.0' in text
    finally:
        await srv.stop()

    assert srv.bound_port is None
    async with aiohttp.ClientSession() as s:
        with pytest.raises(aiohttp.ClientConnectionError):
            async with s.get(f"http://127.0.0.1:{port}/metrics"):
                pass


@pytest.mark.asyncio
async def test_bind_failure_is_not_fatal():
    first = MetricsServer(PrometheusMetrics(), addr="127.0.0.1:0")
    assert await first.start()
    try:
        second = MetricsServer(PrometheusMetrics(), addr=f"127.0.0.1:{first.bound_port}")
        assert await second.start() is False
        await second.stop()
    finally:
        await first.stop()
