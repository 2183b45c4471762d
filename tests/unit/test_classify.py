from httpmon.alerts.rules import AlertPolicy
from httpmon.probe.prober import classify
from httpmon.utils.types import Status

U = "https://a.test/"
NO_THRESHOLD = AlertPolicy(cooldown_s=60, latency_threshold_s=0)
THRESHOLD_500MS = AlertPolicy(cooldown_s=60, latency_threshold_s=0.5)

def test_fast_200_is_healthy():
    o = classify(U, error=None, status_code=200, latency_s=0.05, policy=NO_THRESHOLD)
    assert o.status is Status.HEALTHY
    assert o.detail == "HTTP 200, took 50ms"

def test_500_is_error_with_code():
    o = classify(U, error=None, status_code=500, latency_s=0.05, policy=NO_THRESHOLD)
    assert o.status is Status.ERROR
    assert "500" in o.detail

def test_redirect_and_client_codes_are_errors():
    for code in (199, 300, 301, 404):
        assert classify(U, error=None, status_code=code, latency_s=0.01, policy=NO_THRESHOLD).status is Status.ERROR
    assert classify(U, error=None, status_code=299, latency_s=0.01, policy=NO_THRESHOLD).status is Status.HEALTHY

def test_slow_200_over_threshold():
    o = classify(U, error=None, status_code=200, latency_s=0.8, policy=THRESHOLD_500MS)
    assert o.status is Status.SLOW
    assert o.detail == "response took 800ms, exceeding threshold 500ms"

def test_threshold_comparison_is_strict():
    o = classify(U, error=None, status_code=200, latency_s=0.5, policy=THRESHOLD_500MS)
    assert o.status is Status.HEALTHY

def test_zero_threshold_disables_slow():
    o = classify(U, error=None, status_code=200, latency_s=30.0, policy=NO_THRESHOLD)
    assert o.status is Status.HEALTHY

def test_transport_error_wins_over_everything():
    o = classify(U, error="connection refused", status_code=None, latency_s=9.0, policy=THRESHOLD_500MS)
    assert o.status is Status.ERROR
    assert o.detail == "connection refused"

def test_error_code_wins_over_slow():
    o = classify(U, error=None, status_code=503, latency_s=9.0, policy=THRESHOLD_500MS)
    assert o.status is Status.ERROR

def test_classification_is_deterministic():
    kw = dict(error=None, status_code=200, latency_s=0.8, policy=THRESHOLD_500MS, ts=1.0)
    assert classify(U, **kw) == classify(U, **kw)

def test_status_alert_worthiness():
    assert not Status.HEALTHY.alert_worthy
    assert Status.ERROR.alert_worthy
    assert Status.SLOW.alert_worthy
    assert Status.HEALTHY.value == "OK"
