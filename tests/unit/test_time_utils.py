from httpmon.utils.time import format_duration, next_tick, seconds_until

def test_format_duration():
    assert format_duration(0.05) == "50ms"
    assert format_duration(0.8) == "800ms"
    assert format_duration(1.25) == "1.25s"
    assert format_duration(5.0) == "5s"
    assert format_duration(125) == "2m5s"
    assert format_duration(-1) == "0ms"

def test_seconds_until_clamps():
    assert seconds_until(10.0, 4.0) == 6.0
    assert seconds_until(10.0, 12.0) == 0.0

def test_next_tick_drops_missed_ticks():
    assert next_tick(0.0, 10.0, 3.0) == 10.0
    assert next_tick(0.0, 10.0, 10.0) == 20.0
    assert next_tick(0.0, 10.0, 25.0) == 30.0
    assert next_tick(5.0, 10.0, 1.0) == 5.0
