import pytest

from palmmatch.core.metrics import Counter, MetricsRegistry, normalize_path


def test_counter_export_has_help_and_sorted_series():
    registry = MetricsRegistry()
    counter = registry.counter("codes_resolved_total", "Code lookups", ["outcome"])
    counter.inc({"outcome": "ok"})
    counter.inc({"outcome": "expired"})
    counter.inc({"outcome": "ok"})

    text = registry.export_prometheus()
    assert text.splitlines() == [
        "# HELP codes_resolved_total Code lookups",
        "# TYPE codes_resolved_total counter",
        'codes_resolved_total{outcome="expired"} 1.0',
        'codes_resolved_total{outcome="ok"} 2.0',
    ]


def test_counter_rejects_negative():
    with pytest.raises(ValueError):
        Counter("x").inc(amount=-1)


def test_gauge_set_and_reset():
    registry = MetricsRegistry()
    gauge = registry.gauge("local_cache_codes")
    gauge.set(3)
    assert gauge.value() == 3.0
    registry.reset()
    assert gauge.value() == 0.0


def test_registry_refuses_kind_change():
    registry = MetricsRegistry()
    registry.counter("events")
    with pytest.raises(ValueError):
        registry.gauge("events")


def test_label_values_are_escaped():
    counter = Counter("c", label_names=["path"])
    counter.inc({"path": 'a"b'})
    assert 'c{path="a\\"b"} 1.0' in counter.export()


def test_normalize_path_hides_identifiers():
    assert normalize_path("/v1/codes/ALI123456XYZ") == "/v1/codes/:id"
    assert normalize_path("/v1/matches/3f2b8c1e-9d4a-4f6b-8e2a-1c5d7e9f0a3b/publish") == "/v1/matches/:id/publish"
    assert normalize_path("/v1/matches/public") == "/v1/matches/public"
    assert normalize_path("/v1/invitations/sent") == "/v1/invitations/sent"
    assert normalize_path("/healthz") == "/healthz"
