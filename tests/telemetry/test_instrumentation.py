"""Telemetry instrumentation unit tests."""

from __future__ import annotations

import logging
import random
from unittest.mock import MagicMock

import pytest
from broadside.ai.targeting import HeatmapTargeting
from broadside.engine.board import BattleBoard
from broadside.engine.ship import CellState, Orientation
from broadside.telemetry import config as telemetry_config_module
from broadside.telemetry import logger as logger_module
from broadside.telemetry import metrics as metrics_module
from broadside.telemetry import tracer as tracer_module
from broadside.telemetry.config import TelemetryConfig


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.attributes: dict[str, object] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, key, value):
        self.attributes[key] = value


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []
        self.spans: list[DummySpan] = []

    def start_as_current_span(self, name: str):
        span = DummySpan(self.span_names, name)
        self.spans.append(span)
        return span


@pytest.fixture(autouse=True)
def reset_singletons():
    yield
    tracer_module._TRACERS = {}
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METERS = {}
    metrics_module._METER_PROVIDER = None
    metrics_module._COUNTERS = {}
    metrics_module._HISTOGRAMS = {}
    logger_module._LOGGER = None


def test_lazy_init_tracer(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer_module._TRACERS = {}
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module, "BatchSpanProcessor", MagicMock())
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", lambda provider: None)
    tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert tracer_module.get_tracer() is provider_instance.get_tracer.return_value
    assert tracer_module._TRACER_PROVIDER is provider_instance
    tracer_module.OTLPSpanExporter.assert_called_once_with(endpoint="http://example", insecure=True)


def test_lazy_init_meter(monkeypatch: pytest.MonkeyPatch) -> None:
    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(metrics_module, "PeriodicExportingMetricReader", MagicMock())
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", lambda provider: None)
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module.get_meter() is meter_provider.get_meter.return_value


def test_tracers_and_meters_are_cached_per_scope(monkeypatch: pytest.MonkeyPatch) -> None:
    requested: list[str] = []

    def fake_factory(name: str):
        requested.append(name)
        return MagicMock(name=name)

    monkeypatch.setattr(tracer_module.trace, "get_tracer", fake_factory)
    monkeypatch.setattr(metrics_module.otel_metrics, "get_meter", fake_factory)
    tracer_module._TRACERS = {}
    metrics_module._METERS = {}

    board_tracer = tracer_module.get_tracer("broadside.engine.board")
    heatmap_tracer = tracer_module.get_tracer("broadside.ai.heatmap")
    assert board_tracer is not heatmap_tracer
    assert tracer_module.get_tracer("broadside.engine.board") is board_tracer

    board_meter = metrics_module.get_meter("broadside.engine.board")
    assert metrics_module.get_meter("broadside.ai.targeting") is not board_meter
    assert metrics_module.get_meter("broadside.engine.board") is board_meter

    assert requested == [
        "broadside.engine.board",
        "broadside.ai.heatmap",
        "broadside.engine.board",
        "broadside.ai.targeting",
    ]


def test_logging_init_noop() -> None:
    logger_module._LOGGER = None
    logger = logger_module.get_logger("test")
    assert logger_module.init_logging(TelemetryConfig()) is logger


def _capture_inits(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))
    return calls


def test_init_telemetry_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _capture_inits(monkeypatch)
    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == []


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _capture_inits(monkeypatch)
    config = TelemetryConfig(enable_tracing=True, enable_logging=True)
    assert telemetry_config_module.init_telemetry(config) is config
    assert calls == ["tr", "lo"]


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(cls, **overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(TelemetryConfig, "from_env", classmethod(fake_from_env))

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "BROADSIDE_ENABLE_TRACING",
        "BROADSIDE_ENABLE_METRICS",
        "BROADSIDE_ENABLE_LOGGING",
        "OTEL_TRACES_ENABLED",
        "OTEL_METRICS_ENABLED",
        "OTEL_LOGS_ENABLED",
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
        "OTEL_SERVICE_NAMESPACE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BROADSIDE_ENABLE_METRICS", "yes")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    monkeypatch.setenv("OTEL_SERVICE_NAME", "broadside-sim")
    monkeypatch.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment.environment=test, bogus")

    config = TelemetryConfig.from_env(otlp_logs_endpoint=None)
    assert config.enable_metrics
    assert config.enable_tracing
    assert not config.enable_logging
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_logs_endpoint is None
    assert config.resource == {
        "service.name": "broadside-sim",
        "service.namespace": "game",
        "deployment.environment": "test",
    }


def test_record_helpers_create_instruments_once(monkeypatch: pytest.MonkeyPatch) -> None:
    meter = MagicMock()
    monkeypatch.setattr(metrics_module, "get_meter", lambda *_: meter)
    metrics_module._COUNTERS = {}
    metrics_module._HISTOGRAMS = {}

    metrics_module.record_game_metric("broadside_test_total", 1, {"strategy": "heatmap"})
    metrics_module.record_game_metric("broadside_test_total", 2)
    metrics_module.record_duration("broadside_test_ms", 1.5)

    meter.create_counter.assert_called_once_with("broadside_test_total")
    meter.create_histogram.assert_called_once_with("broadside_test_ms", unit="ms")
    counter = meter.create_counter.return_value
    assert counter.add.call_count == 2
    counter.add.assert_any_call(1, attributes={"strategy": "heatmap"})
    meter.create_histogram.return_value.record.assert_called_once_with(1.5, attributes={})


def test_board_and_targeting_emit_spans(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    monkeypatch.setattr("broadside.engine.board.tracer", tracer)
    monkeypatch.setattr("broadside.ai.heatmap.tracer", tracer)
    monkeypatch.setattr("broadside.ai.targeting.tracer", tracer)

    board = BattleBoard()
    board.place_ship(0, 0, CellState.DESTROYER, Orientation.HORIZONTAL)
    board.attack(0, 0)
    assert tracer.span_names == ["board.attack"]
    assert tracer.spans[0].attributes["attack.outcome"] == "hit"

    tracer.span_names.clear()
    HeatmapTargeting(random.Random(0)).choose(BattleBoard())
    assert tracer.span_names == ["targeting.choose", "heatmap.calculate"]
    assert tracer.spans[-2].attributes["targeting.mode"] in {"heat", "neighbourhood", "random_tiebreak"}


def test_sinking_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="broadside.engine.board")
    board = BattleBoard(owner="tester")
    board.place_ship(3, 3, CellState.DESTROYER, Orientation.VERTICAL)
    board.attack(3, 3)
    board.attack(3, 4)

    sunk = [record for record in caplog.records if record.getMessage() == "ship_sunk"]
    assert len(sunk) == 1
    assert sunk[0].kind == "DESTROYER"
    assert sunk[0].owner == "tester"
