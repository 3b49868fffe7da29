"""
Tests for ReconcileLogger - structured reconcile events for Loki.
"""

import json
import logging
from io import StringIO

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from promsync.logger import ReconcileLogger, configure_logging


@pytest.fixture
def captured_logs():
    """Capture event output for testing."""
    output = StringIO()
    events_logger = logging.getLogger("promsync.events")
    original = list(events_logger.handlers)

    events_logger.handlers.clear()
    handler = logging.StreamHandler(output)
    handler.setFormatter(logging.Formatter("%(message)s"))
    events_logger.addHandler(handler)

    yield output

    events_logger.handlers[:] = original


@pytest.fixture
def events():
    return ReconcileLogger(namespace="observability", resource_name="observability-stack")


def parse_log_line(captured_logs) -> dict:
    """Parse the last JSON log line."""
    captured_logs.seek(0)
    lines = captured_logs.read().strip().split("\n")
    if lines and lines[-1]:
        return json.loads(lines[-1])
    return {}


class TestEvents:
    def test_remote_write_skipped(self, events, captured_logs):
        events.log_remote_write_skipped(index_id="legacy", reason="Unknown auth type")

        log = parse_log_line(captured_logs)
        assert log["event"] == "remote_write.skipped"
        assert log["level"] == "error"
        assert log["index_id"] == "legacy"
        assert log["reason"] == "Unknown auth type"
        assert log["namespace"] == "observability"
        assert log["resource"] == "observability-stack"
        assert log["service"] == "promsync"

    def test_storage_fallback(self, events, captured_logs):
        events.log_storage_fallback(value="lots", reason="Invalid number format")

        log = parse_log_line(captured_logs)
        assert log["event"] == "storage.fallback"
        assert log["level"] == "warn"

    def test_reconcile_completed(self, events, captured_logs):
        events.log_reconcile_completed(remote_write_count=2, skipped_count=1, federation_pattern_count=14)

        log = parse_log_line(captured_logs)
        assert log["event"] == "reconcile.completed"
        assert (log["remote_write_count"], log["skipped_count"], log["federation_pattern_count"]) == (2, 1, 14)

    def test_resource_omitted_when_unset(self, captured_logs):
        ReconcileLogger(namespace="observability").log_reconcile_failed("credentials", "not found")

        log = parse_log_line(captured_logs)
        assert "resource" not in log
        assert log["stage"] == "credentials"


class TestSpanEvents:
    def test_event_recorded_on_current_span(self, events, captured_logs):
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        tracer = provider.get_tracer(__name__)

        with tracer.start_as_current_span("reconcile"):
            events.log_resource_applied(kind="Prometheus", name="kafka-prometheus", outcome="updated")

        (span,) = exporter.get_finished_spans()
        (event,) = span.events
        assert event.name == "promsync.resource.applied"
        assert event.attributes["kind"] == "Prometheus"
        assert event.attributes["outcome"] == "updated"
        assert "timestamp" not in event.attributes

    def test_no_span_is_noop(self, events, captured_logs):
        events.log_resource_applied(kind="Secret", name="s", outcome="unchanged")
        assert parse_log_line(captured_logs)["outcome"] == "unchanged"


class TestConfigureLogging:
    def test_replaces_only_own_handler(self):
        root = logging.getLogger()
        original_handlers, original_level = list(root.handlers), root.level
        try:
            configure_logging("debug", "text")
            configure_logging("warning", "json")

            own = [h for h in root.handlers if getattr(h, "_promsync", False)]
            assert len(own) == 1
            assert root.level == logging.WARNING
            assert all(h in root.handlers for h in original_handlers)
        finally:
            root.handlers[:] = original_handlers
            root.setLevel(original_level)
