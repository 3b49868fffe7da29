"""
Structured logging for reconcile events.

Outputs JSON-formatted logs for Loki ingestion. Only status-changing
events are logged through this module; debug chatter goes through the
regular module loggers.

Logged events:
- remote_write.skipped
- storage.fallback
- resource.applied
- reconcile.completed
- reconcile.failed

Usage:
    from promsync.logger import ReconcileLogger

    events = ReconcileLogger(namespace="managed-application-services-observability")
    events.log_remote_write_skipped(index_id="rhoc", reason="unknown auth type")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from promsync.otel import add_span_event

# Configure structured logger for Loki
_events_logger = logging.getLogger("promsync.events")
_events_logger.setLevel(logging.INFO)

# Default handler outputs JSON to stdout (for container/Loki pickup)
if not _events_logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    _events_logger.addHandler(handler)


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Install a single stderr handler on the root logger."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_promsync", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    handler._promsync = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())


class ReconcileLogger:
    """
    Structured logger for reconcile events.

    Each entry carries the namespace and custom resource name so one
    Observability instance can be filtered in Loki. Every event is also
    recorded on the current OTel span.
    """

    def __init__(
        self,
        namespace: str,
        resource_name: Optional[str] = None,
        service_name: str = "promsync",
    ):
        self.namespace = namespace
        self.resource_name = resource_name
        self.service_name = service_name
        self._logger = _events_logger

    def _emit(self, event: str, level: str = "info", **extra_fields: Any) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "event": event,
            "service": self.service_name,
            "namespace": self.namespace,
        }
        if self.resource_name:
            entry["resource"] = self.resource_name
        entry.update(extra_fields)

        log_line = json.dumps(entry, default=str)

        if level == "error":
            self._logger.error(log_line)
        elif level == "warn":
            self._logger.warning(log_line)
        else:
            self._logger.info(log_line)

        add_span_event(
            f"promsync.{event}",
            {
                key: value
                for key, value in entry.items()
                if isinstance(value, (str, int, float, bool)) and key != "timestamp"
            },
        )

    def log_remote_write_skipped(self, index_id: str, reason: str) -> None:
        self._emit("remote_write.skipped", level="error", index_id=index_id, reason=reason)

    def log_storage_fallback(self, value: str, reason: str) -> None:
        self._emit("storage.fallback", level="warn", value=value, reason=reason)

    def log_resource_applied(self, kind: str, name: str, outcome: str) -> None:
        self._emit("resource.applied", kind=kind, name=name, outcome=outcome)

    def log_reconcile_completed(
        self,
        remote_write_count: int,
        skipped_count: int,
        federation_pattern_count: int,
    ) -> None:
        self._emit(
            "reconcile.completed",
            remote_write_count=remote_write_count,
            skipped_count=skipped_count,
            federation_pattern_count=federation_pattern_count,
        )

    def log_reconcile_failed(self, stage: str, error: str) -> None:
        self._emit("reconcile.failed", level="error", stage=stage, error=error)
