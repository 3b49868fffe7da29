"""
OTel span event emission helper.

Every structured reconcile event is mirrored onto the current span so a
trace of the surrounding control loop shows which indexes were dropped
and which resources were written.

Usage::

    from promsync.otel import add_span_event

    add_span_event("promsync.resource.applied", {"kind": "Secret"})
"""

from __future__ import annotations

from opentelemetry import trace as otel_trace


def add_span_event(
    name: str, attributes: dict[str, str | int | float | bool]
) -> None:
    """Add an event to the current OTel span.

    No-op when the current span is not recording.

    Args:
        name: Event name (e.g. ``"promsync.remote_write.skipped"``).
        attributes: Flat dict of span event attributes.
    """
    span = otel_trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name=name, attributes=attributes)
