"""
Monitor, rule and probe selectors for the managed Prometheus.

With repository sync on, Prometheus picks up objects labelled with the id
of one of the indexes (``app in (<index ids>)``) from any namespace. With
sync off, the selectors come from the custom resource; unset ones fall
back to the same defaults computed over whatever indexes were passed.
"""

from __future__ import annotations

from typing import Any, Dict, NamedTuple, Optional, Protocol, Sequence

from promsync.models.index import RepositoryIndex
from promsync.models.observability import Observability

INDEX_LABEL = "app"


class Selectors(NamedTuple):
    pod_monitor: Dict[str, Any]
    pod_monitor_namespace: Dict[str, Any]
    service_monitor: Dict[str, Any]
    service_monitor_namespace: Dict[str, Any]
    rule: Dict[str, Any]
    rule_namespace: Dict[str, Any]
    probe: Dict[str, Any]
    probe_namespace: Dict[str, Any]


class SelectorBuilder(Protocol):
    def build(self, cr: Observability, indexes: Sequence[RepositoryIndex]) -> Selectors:
        ...


def index_label_selector(indexes: Sequence[RepositoryIndex]) -> Dict[str, Any]:
    ids = []
    for index in indexes:
        if index.id not in ids:
            ids.append(index.id)
    if not ids:
        return {}
    return {
        "matchExpressions": [
            {"key": INDEX_LABEL, "operator": "In", "values": ids},
        ]
    }


class DefaultSelectorBuilder:
    def build(self, cr: Observability, indexes: Sequence[RepositoryIndex]) -> Selectors:
        label = index_label_selector(indexes)
        any_namespace: Dict[str, Any] = {}

        sc = cr.spec.self_contained if cr.external_sync_disabled() else None

        def pick(override: Optional[Dict[str, Any]], default: Dict[str, Any]) -> Dict[str, Any]:
            return dict(override) if override is not None else dict(default)

        if sc is None:
            return Selectors(
                pod_monitor=dict(label),
                pod_monitor_namespace=dict(any_namespace),
                service_monitor=dict(label),
                service_monitor_namespace=dict(any_namespace),
                rule=dict(label),
                rule_namespace=dict(any_namespace),
                probe=dict(label),
                probe_namespace=dict(any_namespace),
            )

        return Selectors(
            pod_monitor=pick(sc.pod_monitor_label_selector, label),
            pod_monitor_namespace=pick(sc.pod_monitor_namespace_selector, any_namespace),
            service_monitor=pick(sc.service_monitor_label_selector, label),
            service_monitor_namespace=pick(sc.service_monitor_namespace_selector, any_namespace),
            rule=pick(sc.rule_label_selector, label),
            rule_namespace=pick(sc.rule_namespace_selector, any_namespace),
            probe=pick(sc.probe_selector, label),
            probe_namespace=pick(sc.probe_namespace_selector, any_namespace),
        )
