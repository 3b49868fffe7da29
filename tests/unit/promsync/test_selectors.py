"""Tests for monitor and rule selector computation."""

from __future__ import annotations

from promsync.selectors import DefaultSelectorBuilder, index_label_selector

from promsync_support import make_cr, make_index


def test_label_selector_lists_unique_ids_in_order():
    indexes = [make_index("kafka"), make_index("connectors"), make_index("kafka")]

    assert index_label_selector(indexes) == {
        "matchExpressions": [{"key": "app", "operator": "In", "values": ["kafka", "connectors"]}]
    }


def test_no_indexes_selects_everything():
    assert index_label_selector([]) == {}


class TestDefaultSelectorBuilder:
    def test_sync_enabled_ignores_overrides(self):
        cr = make_cr({"selfContained": {"ruleLabelSelector": {"matchLabels": {"x": "y"}}}})

        selectors = DefaultSelectorBuilder().build(cr, [make_index("kafka")])

        assert selectors.rule == index_label_selector([make_index("kafka")])
        assert selectors.rule_namespace == {}

    def test_sync_disabled_uses_overrides_and_defaults(self):
        cr = make_cr(
            {
                "selfContained": {
                    "disableRepoSync": True,
                    "podMonitorLabelSelector": {"matchLabels": {"team": "mas"}},
                    "probeNamespaceSelector": {"matchLabels": {"probes": "on"}},
                }
            }
        )

        selectors = DefaultSelectorBuilder().build(cr, [make_index("kafka")])

        assert selectors.pod_monitor == {"matchLabels": {"team": "mas"}}
        assert selectors.probe_namespace == {"matchLabels": {"probes": "on"}}
        assert selectors.service_monitor == index_label_selector([make_index("kafka")])
        assert selectors.service_monitor_namespace == {}

    def test_results_are_independent_copies(self):
        selectors = DefaultSelectorBuilder().build(make_cr(), [make_index("kafka")])

        selectors.rule["extra"] = True

        assert "extra" not in selectors.probe
