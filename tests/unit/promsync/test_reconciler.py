"""Tests for a full reconcile pass against mocked cluster APIs."""

from __future__ import annotations

import base64
import hashlib
from unittest.mock import MagicMock

import pytest
import yaml

from promsync.applier import ApplyOutcome
from promsync.errors import CredentialsNotFoundError, FetchError
from promsync.reconciler import PrometheusReconciler

from promsync_support import NAMESPACE, api_not_found, datasources_secret, make_index

FEDERATION_PATH = "prometheus/federation.yaml"

ADMITTED_ROUTE = {
    "spec": {"host": "kafka-prometheus.apps.example.com"},
    "status": {"ingress": [{"conditions": [{"type": "Admitted", "status": "True"}]}]},
}


def _custom_api(route=ADMITTED_ROUTE, prometheus=None):
    """CustomObjectsApi mock dispatching reads on the plural."""
    custom_api = MagicMock()

    def get(group, version, namespace, plural, name, **kwargs):
        if plural == "routes" and route is not None:
            return route
        if plural == "prometheuses" and prometheus is not None:
            return prometheus
        raise api_not_found()

    custom_api.get_namespaced_custom_object.side_effect = get
    return custom_api


def _core_api(datasource=None):
    core_api = MagicMock()
    secrets = {}
    if datasource is not None:
        secrets["grafana-datasources-v2"] = datasources_secret("grafana-datasources-v2", datasource)

    def read_secret(name, namespace, **kwargs):
        if name in secrets:
            return secrets[name]
        raise api_not_found()

    core_api.read_namespaced_secret.side_effect = read_secret
    core_api.read_namespaced_config_map.side_effect = api_not_found()
    return core_api


@pytest.fixture
def federated_dex_index():
    return make_index(
        "kafka",
        federation=FEDERATION_PATH,
        remote_write="prometheus/remote-write.yaml",
        observatorium="obs-dex",
        observatoria=[
            {"id": "obs-dex", "gateway": "https://gw.example.com", "tenant": "mk", "authType": "dex"}
        ],
    )


@pytest.fixture
def fetcher(remote_write_fetcher, federated_dex_index):
    remote_write_fetcher.documents[federated_dex_index.url_for(FEDERATION_PATH)] = (
        "match[]:\n  - kafka_server_up\n"
    )
    return remote_write_fetcher


def _created(core_or_custom, method):
    return getattr(core_or_custom, method).call_args.kwargs["body"]


class TestReconcile:
    def test_first_pass_creates_everything(self, config, cr, fetcher, federated_dex_index):
        custom_api = _custom_api()
        core_api = _core_api({"basicAuthUser": "internal", "basicAuthPassword": "pw"})
        reconciler = PrometheusReconciler(config, fetcher, custom_api, core_api)

        result = reconciler.reconcile(cr, [federated_dex_index])

        assert result.outcome is ApplyOutcome.CREATED
        assert result.federation_patterns == ["'kafka_server_up'"]
        assert result.skipped_indexes == {}

        config_map = _created(core_api, "create_namespaced_config_map")
        assert config_map["metadata"]["name"] == "black-box-config"
        assert "black-box-config.yaml" in config_map["data"]

        secret = _created(core_api, "create_namespaced_secret")
        assert secret["metadata"]["name"] == "additional-scrape-configs"
        scrape = yaml.safe_load(base64.b64decode(secret["data"]["additional-scrape-config.yaml"]))
        assert scrape[0]["params"]["match[]"] == ["kafka_server_up"]
        assert scrape[0]["basic_auth"] == {"username": "internal", "password": "pw"}

        prometheus = _created(custom_api, "create_namespaced_custom_object")
        spec = prometheus["spec"]
        assert spec["externalUrl"] == "https://kafka-prometheus.apps.example.com"
        assert [rw["name"] for rw in spec["remoteWrite"]] == ["kafka"]
        assert "obs-token-prometheus-kafka" in spec["secrets"]

    def test_sidecar_hash_matches_config_map(self, config, cr, fetcher, federated_dex_index):
        custom_api = _custom_api()
        core_api = _core_api({"basicAuthUser": "u", "basicAuthPassword": "p"})

        result = PrometheusReconciler(config, fetcher, custom_api, core_api).reconcile(
            cr, [federated_dex_index]
        )

        content = _created(core_api, "create_namespaced_config_map")["data"]["black-box-config.yaml"]
        blackbox = next(c for c in result.spec.containers if c.name == "blackbox-exporter")
        assert blackbox.env[0].value == hashlib.sha256(content.encode("utf-8")).hexdigest()

    def test_unadmitted_route_leaves_host_empty(self, config, cr, fetcher, federated_dex_index):
        custom_api = _custom_api(route={"spec": {"host": "pending.example.com"}, "status": {}})
        core_api = _core_api({"basicAuthUser": "u", "basicAuthPassword": "p"})

        result = PrometheusReconciler(config, fetcher, custom_api, core_api).reconcile(
            cr, [federated_dex_index]
        )

        assert result.spec.external_url == "https://"

    def test_existing_storage_kept(self, config, cr, fetcher, federated_dex_index):
        storage = {"volumeClaimTemplate": {"metadata": {"name": "data"}}}
        live = {
            "apiVersion": "monitoring.coreos.com/v1",
            "kind": "Prometheus",
            "metadata": {"name": config.prometheus_name, "namespace": NAMESPACE},
            "spec": {"storage": storage},
        }
        custom_api = _custom_api(prometheus=live)
        core_api = _core_api({"basicAuthUser": "u", "basicAuthPassword": "p"})

        result = PrometheusReconciler(config, fetcher, custom_api, core_api).reconcile(
            cr, [federated_dex_index]
        )

        assert result.outcome is ApplyOutcome.UPDATED
        assert result.spec.storage == storage

    def test_missing_credentials_abort_before_prometheus(self, config, cr, fetcher, federated_dex_index):
        custom_api = _custom_api()
        core_api = _core_api(datasource=None)

        with pytest.raises(CredentialsNotFoundError):
            PrometheusReconciler(config, fetcher, custom_api, core_api).reconcile(
                cr, [federated_dex_index]
            )

        core_api.create_namespaced_secret.assert_not_called()
        custom_api.create_namespaced_custom_object.assert_not_called()

    def test_federation_failure_aborts(self, config, cr, federated_dex_index, remote_write_fetcher):
        # No federation document served
        custom_api = _custom_api()
        core_api = _core_api({"basicAuthUser": "u", "basicAuthPassword": "p"})

        with pytest.raises(FetchError):
            PrometheusReconciler(config, remote_write_fetcher, custom_api, core_api).reconcile(
                cr, [federated_dex_index]
            )

        core_api.read_namespaced_secret.assert_not_called()
        custom_api.create_namespaced_custom_object.assert_not_called()

    def test_failing_remote_write_index_does_not_abort(
        self, config, cr, fetcher, federated_dex_index, unknown_auth_index
    ):
        custom_api = _custom_api()
        core_api = _core_api({"basicAuthUser": "u", "basicAuthPassword": "p"})

        result = PrometheusReconciler(config, fetcher, custom_api, core_api).reconcile(
            cr, [federated_dex_index, unknown_auth_index]
        )

        assert list(result.skipped_indexes) == ["legacy"]
        assert [rw.name for rw in result.spec.remote_write] == ["kafka"]
