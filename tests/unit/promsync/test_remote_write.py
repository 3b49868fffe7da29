"""Tests for remote-write target resolution."""

from __future__ import annotations

import pytest

from promsync.errors import FetchError, ObservatoriumConfigMissingError, UnknownAuthTypeError
from promsync.models.index import AuthType, ObservatoriumConfig, RemoteWriteIndex
from promsync.remote_write import (
    RemoteWriteResolver,
    observatorium_token_secret_name,
    token_refresher_name,
)

from promsync_support import NAMESPACE, FakeFetcher, make_index


class TestNames:
    def test_token_secret_name(self, dex_index):
        assert observatorium_token_secret_name(dex_index) == "obs-token-prometheus-kafka"

    def test_token_refresher_name(self):
        assert token_refresher_name("obs-sso") == "token-refresher-metrics-obs-sso"
        assert token_refresher_name("obs-sso", role="logs") == "token-refresher-logs-obs-sso"


class TestAuthType:
    @pytest.mark.parametrize("raw, expected", [
        ("dex", AuthType.DEX),
        ("DEX", AuthType.DEX),
        (" redhat ", AuthType.REDHAT),
        ("kerberos", AuthType.UNKNOWN),
        ("", AuthType.UNKNOWN),
    ])
    def test_parse(self, raw, expected):
        assert AuthType.parse(raw) is expected

    def test_declared_value_kept_verbatim(self):
        observatorium = ObservatoriumConfig.model_validate({"id": "obs", "authType": "Kerberos"})

        assert observatorium.auth_type is AuthType.UNKNOWN
        assert observatorium.declared_auth_type == "Kerberos"
        assert "declared_auth_type" not in observatorium.model_dump()


class TestResolve:
    def test_dex_writes_to_gateway_with_token_file(self, cr, dex_index, remote_write_fetcher):
        resolution = RemoteWriteResolver(remote_write_fetcher).resolve(cr, dex_index)

        spec = resolution.spec
        assert spec.url == "https://observatorium.example.com/api/metrics/v1/managedkafka/api/v1/receive"
        assert spec.name == "kafka"
        assert spec.bearer_token_file == "/etc/prometheus/secrets/obs-token-prometheus-kafka/token"
        assert spec.tls_config.insecure_skip_verify is True
        assert resolution.token_secret == "obs-token-prometheus-kafka"

    def test_redhat_writes_to_token_refresher(self, cr, redhat_index, remote_write_fetcher):
        resolution = RemoteWriteResolver(remote_write_fetcher).resolve(cr, redhat_index)

        assert resolution.spec.url == (
            f"http://token-refresher-metrics-obs-sso.{NAMESPACE}.svc.cluster.local"
        )
        assert resolution.spec.bearer_token_file is None
        assert resolution.token_secret == ""

    def test_document_fields_copied_verbatim(self, cr, dex_index, remote_write_fetcher):
        spec = RemoteWriteResolver(remote_write_fetcher).resolve(cr, dex_index).spec.to_k8s()

        assert spec["remoteTimeout"] == "30s"
        assert spec["proxyUrl"] == "http://proxy.internal:3128"
        assert spec["queueConfig"] == {"capacity": 2500, "maxShards": 10}
        assert spec["writeRelabelConfigs"] == [
            {"sourceLabels": ["__name__"], "regex": "kafka_.*", "action": "keep"}
        ]
        assert spec["tlsConfig"] == {"insecureSkipVerify": True}

    def test_unset_document_fields_omitted(self, cr, dex_index):
        resolver = RemoteWriteResolver(FakeFetcher())
        spec = resolver.build_spec(cr, dex_index, RemoteWriteIndex()).spec.to_k8s()

        assert "remoteTimeout" not in spec
        assert "queueConfig" not in spec

    def test_unknown_auth_type(self, cr, unknown_auth_index, remote_write_fetcher):
        with pytest.raises(UnknownAuthTypeError) as exc_info:
            RemoteWriteResolver(remote_write_fetcher).resolve(cr, unknown_auth_index)
        assert exc_info.value.observatorium_id == "obs-legacy"
        assert exc_info.value.auth_type == "kerberos"

    def test_observatorium_not_declared(self, cr):
        index = make_index(
            "kafka",
            remote_write="rw.yaml",
            observatorium="obs-missing",
            observatoria=[{"id": "obs-other", "authType": "dex"}],
        )

        with pytest.raises(ObservatoriumConfigMissingError) as exc_info:
            RemoteWriteResolver(FakeFetcher()).build_spec(cr, index, RemoteWriteIndex())
        assert exc_info.value.observatorium_id == "obs-missing"

    def test_no_observatorium_reference(self, cr):
        index = make_index("kafka", remote_write="rw.yaml")

        with pytest.raises(ObservatoriumConfigMissingError):
            RemoteWriteResolver(FakeFetcher()).build_spec(cr, index, RemoteWriteIndex())

    def test_fetch_error_propagates(self, cr, dex_index):
        with pytest.raises(FetchError):
            RemoteWriteResolver(FakeFetcher()).resolve(cr, dex_index)

    def test_fetch_uses_index_tag_and_token(self, cr):
        index = make_index(
            "kafka",
            remote_write="prometheus/remote-write.yaml",
            observatorium="obs",
            observatoria=[{"id": "obs", "gateway": "https://gw", "tenant": "t", "authType": "dex"}],
            tag="v3",
            token="secret-token",
        )
        fetcher = FakeFetcher({index.url_for("prometheus/remote-write.yaml"): "remoteTimeout: 5s\n"})

        RemoteWriteResolver(fetcher).resolve(cr, index)

        assert fetcher.calls == [
            ("https://index.example.com/kafka/prometheus/remote-write.yaml", "v3", "secret-token")
        ]
