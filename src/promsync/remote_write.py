"""
Remote-write target resolution.

Each index with a remote-write document pushes to one Observatorium. How
Prometheus authenticates depends on the Observatorium auth type:

- ``dex``: write straight to the gateway with a bearer token file mounted
  from a per-index token secret.
- ``redhat``: write to the in-cluster token-refresher sidecar service,
  which acquires and attaches tokens itself.

TLS verification is disabled toward both targets.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, NamedTuple

from promsync.errors import ObservatoriumConfigMissingError, UnknownAuthTypeError
from promsync.fetcher import ResourceFetcher
from promsync.models.index import (
    AuthType,
    ObservatoriumConfig,
    RemoteWriteIndex,
    RepositoryIndex,
)
from promsync.models.observability import Observability
from promsync.models.prometheus import RemoteWriteSpec, TLSConfig
from promsync.parser import parse_remote_write_document

logger = logging.getLogger(__name__)

METRICS_TOKEN_REFRESHER = "metrics"
PROMETHEUS_SECRETS_DIR = "/etc/prometheus/secrets"


def observatorium_token_secret_name(index: RepositoryIndex) -> str:
    """Secret holding the Observatorium token Prometheus sends for ``index``."""
    return f"obs-token-prometheus-{index.id}"


def token_refresher_name(observatorium_id: str, role: str = METRICS_TOKEN_REFRESHER) -> str:
    return f"token-refresher-{role}-{observatorium_id}"


class RemoteWriteResolution(NamedTuple):
    spec: RemoteWriteSpec
    # Empty when no secret has to be mounted into Prometheus
    token_secret: str


def _base_spec(url: str, index: RepositoryIndex, remote_write: RemoteWriteIndex, **extra) -> RemoteWriteSpec:
    return RemoteWriteSpec(
        url=url,
        name=index.id,
        remote_timeout=remote_write.remote_timeout,
        write_relabel_configs=remote_write.write_relabel_configs,
        # TODO: the gateway CA is not mounted, so verification stays off until it is
        tls_config=TLSConfig(insecure_skip_verify=True),
        proxy_url=remote_write.proxy_url,
        queue_config=remote_write.queue_config,
        **extra,
    )


def _spec_for_dex(
    cr: Observability,
    index: RepositoryIndex,
    observatorium: ObservatoriumConfig,
    remote_write: RemoteWriteIndex,
) -> RemoteWriteResolution:
    token_secret = observatorium_token_secret_name(index)
    url = f"{observatorium.gateway}/api/metrics/v1/{observatorium.tenant}/api/v1/receive"
    spec = _base_spec(
        url,
        index,
        remote_write,
        bearer_token_file=f"{PROMETHEUS_SECRETS_DIR}/{token_secret}/token",
    )
    return RemoteWriteResolution(spec, token_secret)


def _spec_for_redhat(
    cr: Observability,
    index: RepositoryIndex,
    observatorium: ObservatoriumConfig,
    remote_write: RemoteWriteIndex,
) -> RemoteWriteResolution:
    host = f"{token_refresher_name(observatorium.id)}.{cr.namespace}.svc.cluster.local"
    return RemoteWriteResolution(_base_spec(f"http://{host}", index, remote_write), "")


_Strategy = Callable[
    [Observability, RepositoryIndex, ObservatoriumConfig, RemoteWriteIndex],
    RemoteWriteResolution,
]

STRATEGIES: Dict[AuthType, _Strategy] = {
    AuthType.DEX: _spec_for_dex,
    AuthType.REDHAT: _spec_for_redhat,
}


class RemoteWriteResolver:
    """
    Build the remote-write target of one index.

    Every error raised here is scoped to the index being resolved; the
    assembler drops that index and carries on with the others.
    """

    def __init__(self, fetcher: ResourceFetcher):
        self.fetcher = fetcher

    def fetch_index(self, index: RepositoryIndex) -> RemoteWriteIndex:
        blob = self.fetcher.fetch(
            index.url_for(index.remote_write_path), index.tag, index.access_token
        )
        return parse_remote_write_document(blob)

    def build_spec(
        self,
        cr: Observability,
        index: RepositoryIndex,
        remote_write: RemoteWriteIndex,
    ) -> RemoteWriteResolution:
        prometheus = index.prometheus
        if prometheus is None or not prometheus.observatorium:
            raise ObservatoriumConfigMissingError(index.id)

        observatorium = index.observatorium_config(prometheus.observatorium)
        if observatorium is None:
            raise ObservatoriumConfigMissingError(index.id, prometheus.observatorium)

        strategy = STRATEGIES.get(observatorium.auth_type)
        if strategy is None:
            raise UnknownAuthTypeError(
                observatorium.declared_auth_type or observatorium.auth_type.value, observatorium.id
            )

        return strategy(cr, index, observatorium, remote_write)

    def resolve(self, cr: Observability, index: RepositoryIndex) -> RemoteWriteResolution:
        remote_write = self.fetch_index(index)
        resolution = self.build_spec(cr, index, remote_write)
        logger.debug(f"Index {index.id} writes to {resolution.spec.url}")
        return resolution
