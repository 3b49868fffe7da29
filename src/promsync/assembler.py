"""
Desired-state assembly for the managed Prometheus.

``DesiredStateAssembler.assemble`` is a pure computation over its inputs
(custom resource, indexes, route host, black-box config hash, current
storage) plus the index document fetches. It never writes to the cluster;
the applier diffs its result against the live object.

Degradation rules:
- a failing index loses its remote-write entry, the rest still apply;
- an invalid retention silently becomes the configured default;
- an invalid custom storage size keeps the current storage and reports
  the error in ``AssemblyResult.storage_error``.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from kubernetes.utils import parse_quantity

from promsync.config import PromSyncConfig
from promsync.errors import PromSyncError, StorageQuantityError
from promsync.logger import ReconcileLogger
from promsync.models.index import RepositoryIndex
from promsync.models.observability import Observability
from promsync.models.prometheus import (
    AlertingSpec,
    AlertmanagerEndpoint,
    ConfigMapVolumeSource,
    Container,
    ContainerPort,
    DesiredPrometheusSpec,
    EnvVar,
    RemoteWriteSpec,
    SecretKeySelector,
    TLSConfig,
    Volume,
    VolumeMount,
)
from promsync.remote_write import RemoteWriteResolver
from promsync.selectors import DefaultSelectorBuilder, SelectorBuilder

logger = logging.getLogger(__name__)

RETENTION_PATTERN = re.compile(r"^[0-9]+((ms)|y|w|d|h|m|s)$")

PROMETHEUS_TLS_SECRET = "prometheus-k8s-tls"
SCRAPE_CONFIG_KEY = "additional-scrape-config.yaml"
MANAGED_STORAGE_CLAIM = "managed-services"

SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"


class StorageResolution(NamedTuple):
    """Storage spec to apply, and the reason it is a fallback if it is one."""
    spec: Optional[Dict[str, Any]]
    error: Optional[StorageQuantityError] = None


class RemoteWriteTargets(NamedTuple):
    specs: List[RemoteWriteSpec]
    token_secrets: List[str]
    skipped: Dict[str, str]


class AssemblyResult(NamedTuple):
    spec: DesiredPrometheusSpec
    # index id -> reason, for indexes left out of the remote-write list
    skipped_indexes: Dict[str, str]
    storage_error: Optional[StorageQuantityError]


def resolve_retention(retention: str, default: str) -> str:
    if retention and RETENTION_PATTERN.fullmatch(retention):
        return retention
    return default


def custom_storage_size(indexes: Sequence[RepositoryIndex]) -> str:
    """First storage size requested by an index, or empty."""
    for index in indexes:
        prometheus = index.prometheus
        if prometheus and prometheus.override_prometheus_pvc_size:
            return prometheus.override_prometheus_pvc_size
    return ""


def managed_storage_spec(size: str) -> Dict[str, Any]:
    return {
        "volumeClaimTemplate": {
            "metadata": {"name": MANAGED_STORAGE_CLAIM},
            "spec": {
                "resources": {
                    "requests": {"storage": size},
                },
            },
        },
    }


def resolve_storage(
    cr: Observability,
    indexes: Sequence[RepositoryIndex],
    existing: Optional[Dict[str, Any]] = None,
) -> StorageResolution:
    """
    Pick the storage spec for the Prometheus resource.

    Order of precedence:
    1. storage spec set explicitly on the custom resource
    2. ``existing`` when repository sync is disabled
    3. a volume claim sized by the first index that overrides the size
    4. ``existing``
    """
    override = cr.storage_override()
    if override is not None:
        return StorageResolution(copy.deepcopy(override))

    if cr.external_sync_disabled():
        return StorageResolution(existing)

    size = custom_storage_size(indexes)
    if not size:
        return StorageResolution(existing)

    error = _storage_quantity_error(size)
    if error is not None:
        return StorageResolution(existing, error)

    return StorageResolution(managed_storage_spec(size))


def _storage_quantity_error(size: str) -> Optional[StorageQuantityError]:
    # parse_quantity tolerates padding and NaN/Infinity; the API server does not
    if size != size.strip():
        return StorageQuantityError(size, "surrounding whitespace")
    try:
        quantity = parse_quantity(size)
    except ValueError as e:
        return StorageQuantityError(size, str(e))
    if not quantity.is_finite():
        return StorageQuantityError(size, "not a finite quantity")
    return None


class DesiredStateAssembler:
    """
    Compose the full desired Prometheus spec for one custom resource.

    Example:
        assembler = DesiredStateAssembler(config, RemoteWriteResolver(fetcher))
        result = assembler.assemble(cr, indexes, host="prometheus.apps.example.com",
                                    blackbox_config_hash=blackbox.hash)
        body = result.spec.to_k8s()
    """

    def __init__(
        self,
        config: PromSyncConfig,
        remote_write_resolver: RemoteWriteResolver,
        selector_builder: Optional[SelectorBuilder] = None,
    ):
        self.config = config
        self.remote_write_resolver = remote_write_resolver
        self.selector_builder = selector_builder or DefaultSelectorBuilder()

    # Remote write

    def remote_write_targets(
        self,
        cr: Observability,
        indexes: Sequence[RepositoryIndex],
        events: Optional[ReconcileLogger] = None,
    ) -> RemoteWriteTargets:
        targets = RemoteWriteTargets([], [], {})

        # No remote write at all when Observatorium is disabled
        if cr.observatorium_disabled():
            return targets

        for index in indexes:
            if not index.remote_write_path:
                logger.debug(f"Index {index.id} declares no remote write document")
                continue

            try:
                resolution = self.remote_write_resolver.resolve(cr, index)
            except PromSyncError as e:
                logger.error(f"Skipping remote write for index {index.id}: {e}")
                targets.skipped[index.id] = str(e)
                if events is not None:
                    events.log_remote_write_skipped(index.id, str(e))
                continue

            targets.specs.append(resolution.spec)
            if resolution.token_secret:
                targets.token_secrets.append(resolution.token_secret)

        return targets

    # Sidecars

    def oauth_proxy_sidecar(self) -> Container:
        proxy_secret = self.config.prometheus_proxy_secret
        return Container(
            name="oauth-proxy",
            image=self.config.oauth_proxy_image,
            args=[
                "-provider=openshift",
                "-https-address=:9091",
                "-http-address=",
                "-email-domain=*",
                "-upstream=http://localhost:9090",
                f"-openshift-service-account={self.config.prometheus_service_account}",
                '-openshift-sar={"resource": "namespaces", "verb": "get"}',
                '-openshift-delegate-urls={"/": {"resource": "namespaces", "verb": "get"}}',
                "-tls-cert=/etc/tls/private/tls.crt",
                "-tls-key=/etc/tls/private/tls.key",
                f"-client-secret-file={SERVICE_ACCOUNT_DIR}/token",
                "-cookie-secret-file=/etc/proxy/secrets/session_secret",
                "-openshift-ca=/etc/pki/tls/cert.pem",
                f"-openshift-ca={SERVICE_ACCOUNT_DIR}/ca.crt",
                "-skip-auth-regex=^/metrics",
            ],
            env=[
                EnvVar(name="HTTP_PROXY"),
                EnvVar(name="HTTPS_PROXY"),
                EnvVar(name="NO_PROXY"),
            ],
            ports=[ContainerPort(name="proxy", container_port=9091)],
            volume_mounts=[
                VolumeMount(name=f"secret-{PROMETHEUS_TLS_SECRET}", mount_path="/etc/tls/private"),
                VolumeMount(name=f"secret-{proxy_secret}", mount_path="/etc/proxy/secrets"),
            ],
        )

    def blackbox_exporter_sidecar(self, config_hash: str) -> Container:
        return Container(
            name="blackbox-exporter",
            image=self.config.blackbox_exporter_image,
            args=["--config.file=/opt/config/black-box-config.yaml"],
            env=[EnvVar(name="CONFIG_HASH", value=config_hash)],
            ports=[ContainerPort(name="http", container_port=9115)],
            volume_mounts=[
                VolumeMount(name=self.config.blackbox_config_map, mount_path="/opt/config/"),
                VolumeMount(name=f"secret-{PROMETHEUS_TLS_SECRET}", mount_path="/etc/tls/private"),
            ],
        )

    def sidecars(self, cr: Observability, config_hash: str) -> List[Container]:
        containers = [self.oauth_proxy_sidecar()]
        if not cr.blackbox_exporter_disabled():
            containers.append(self.blackbox_exporter_sidecar(config_hash))
        return containers

    # Alerting

    def alerting(self, cr: Observability) -> AlertingSpec:
        return AlertingSpec(
            alertmanagers=[
                AlertmanagerEndpoint(
                    namespace=cr.namespace,
                    name=self.config.alertmanager_name,
                    port="web",
                    scheme="https",
                    tls_config=TLSConfig(
                        ca_file=f"{SERVICE_ACCOUNT_DIR}/service-ca.crt",
                        server_name=f"{self.config.alertmanager_service_name}.{cr.namespace}.svc",
                    ),
                    bearer_token_file=f"{SERVICE_ACCOUNT_DIR}/token",
                )
            ]
        )

    # Full spec

    def prometheus_version(self, cr: Observability) -> str:
        return cr.spec.prometheus_version or self.config.default_prometheus_version

    def resources(self, cr: Observability) -> Dict[str, Any]:
        if cr.spec.resources is not None and cr.spec.resources.prometheus is not None:
            return copy.deepcopy(cr.spec.resources.prometheus)
        return copy.deepcopy(self.config.default_prometheus_resources)

    def assemble(
        self,
        cr: Observability,
        indexes: Sequence[RepositoryIndex],
        host: str = "",
        blackbox_config_hash: str = "",
        existing_storage: Optional[Dict[str, Any]] = None,
    ) -> AssemblyResult:
        events = ReconcileLogger(namespace=cr.namespace, resource_name=cr.name)

        targets = self.remote_write_targets(cr, indexes, events)

        secrets: List[str] = []
        for name in [self.config.prometheus_proxy_secret, PROMETHEUS_TLS_SECRET, *targets.token_secrets]:
            if name not in secrets:
                secrets.append(name)

        storage = resolve_storage(cr, indexes, existing_storage)
        if storage.error is not None:
            logger.warning(f"Keeping current Prometheus storage: {storage.error}")
            events.log_storage_fallback(storage.error.value, storage.error.reason)

        selectors = self.selector_builder.build(cr, indexes)
        version = self.prometheus_version(cr)

        spec = DesiredPrometheusSpec(
            image=f"{self.config.prometheus_base_image}:{version}",
            version=version,
            priority_class_name=self.config.priority_class_name,
            service_account_name=self.config.prometheus_service_account,
            retention=resolve_retention(cr.spec.retention, self.config.default_retention),
            external_url=f"https://{host}",
            additional_scrape_configs=SecretKeySelector(
                name=self.config.scrape_config_secret,
                key=SCRAPE_CONFIG_KEY,
            ),
            external_labels={"cluster_id": cr.status.cluster_id},
            volumes=[
                Volume(
                    name=self.config.blackbox_config_map,
                    config_map=ConfigMapVolumeSource(name=self.config.blackbox_config_map),
                )
            ],
            pod_monitor_selector=selectors.pod_monitor,
            pod_monitor_namespace_selector=selectors.pod_monitor_namespace,
            service_monitor_selector=selectors.service_monitor,
            service_monitor_namespace_selector=selectors.service_monitor_namespace,
            rule_selector=selectors.rule,
            rule_namespace_selector=selectors.rule_namespace,
            probe_selector=selectors.probe,
            probe_namespace_selector=selectors.probe_namespace,
            remote_write=targets.specs,
            alerting=self.alerting(cr),
            secrets=secrets,
            containers=self.sidecars(cr, blackbox_config_hash),
            resources=self.resources(cr),
            storage=storage.spec,
            tolerations=copy.deepcopy(cr.spec.tolerations),
            affinity=copy.deepcopy(cr.spec.affinity),
        )

        return AssemblyResult(spec, targets.skipped, storage.error)
