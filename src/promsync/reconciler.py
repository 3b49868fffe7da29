"""
One reconcile pass of the managed Prometheus.

Order of work:
1. black-box exporter config map (its hash feeds the sidecar spec)
2. federation patterns across all indexes          -- fatal on failure
3. federation credentials                           -- fatal on failure
4. additional scrape config secret
5. route host, current storage
6. desired Prometheus spec (per-index remote-write failures only degrade)
7. compare-and-update of the Prometheus resource

The pass is sequential and keeps no state between invocations. Errors
raised out of ``reconcile`` are left to the caller's retry/backoff.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from promsync.applier import ApplyOutcome, ReconcileApplier
from promsync.assembler import SCRAPE_CONFIG_KEY, DesiredStateAssembler
from promsync.blackbox import build_blackbox_config
from promsync.config import PromSyncConfig
from promsync.credentials import CredentialResolver
from promsync.errors import PromSyncError, StorageQuantityError
from promsync.federation import FederationAggregator, render_federation_scrape_config
from promsync.fetcher import ResourceFetcher
from promsync.logger import ReconcileLogger
from promsync.models.index import RepositoryIndex
from promsync.models.observability import Observability
from promsync.models.prometheus import DesiredPrometheusSpec
from promsync.remote_write import RemoteWriteResolver
from promsync.routes import route_host
from promsync.selectors import SelectorBuilder

logger = logging.getLogger(__name__)


class ReconcileResult(NamedTuple):
    outcome: ApplyOutcome
    spec: DesiredPrometheusSpec
    federation_patterns: List[str]
    skipped_indexes: Dict[str, str]
    storage_error: Optional[StorageQuantityError]


class PrometheusReconciler:
    """
    Drive fetch, assembly and apply for one Observability resource.

    Example:
        reconciler = PrometheusReconciler(
            config=get_config(),
            fetcher=HttpResourceFetcher.from_config(config),
            custom_api=client.CustomObjectsApi(),
            core_api=client.CoreV1Api(),
        )
        result = reconciler.reconcile(cr, indexes)
    """

    def __init__(
        self,
        config: PromSyncConfig,
        fetcher: ResourceFetcher,
        custom_api: Any,
        core_api: Any,
        selector_builder: Optional[SelectorBuilder] = None,
        applier: Optional[ReconcileApplier] = None,
    ):
        self.config = config
        self.custom_api = custom_api
        self.federation = FederationAggregator(fetcher)
        self.credentials = CredentialResolver(core_api, config.monitoring_namespace)
        self.assembler = DesiredStateAssembler(
            config, RemoteWriteResolver(fetcher), selector_builder
        )
        self.applier = applier or ReconcileApplier(custom_api, core_api)

    def reconcile(self, cr: Observability, indexes: Sequence[RepositoryIndex]) -> ReconcileResult:
        events = ReconcileLogger(namespace=cr.namespace, resource_name=cr.name)
        namespace = cr.namespace

        blackbox = build_blackbox_config()
        outcome = self.applier.apply_config_map(
            namespace, self.config.blackbox_config_map, blackbox.config_map_data()
        )
        events.log_resource_applied("ConfigMap", self.config.blackbox_config_map, outcome.value)

        try:
            patterns = self.federation.aggregate(cr, indexes)
        except PromSyncError as e:
            events.log_reconcile_failed("federation", str(e))
            raise

        try:
            credentials = self.credentials.resolve()
        except PromSyncError as e:
            events.log_reconcile_failed("credentials", str(e))
            raise

        scrape_config = render_federation_scrape_config(
            credentials, patterns, self.config.federation_target
        )
        outcome = self.applier.apply_secret(
            namespace, self.config.scrape_config_secret, {SCRAPE_CONFIG_KEY: scrape_config}
        )
        events.log_resource_applied("Secret", self.config.scrape_config_secret, outcome.value)

        host = route_host(self.custom_api, namespace, self.config.prometheus_route_name)
        existing_storage = self.applier.read_prometheus_storage(namespace, self.config.prometheus_name)

        assembly = self.assembler.assemble(
            cr,
            indexes,
            host=host,
            blackbox_config_hash=blackbox.hash,
            existing_storage=existing_storage,
        )

        outcome = self.applier.apply_prometheus(namespace, self.config.prometheus_name, assembly.spec)
        events.log_resource_applied("Prometheus", self.config.prometheus_name, outcome.value)
        events.log_reconcile_completed(
            remote_write_count=len(assembly.spec.remote_write),
            skipped_count=len(assembly.skipped_indexes),
            federation_pattern_count=len(patterns),
        )

        return ReconcileResult(
            outcome=outcome,
            spec=assembly.spec,
            federation_patterns=patterns,
            skipped_indexes=assembly.skipped_indexes,
            storage_error=assembly.storage_error,
        )
