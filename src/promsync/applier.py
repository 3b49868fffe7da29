"""
Compare-and-update of Kubernetes objects owned in part by promsync.

Every apply runs the same pipeline:

1. read the live object (a 404 means it will be created);
2. ``plan_update`` copies it and runs a mutator that overwrites only the
   fields promsync owns;
3. the write happens only when the planned body differs from what was read.

Planning is pure and testable without a cluster. Running the same mutator
against an object it already produced plans no change, so an unchanged
desired state never issues a write.
"""

from __future__ import annotations

import base64
import copy
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, NamedTuple, Optional

from kubernetes.client import ApiClient
from kubernetes.client.rest import ApiException

from promsync.models.prometheus import OWNED_SPEC_FIELDS, DesiredPrometheusSpec
from promsync.timeouts import K8S_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

PROMETHEUS_GROUP = "monitoring.coreos.com"
PROMETHEUS_VERSION = "v1"
PROMETHEUS_PLURAL = "prometheuses"

PROMETHEUS_LABELS = {"app": "prometheus"}

Mutator = Callable[[Dict[str, Any]], None]


class ApplyOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class UpdatePlan(NamedTuple):
    body: Dict[str, Any]
    changed: bool


def plan_update(observed: Dict[str, Any], mutate: Mutator) -> UpdatePlan:
    """Apply ``mutate`` to a copy of ``observed`` and report whether it changed."""
    body = copy.deepcopy(observed)
    mutate(body)
    return UpdatePlan(body, body != observed)


def _merge_labels(body: Dict[str, Any], labels: Optional[Dict[str, str]]) -> None:
    if not labels:
        return
    metadata = body.setdefault("metadata", {})
    current = metadata.get("labels") or {}
    current.update(labels)
    metadata["labels"] = current


def prometheus_mutator(
    desired: DesiredPrometheusSpec,
    labels: Optional[Dict[str, str]] = None,
    owned_fields: Iterable[str] = OWNED_SPEC_FIELDS,
) -> Mutator:
    """Overwrite owned spec fields; owned fields absent from ``desired`` are removed."""
    desired_spec = desired.to_k8s()
    owned = sorted(owned_fields)

    def mutate(body: Dict[str, Any]) -> None:
        _merge_labels(body, labels)
        spec = body.get("spec") or {}
        for key in owned:
            if key in desired_spec:
                spec[key] = copy.deepcopy(desired_spec[key])
            else:
                spec.pop(key, None)
        body["spec"] = spec

    return mutate


def secret_mutator(string_data: Dict[str, str], secret_type: str = "Opaque") -> Mutator:
    """Set the given keys (base64 encoded) and the type; other keys are kept."""
    encoded = {
        key: base64.b64encode(value.encode("utf-8")).decode("ascii")
        for key, value in string_data.items()
    }

    def mutate(body: Dict[str, Any]) -> None:
        body["type"] = secret_type
        data = body.get("data") or {}
        data.update(encoded)
        body["data"] = data

    return mutate


def config_map_mutator(values: Dict[str, str]) -> Mutator:
    def mutate(body: Dict[str, Any]) -> None:
        data = body.get("data") or {}
        data.update(values)
        body["data"] = data

    return mutate


def new_object(api_version: str, kind: str, namespace: str, name: str) -> Dict[str, Any]:
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace},
    }


class ReconcileApplier:
    """
    Create-or-update the objects making up the managed Prometheus.

    Example:
        applier = ReconcileApplier(client.CustomObjectsApi(), client.CoreV1Api())
        outcome = applier.apply_prometheus("observability", "kafka-prometheus", spec)
    """

    def __init__(
        self,
        custom_api: Any,
        core_api: Any,
        serialize: Optional[Callable[[Any], Any]] = None,
    ):
        self.custom_api = custom_api
        self.core_api = core_api
        self._serialize = serialize or ApiClient().sanitize_for_serialization

    def _create_or_update(
        self,
        kind: str,
        name: str,
        read: Callable[[], Any],
        create: Callable[[Dict[str, Any]], Any],
        replace: Callable[[Dict[str, Any]], Any],
        blank: Dict[str, Any],
        mutate: Mutator,
    ) -> ApplyOutcome:
        try:
            observed = self._serialize(read())
        except ApiException as e:
            if e.status != 404:
                raise
            body = copy.deepcopy(blank)
            mutate(body)
            create(body)
            logger.info(f"Created {kind} {name}")
            return ApplyOutcome.CREATED

        plan = plan_update(observed, mutate)
        if not plan.changed:
            logger.debug(f"{kind} {name} is up to date")
            return ApplyOutcome.UNCHANGED

        replace(plan.body)
        logger.info(f"Updated {kind} {name}")
        return ApplyOutcome.UPDATED

    def apply_prometheus(
        self,
        namespace: str,
        name: str,
        desired: DesiredPrometheusSpec,
        labels: Optional[Dict[str, str]] = None,
    ) -> ApplyOutcome:
        common = dict(
            group=PROMETHEUS_GROUP,
            version=PROMETHEUS_VERSION,
            namespace=namespace,
            plural=PROMETHEUS_PLURAL,
            _request_timeout=K8S_REQUEST_TIMEOUT,
        )
        return self._create_or_update(
            "Prometheus",
            name,
            read=lambda: self.custom_api.get_namespaced_custom_object(name=name, **common),
            create=lambda body: self.custom_api.create_namespaced_custom_object(body=body, **common),
            replace=lambda body: self.custom_api.replace_namespaced_custom_object(
                name=name, body=body, **common
            ),
            blank=new_object(f"{PROMETHEUS_GROUP}/{PROMETHEUS_VERSION}", "Prometheus", namespace, name),
            mutate=prometheus_mutator(desired, labels if labels is not None else PROMETHEUS_LABELS),
        )

    def read_prometheus_storage(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Storage spec of the live Prometheus, if it exists and has one."""
        try:
            live = self.custom_api.get_namespaced_custom_object(
                group=PROMETHEUS_GROUP,
                version=PROMETHEUS_VERSION,
                namespace=namespace,
                plural=PROMETHEUS_PLURAL,
                name=name,
                _request_timeout=K8S_REQUEST_TIMEOUT,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return (live.get("spec") or {}).get("storage")

    def apply_secret(self, namespace: str, name: str, string_data: Dict[str, str]) -> ApplyOutcome:
        return self._create_or_update(
            "Secret",
            name,
            read=lambda: self.core_api.read_namespaced_secret(
                name=name, namespace=namespace, _request_timeout=K8S_REQUEST_TIMEOUT
            ),
            create=lambda body: self.core_api.create_namespaced_secret(
                namespace=namespace, body=body, _request_timeout=K8S_REQUEST_TIMEOUT
            ),
            replace=lambda body: self.core_api.replace_namespaced_secret(
                name=name, namespace=namespace, body=body, _request_timeout=K8S_REQUEST_TIMEOUT
            ),
            blank=new_object("v1", "Secret", namespace, name),
            mutate=secret_mutator(string_data),
        )

    def apply_config_map(self, namespace: str, name: str, data: Dict[str, str]) -> ApplyOutcome:
        return self._create_or_update(
            "ConfigMap",
            name,
            read=lambda: self.core_api.read_namespaced_config_map(
                name=name, namespace=namespace, _request_timeout=K8S_REQUEST_TIMEOUT
            ),
            create=lambda body: self.core_api.create_namespaced_config_map(
                namespace=namespace, body=body, _request_timeout=K8S_REQUEST_TIMEOUT
            ),
            replace=lambda body: self.core_api.replace_namespaced_config_map(
                name=name, namespace=namespace, body=body, _request_timeout=K8S_REQUEST_TIMEOUT
            ),
            blank=new_object("v1", "ConfigMap", namespace, name),
            mutate=config_map_mutator(data),
        )
