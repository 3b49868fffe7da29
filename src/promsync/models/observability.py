"""
Pydantic models for the Observability custom resource.

Only the parts of the resource that drive the Prometheus configuration are
modelled; everything else in the object is ignored at parse time. Raw
Kubernetes structures (storage spec, tolerations, affinity, selectors) are
kept as plain dicts and passed through untouched.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ObjectMeta(BaseModel):
    name: str
    namespace: str
    labels: Dict[str, str] = Field(default_factory=dict)


class SelfContained(BaseModel):
    """Settings that apply when the operator is not driven by indexes."""
    disable_repo_sync: bool = Field(False, alias="disableRepoSync")
    disable_observatorium: bool = Field(False, alias="disableObservatorium")
    disable_blackbox_exporter: bool = Field(False, alias="disableBlackboxExporter")
    federated_metrics: List[str] = Field(default_factory=list, alias="federatedMetrics")

    pod_monitor_label_selector: Optional[Dict[str, Any]] = Field(None, alias="podMonitorLabelSelector")
    pod_monitor_namespace_selector: Optional[Dict[str, Any]] = Field(None, alias="podMonitorNamespaceSelector")
    service_monitor_label_selector: Optional[Dict[str, Any]] = Field(None, alias="serviceMonitorLabelSelector")
    service_monitor_namespace_selector: Optional[Dict[str, Any]] = Field(
        None, alias="serviceMonitorNamespaceSelector"
    )
    rule_label_selector: Optional[Dict[str, Any]] = Field(None, alias="ruleLabelSelector")
    rule_namespace_selector: Optional[Dict[str, Any]] = Field(None, alias="ruleNamespaceSelector")
    probe_selector: Optional[Dict[str, Any]] = Field(None, alias="probeSelector")
    probe_namespace_selector: Optional[Dict[str, Any]] = Field(None, alias="probeNamespaceSelector")

    model_config = ConfigDict(populate_by_name=True)


class StorageOverrides(BaseModel):
    prometheus_storage_spec: Optional[Dict[str, Any]] = Field(None, alias="prometheusStorageSpec")

    model_config = ConfigDict(populate_by_name=True)


class ResourceOverrides(BaseModel):
    prometheus: Optional[Dict[str, Any]] = None


class ObservabilitySpec(BaseModel):
    retention: str = ""
    prometheus_version: str = Field("", alias="prometheusVersion")
    storage: Optional[StorageOverrides] = None
    resources: Optional[ResourceOverrides] = None
    tolerations: Optional[List[Dict[str, Any]]] = None
    affinity: Optional[Dict[str, Any]] = None
    self_contained: Optional[SelfContained] = Field(None, alias="selfContained")

    model_config = ConfigDict(populate_by_name=True)


class ObservabilityStatus(BaseModel):
    cluster_id: str = Field("", alias="clusterId")

    model_config = ConfigDict(populate_by_name=True)


class Observability(BaseModel):
    """The Observability custom resource driving one Prometheus deployment."""
    metadata: ObjectMeta
    spec: ObservabilitySpec = Field(default_factory=ObservabilitySpec)
    status: ObservabilityStatus = Field(default_factory=ObservabilityStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def external_sync_disabled(self) -> bool:
        sc = self.spec.self_contained
        return sc is not None and sc.disable_repo_sync

    def observatorium_disabled(self) -> bool:
        sc = self.spec.self_contained
        return sc is not None and sc.disable_observatorium

    def blackbox_exporter_disabled(self) -> bool:
        sc = self.spec.self_contained
        return sc is not None and sc.disable_blackbox_exporter

    def storage_override(self) -> Optional[Dict[str, Any]]:
        if self.spec.storage is None:
            return None
        return self.spec.storage.prometheus_storage_spec
