"""
Pydantic models for the desired ``monitoring.coreos.com/v1`` Prometheus spec.

Field names are snake_case in Python and serialise to the camelCase keys the
Prometheus operator expects. ``to_k8s()`` produces the plain dict used for
diffing and for the API call; unset optional fields are omitted so the dict
only carries what promsync decided.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class K8sModel(BaseModel):
    """Base for models serialised into Kubernetes objects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_k8s(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class TLSConfig(K8sModel):
    ca_file: Optional[str] = None
    server_name: Optional[str] = None
    insecure_skip_verify: Optional[bool] = None


class RemoteWriteSpec(K8sModel):
    url: str
    name: str
    remote_timeout: Optional[str] = None
    write_relabel_configs: Optional[List[Dict[str, Any]]] = None
    bearer_token_file: Optional[str] = None
    tls_config: Optional[TLSConfig] = None
    proxy_url: Optional[str] = None
    queue_config: Optional[Dict[str, Any]] = None


class AlertmanagerEndpoint(K8sModel):
    namespace: str
    name: str
    port: str
    scheme: str = "https"
    tls_config: Optional[TLSConfig] = None
    bearer_token_file: Optional[str] = None


class AlertingSpec(K8sModel):
    alertmanagers: List[AlertmanagerEndpoint] = Field(default_factory=list)


class EnvVar(K8sModel):
    name: str
    value: Optional[str] = None


class ContainerPort(K8sModel):
    name: str
    container_port: int


class VolumeMount(K8sModel):
    name: str
    mount_path: str


class Container(K8sModel):
    name: str
    image: str
    args: List[str] = Field(default_factory=list)
    env: List[EnvVar] = Field(default_factory=list)
    ports: List[ContainerPort] = Field(default_factory=list)
    volume_mounts: List[VolumeMount] = Field(default_factory=list)


class ConfigMapVolumeSource(K8sModel):
    name: str


class Volume(K8sModel):
    name: str
    config_map: Optional[ConfigMapVolumeSource] = None


class SecretKeySelector(K8sModel):
    name: str
    key: str


class DesiredPrometheusSpec(K8sModel):
    """The full target spec of the managed Prometheus resource."""

    image: str
    version: str
    priority_class_name: str
    service_account_name: str
    retention: str
    external_url: str
    additional_scrape_configs: SecretKeySelector
    external_labels: Dict[str, str] = Field(default_factory=dict)
    volumes: List[Volume] = Field(default_factory=list)

    pod_monitor_selector: Dict[str, Any] = Field(default_factory=dict)
    pod_monitor_namespace_selector: Dict[str, Any] = Field(default_factory=dict)
    service_monitor_selector: Dict[str, Any] = Field(default_factory=dict)
    service_monitor_namespace_selector: Dict[str, Any] = Field(default_factory=dict)
    rule_selector: Dict[str, Any] = Field(default_factory=dict)
    rule_namespace_selector: Dict[str, Any] = Field(default_factory=dict)
    probe_selector: Dict[str, Any] = Field(default_factory=dict)
    probe_namespace_selector: Dict[str, Any] = Field(default_factory=dict)

    remote_write: List[RemoteWriteSpec] = Field(default_factory=list)
    alerting: Optional[AlertingSpec] = None
    secrets: List[str] = Field(default_factory=list)
    containers: List[Container] = Field(default_factory=list)
    resources: Dict[str, Any] = Field(default_factory=dict)

    storage: Optional[Dict[str, Any]] = None
    tolerations: Optional[List[Dict[str, Any]]] = None
    affinity: Optional[Dict[str, Any]] = None


# Top-level spec keys written by promsync. Anything else in the live
# object's spec belongs to someone else and is left alone.
OWNED_SPEC_FIELDS = frozenset(
    info.alias or to_camel(name)
    for name, info in DesiredPrometheusSpec.model_fields.items()
)
