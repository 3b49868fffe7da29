"""
Pydantic models for repository indexes and the documents they point to.

A repository index is supplied by the surrounding operator. Its config
names relative paths of the federation and remote-write documents, and
declares the Observatorium instances the index may push to.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AuthType(str, Enum):
    """Remote-write authentication strategies for an Observatorium."""
    DEX = "dex"
    REDHAT = "redhat"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "AuthType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ObservatoriumConfig(BaseModel):
    """An Observatorium gateway and the tenant an index writes to."""
    id: str = Field(..., description="Identifier referenced from the index config")
    gateway: str = Field("", description="Gateway base URL")
    tenant: str = Field("", description="Tenant name")
    auth_type: AuthType = Field(AuthType.UNKNOWN, alias="authType")
    # authType as written in the index, kept for error reporting
    declared_auth_type: str = Field("", exclude=True)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _keep_declared_auth_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("declared_auth_type"):
            raw = data.get("authType", data.get("auth_type", ""))
            if isinstance(raw, Enum):
                raw = raw.value
            data = {**data, "declared_auth_type": "" if raw is None else str(raw)}
        return data

    @field_validator("auth_type", mode="before")
    @classmethod
    def _coerce_auth_type(cls, v: Any) -> AuthType:
        return AuthType.parse(v)


class PrometheusIndexConfig(BaseModel):
    """The ``prometheus`` section of an index config."""
    federation: str = Field("", description="Path of the federation document")
    remote_write: str = Field("", alias="remoteWrite", description="Path of the remote-write document")
    observatorium: str = Field("", description="Id of the Observatorium used for remote write")
    override_prometheus_pvc_size: str = Field(
        "", alias="overridePrometheusPvcSize", description="Storage size requested by the index"
    )

    model_config = ConfigDict(populate_by_name=True)


class IndexConfig(BaseModel):
    prometheus: Optional[PrometheusIndexConfig] = None
    observatoria: List[ObservatoriumConfig] = Field(default_factory=list)


class RepositoryIndex(BaseModel):
    """One externally hosted index contributing monitoring configuration."""
    id: str
    base_url: str = Field(..., alias="baseUrl")
    tag: str = ""
    access_token: str = Field("", alias="accessToken")
    config: Optional[IndexConfig] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def prometheus(self) -> Optional[PrometheusIndexConfig]:
        if self.config is None:
            return None
        return self.config.prometheus

    @property
    def federation_path(self) -> str:
        return self.prometheus.federation if self.prometheus else ""

    @property
    def remote_write_path(self) -> str:
        return self.prometheus.remote_write if self.prometheus else ""

    def url_for(self, path: str) -> str:
        """Join a config-relative path onto the index base URL."""
        return f"{self.base_url}/{path}"

    def observatorium_config(self, observatorium_id: str) -> Optional[ObservatoriumConfig]:
        if self.config is None:
            return None
        for observatorium in self.config.observatoria:
            if observatorium.id == observatorium_id:
                return observatorium
        return None


class FederationPatterns(BaseModel):
    """Federation document: ``{"match[]": [...]}``."""
    match: List[str] = Field(default_factory=list, alias="match[]")

    model_config = ConfigDict(populate_by_name=True)


class RemoteWriteIndex(BaseModel):
    """Remote-write document; every field is copied verbatim into the target."""
    remote_timeout: Optional[str] = Field(None, alias="remoteTimeout")
    write_relabel_configs: Optional[List[Dict[str, Any]]] = Field(None, alias="writeRelabelConfigs")
    proxy_url: Optional[str] = Field(None, alias="proxyUrl")
    queue_config: Optional[Dict[str, Any]] = Field(None, alias="queueConfig")

    model_config = ConfigDict(populate_by_name=True)
