"""
Centralized configuration for promsync.

Uses Pydantic BaseSettings for environment variable integration
and validation. Values that used to be process-wide constants
(base image, default retention, sidecar images) live here and are
injected into the assembler and reconciler.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (PROMSYNC_*)
3. .env file
4. Default values

Example:
    from promsync.config import get_config

    config = get_config()
    print(config.prometheus_base_image)  # From PROMSYNC_PROMETHEUS_BASE_IMAGE or default

    # Override at runtime
    config = get_config(default_retention="30d")
"""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from promsync.timeouts import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY_S,
    HTTP_CLIENT_TIMEOUT_S,
)


def _default_prometheus_resources() -> Dict[str, Any]:
    return {
        "requests": {"cpu": "750m", "memory": "750Mi"},
        "limits": {"cpu": "1500m", "memory": "3Gi"},
    }


class PromSyncConfig(BaseSettings):
    """
    Central configuration for promsync.

    All settings can be overridden via environment variables
    prefixed with PROMSYNC_.

    Example:
        export PROMSYNC_DEFAULT_RETENTION=30d
        export PROMSYNC_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="PROMSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Images
    prometheus_base_image: str = Field(
        default="quay.io/prometheus/prometheus",
        description="Prometheus image without tag; the version is appended",
    )
    default_prometheus_version: str = Field(
        default="v2.30.3",
        description="Prometheus version used when the custom resource does not pin one",
    )
    oauth_proxy_image: str = Field(
        default="quay.io/openshift/origin-oauth-proxy:4.8",
        description="Image of the authenticating reverse-proxy sidecar",
    )
    blackbox_exporter_image: str = Field(
        default="quay.io/prometheus/blackbox-exporter:v0.19.0",
        description="Image of the black-box exporter sidecar",
    )

    # Prometheus defaults
    default_retention: str = Field(
        default="45d",
        description="Retention used when the custom resource value is missing or invalid",
    )
    priority_class_name: str = Field(
        default="observability-priority",
        description="Priority class assigned to the Prometheus pods",
    )
    default_prometheus_resources: Dict[str, Any] = Field(
        default_factory=_default_prometheus_resources,
        description="Resource requirements used when the custom resource sets none",
    )

    # Object names
    prometheus_name: str = Field(default="kafka-prometheus", description="Prometheus resource name")
    prometheus_service_account: str = Field(default="kafka-prometheus", description="Prometheus service account")
    prometheus_proxy_secret: str = Field(default="kafka-prometheus-proxy", description="oauth-proxy session secret")
    prometheus_route_name: str = Field(default="kafka-prometheus", description="Route exposing the Prometheus UI")
    alertmanager_name: str = Field(default="kafka-alertmanager", description="Alertmanager resource name")
    alertmanager_service_name: str = Field(default="kafka-alertmanager", description="Alertmanager service name")
    scrape_config_secret: str = Field(
        default="additional-scrape-configs",
        description="Secret holding the generated federation scrape config",
    )
    blackbox_config_map: str = Field(
        default="black-box-config",
        description="Config map holding the black-box exporter modules",
    )

    # Federation source
    monitoring_namespace: str = Field(
        default="openshift-monitoring",
        description="Namespace of the cluster monitoring stack federated from",
    )
    federation_target: str = Field(
        default="prometheus-k8s.openshift-monitoring.svc:9091",
        description="host:port of the cluster Prometheus federation endpoint",
    )

    # Index fetching
    http_timeout_s: float = Field(
        default=HTTP_CLIENT_TIMEOUT_S,
        gt=0,
        description="Timeout applied to every index document fetch",
    )
    http_max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries for transient index fetch failures",
    )
    http_retry_delay_s: float = Field(default=DEFAULT_RETRY_DELAY_S, ge=0)
    http_retry_backoff: float = Field(default=DEFAULT_RETRY_BACKOFF, ge=1)

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for promsync",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format (json for Loki, text for console)",
    )

    # Kubernetes
    kubeconfig: Optional[str] = Field(
        default=None,
        description="Path to kubeconfig file (in-cluster config is tried first if not set)",
    )

    @field_validator("kubeconfig")
    @classmethod
    def expand_path(cls, v: Optional[str]) -> Optional[str]:
        """Expand ~ and environment variables in paths."""
        if v is None:
            return v
        return os.path.expanduser(os.path.expandvars(v))

    @field_validator("prometheus_base_image")
    @classmethod
    def strip_tag_separator(cls, v: str) -> str:
        return v.rstrip(":")


# Global singleton
_config: Optional[PromSyncConfig] = None


def get_config(**overrides) -> PromSyncConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.
    """
    global _config

    if overrides or _config is None:
        _config = PromSyncConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
