"""
Pydantic models for promsync inputs and outputs.

- ``index``: repository indexes and the documents they reference
- ``observability``: the Observability custom resource
- ``prometheus``: the desired Prometheus spec
"""

from promsync.models.index import (
    AuthType,
    FederationPatterns,
    IndexConfig,
    ObservatoriumConfig,
    PrometheusIndexConfig,
    RemoteWriteIndex,
    RepositoryIndex,
)
from promsync.models.observability import Observability
from promsync.models.prometheus import (
    OWNED_SPEC_FIELDS,
    DesiredPrometheusSpec,
    RemoteWriteSpec,
)

__all__ = [
    "AuthType",
    "FederationPatterns",
    "IndexConfig",
    "ObservatoriumConfig",
    "PrometheusIndexConfig",
    "RemoteWriteIndex",
    "RepositoryIndex",
    "Observability",
    "OWNED_SPEC_FIELDS",
    "DesiredPrometheusSpec",
    "RemoteWriteSpec",
]
