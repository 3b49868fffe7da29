"""
Exception hierarchy for promsync.

Federation and credential errors abort a reconcile pass. Remote-write
errors only drop the failing index. Storage quantity errors are returned
alongside a fallback spec rather than raised.
"""

from __future__ import annotations

from typing import Optional, Sequence


class PromSyncError(Exception):
    """Base class for all promsync errors."""


class FetchError(PromSyncError):
    """Raised when an index document cannot be retrieved."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        detail = f"HTTP {status_code}: {reason}" if status_code else reason
        super().__init__(f"Failed to fetch {url}: {detail}")


class IndexParseError(PromSyncError):
    """Raised when a fetched index document does not decode into its schema."""

    def __init__(self, document: str, reason: str):
        self.document = document
        self.reason = reason
        super().__init__(f"Error parsing {document} index: {reason}")


class CredentialsNotFoundError(PromSyncError):
    """Raised when none of the candidate datasource secrets exist."""

    def __init__(self, namespace: str, candidates: Sequence[str]):
        self.namespace = namespace
        self.candidates = list(candidates)
        super().__init__(
            f"No grafana datasources secret found in {namespace} "
            f"(tried: {', '.join(self.candidates)})"
        )


class CredentialsDecodeError(PromSyncError):
    """Raised when a datasource secret exists but its payload is unusable."""

    def __init__(self, secret_name: str, reason: str):
        self.secret_name = secret_name
        self.reason = reason
        super().__init__(f"Unable to decode datasources from secret {secret_name}: {reason}")


class ObservatoriumConfigMissingError(PromSyncError):
    """Raised when an index references an Observatorium config it does not declare."""

    def __init__(self, index_id: str, observatorium_id: Optional[str] = None):
        self.index_id = index_id
        self.observatorium_id = observatorium_id
        if observatorium_id:
            message = f"No observatorium config found for {observatorium_id} (index {index_id})"
        else:
            message = f"No observatorium config found for {index_id} / prometheus"
        super().__init__(message)


class UnknownAuthTypeError(PromSyncError):
    """Raised for an Observatorium auth type with no remote-write strategy."""

    def __init__(self, auth_type: str, observatorium_id: str):
        self.auth_type = auth_type
        self.observatorium_id = observatorium_id
        super().__init__(f"Unknown auth type {auth_type!r} for observatorium {observatorium_id}")


class StorageQuantityError(PromSyncError):
    """Raised when a custom storage size is not a valid resource quantity."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid Prometheus storage size {value!r}: {reason}")
