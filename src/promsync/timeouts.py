"""
Timeout and retry constants for promsync.

Centralizes timeout values so the fetcher and the Kubernetes calls
agree on them.
"""

from __future__ import annotations

# =============================================================================
# HTTP Client Timeouts
# =============================================================================

# Default timeout for index document fetches
HTTP_CLIENT_TIMEOUT_S = 30.0

# =============================================================================
# Kubernetes API Timeouts
# =============================================================================

# Connect timeout for K8s API calls
K8S_API_CONNECT_TIMEOUT_S = 3

# Read timeout for K8s API calls
K8S_API_READ_TIMEOUT_S = 5

# Passed as _request_timeout to the kubernetes client
K8S_REQUEST_TIMEOUT = (K8S_API_CONNECT_TIMEOUT_S, K8S_API_READ_TIMEOUT_S)

# =============================================================================
# Retry Configuration
# =============================================================================

# Default number of retries for transient failures
DEFAULT_MAX_RETRIES = 3

# Initial delay between retries
DEFAULT_RETRY_DELAY_S = 1.0

# Exponential backoff multiplier
DEFAULT_RETRY_BACKOFF = 2.0

# HTTP status codes that should trigger a retry
RETRYABLE_HTTP_STATUS_CODES = frozenset({502, 503, 504, 429})
