"""
Resource fetcher for repository index documents.

The reconcile core only depends on the ``ResourceFetcher`` protocol:
bytes for a URL, an optional revision tag and an optional bearer token.
``HttpResourceFetcher`` is the httpx implementation used in the operator,
retrying transient failures with exponential backoff.
"""

from __future__ import annotations

import logging
import time as time_module
from typing import Callable, Dict, Optional, Protocol, runtime_checkable

import httpx

from promsync.config import PromSyncConfig
from promsync.errors import FetchError
from promsync.timeouts import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY_S,
    HTTP_CLIENT_TIMEOUT_S,
    RETRYABLE_HTTP_STATUS_CODES,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ResourceFetcher(Protocol):
    """Retrieves the raw body of an index document."""

    def fetch(self, url: str, tag: str = "", token: str = "") -> bytes:
        ...


class HttpResourceFetcher:
    """
    Fetch index documents over HTTP(S).

    A non-empty tag is sent as the ``ref`` query parameter, which selects
    a revision on git hosting raw-file endpoints. A non-empty token is sent
    as a bearer token. Any non-2xx answer raises ``FetchError``.

    Example:
        fetcher = HttpResourceFetcher.from_config(get_config())
        body = fetcher.fetch(
            "https://example.com/index/prometheus/federation.yaml",
            tag="v1.2.0",
            token="s3cr3t",
        )
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout_s: float = HTTP_CLIENT_TIMEOUT_S,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        sleep: Callable[[float], None] = time_module.sleep,
    ):
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: PromSyncConfig) -> "HttpResourceFetcher":
        return cls(
            timeout_s=config.http_timeout_s,
            max_retries=config.http_max_retries,
            retry_delay_s=config.http_retry_delay_s,
            retry_backoff=config.http_retry_backoff,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpResourceFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def _request_params(tag: str, token: str) -> tuple[Dict[str, str], Dict[str, str]]:
        params: Dict[str, str] = {}
        headers: Dict[str, str] = {}
        if tag:
            params["ref"] = tag
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return params, headers

    def _get_with_retry(self, url: str, **kwargs) -> httpx.Response:
        """
        GET with retry logic for transient failures.

        Retries on 502, 503, 504, 429 and connection/timeout errors
        with exponential backoff.
        """
        delay = self.retry_delay_s

        for attempt in range(self.max_retries + 1):
            try:
                response = self._client.get(url, **kwargs)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < self.max_retries:
                    logger.warning(
                        f"Fetching {url} failed: {e}, "
                        f"retrying in {delay:.1f}s ({attempt + 1}/{self.max_retries + 1})"
                    )
                    self._sleep(delay)
                    delay *= self.retry_backoff
                    continue
                raise FetchError(url, f"{type(e).__name__}: {e}") from e
            except httpx.HTTPError as e:
                raise FetchError(url, f"{type(e).__name__}: {e}") from e

            if response.status_code in RETRYABLE_HTTP_STATUS_CODES and attempt < self.max_retries:
                logger.warning(
                    f"{url} returned {response.status_code}, "
                    f"retrying in {delay:.1f}s ({attempt + 1}/{self.max_retries + 1})"
                )
                self._sleep(delay)
                delay *= self.retry_backoff
                continue

            return response

        raise RuntimeError("Unexpected retry loop exit")

    def fetch(self, url: str, tag: str = "", token: str = "") -> bytes:
        params, headers = self._request_params(tag, token)
        response = self._get_with_retry(url, params=params, headers=headers)

        if not response.is_success:
            raise FetchError(url, response.reason_phrase or "request failed", response.status_code)

        logger.debug(f"Fetched {url} ({len(response.content)} bytes)")
        return response.content
