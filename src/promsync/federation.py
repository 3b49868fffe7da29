"""
Federation pattern aggregation.

Every index may contribute a federation document listing ``match[]``
selectors to pull from the cluster monitoring stack. The patterns of all
indexes are merged into one ordered, duplicate-free list that feeds the
generated ``additional-scrape-config.yaml``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import yaml

from promsync.credentials import Credentials
from promsync.fetcher import ResourceFetcher
from promsync.models.index import RepositoryIndex
from promsync.models.observability import Observability
from promsync.parser import parse_federation_document

logger = logging.getLogger(__name__)

FEDERATION_JOB_NAME = "openshift-monitoring-federation"


def quote_pattern(pattern: str) -> str:
    """Wrap ``pattern`` as a YAML single-quoted scalar."""
    return "'" + pattern.replace("'", "''") + "'"


def unquote_pattern(pattern: str) -> str:
    """Inverse of ``quote_pattern``; unquoted input is returned unchanged."""
    if len(pattern) >= 2 and pattern[0] == "'" and pattern[-1] == "'":
        return pattern[1:-1].replace("''", "'")
    return pattern


class FederationAggregator:
    """
    Merge federation match patterns across indexes.

    Patterns keep first-seen order and each appears once. A fetch or parse
    failure on any index aborts the aggregation: a partial pattern list
    would silently stop federating metrics another index still needs.
    """

    def __init__(self, fetcher: ResourceFetcher):
        self.fetcher = fetcher

    def aggregate(self, cr: Observability, indexes: Sequence[RepositoryIndex]) -> List[str]:
        # Metrics are listed on the resource itself when repo sync is off
        if cr.external_sync_disabled():
            sc = cr.spec.self_contained
            return list(sc.federated_metrics) if sc else []

        result: List[str] = []
        for index in indexes:
            if not index.federation_path:
                continue

            blob = self.fetcher.fetch(
                index.url_for(index.federation_path), index.tag, index.access_token
            )
            patterns = parse_federation_document(blob)

            for pattern in patterns.match:
                quoted = quote_pattern(pattern)
                # Linear scan; pattern lists are short
                if quoted not in result:
                    result.append(quoted)

            logger.debug(f"Index {index.id} contributed {len(patterns.match)} federation patterns")

        return result


def render_federation_scrape_config(
    credentials: Credentials,
    patterns: Sequence[str],
    target: str,
    job_name: str = FEDERATION_JOB_NAME,
) -> str:
    """
    Render the additional scrape config federating from the cluster monitoring stack.

    Patterns may carry the quote wrapper added by ``quote_pattern``; it is
    stripped here and the YAML emitter does the quoting.
    """
    job: Dict[str, Any] = {
        "job_name": job_name,
        "honor_labels": True,
        "scrape_interval": "2m",
        "scrape_timeout": "1m",
        "metrics_path": "/federate",
        "scheme": "https",
        "params": {"match[]": [unquote_pattern(pattern) for pattern in patterns]},
        "basic_auth": {"username": credentials.user, "password": credentials.password},
        "tls_config": {"insecure_skip_verify": True},
        "static_configs": [{"targets": [target]}],
    }
    return yaml.safe_dump([job], sort_keys=False, default_flow_style=False)
