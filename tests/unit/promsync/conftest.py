"""
Shared fixtures for promsync unit tests.
"""

from __future__ import annotations

import pytest

from promsync.config import PromSyncConfig
from promsync.models.index import RepositoryIndex
from promsync.models.observability import Observability

from promsync_support import REMOTE_WRITE_DOC, FakeFetcher, make_cr, make_index


@pytest.fixture
def config() -> PromSyncConfig:
    return PromSyncConfig()


@pytest.fixture
def cr() -> Observability:
    return make_cr()


@pytest.fixture
def dex_index() -> RepositoryIndex:
    return make_index(
        "kafka",
        remote_write="prometheus/remote-write.yaml",
        observatorium="obs-dex",
        observatoria=[
            {
                "id": "obs-dex",
                "gateway": "https://observatorium.example.com",
                "tenant": "managedkafka",
                "authType": "dex",
            }
        ],
    )


@pytest.fixture
def redhat_index() -> RepositoryIndex:
    return make_index(
        "connectors",
        remote_write="prometheus/remote-write.yaml",
        observatorium="obs-sso",
        observatoria=[
            {
                "id": "obs-sso",
                "gateway": "https://observatorium-sso.example.com",
                "tenant": "rhoc",
                "authType": "redhat",
            }
        ],
    )


@pytest.fixture
def unknown_auth_index() -> RepositoryIndex:
    return make_index(
        "legacy",
        remote_write="prometheus/remote-write.yaml",
        observatorium="obs-legacy",
        observatoria=[
            {
                "id": "obs-legacy",
                "gateway": "https://observatorium-legacy.example.com",
                "tenant": "legacy",
                "authType": "kerberos",
            }
        ],
    )


@pytest.fixture
def remote_write_fetcher(dex_index, redhat_index, unknown_auth_index) -> FakeFetcher:
    return FakeFetcher(
        {
            index.url_for("prometheus/remote-write.yaml"): REMOTE_WRITE_DOC
            for index in (dex_index, redhat_index, unknown_auth_index)
        }
    )
