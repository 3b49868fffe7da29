"""
Basic-auth credentials for federating from the cluster monitoring stack.

The credentials live in the Grafana datasources secret of the monitoring
namespace. That secret has existed under two names with two payload
shapes, so lookups go through an ordered list of candidates; the first
secret that exists decides which field holds the password.

Payload (key ``prometheus.yaml``, JSON despite the name)::

    {"datasources": [{"basicAuthUser": "...",
                      "basicAuthPassword": "...",
                      "secureJsonData": {"basicAuthPassword": "..."}}]}
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, NamedTuple, Optional, Sequence

from kubernetes.client.rest import ApiException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from promsync.errors import CredentialsDecodeError, CredentialsNotFoundError
from promsync.timeouts import K8S_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

DATASOURCES_KEY = "prometheus.yaml"


class _SecureJsonData(BaseModel):
    basic_auth_password: str = Field("", alias="basicAuthPassword")

    model_config = ConfigDict(populate_by_name=True)


class Datasource(BaseModel):
    basic_auth_user: str = Field("", alias="basicAuthUser")
    basic_auth_password: str = Field("", alias="basicAuthPassword")
    secure_json_data: _SecureJsonData = Field(default_factory=_SecureJsonData, alias="secureJsonData")

    model_config = ConfigDict(populate_by_name=True)


class Datasources(BaseModel):
    datasources: List[Datasource] = Field(default_factory=list)


class Credentials(NamedTuple):
    user: str
    password: str


def _top_level_password(ds: Datasource) -> str:
    return ds.basic_auth_password or ds.secure_json_data.basic_auth_password


def _secure_json_password(ds: Datasource) -> str:
    return ds.secure_json_data.basic_auth_password or ds.basic_auth_password


@dataclass(frozen=True)
class SecretCandidate:
    """A secret name and how to read the password out of its datasource."""
    name: str
    password: Callable[[Datasource], str]


# Tried in order; the first secret found wins.
DEFAULT_CANDIDATES: Sequence[SecretCandidate] = (
    SecretCandidate("grafana-datasources-v2", _top_level_password),
    SecretCandidate("grafana-datasources", _secure_json_password),
)


class CredentialResolver:
    """
    Resolve the federation basic-auth pair from the datasources secret.

    Example:
        resolver = CredentialResolver(client.CoreV1Api(), "openshift-monitoring")
        creds = resolver.resolve()
    """

    def __init__(
        self,
        core_api: Any,
        namespace: str,
        candidates: Sequence[SecretCandidate] = DEFAULT_CANDIDATES,
    ):
        self.core_api = core_api
        self.namespace = namespace
        self.candidates = list(candidates)

    def _read_secret(self, name: str) -> Optional[Any]:
        try:
            return self.core_api.read_namespaced_secret(
                name=name,
                namespace=self.namespace,
                _request_timeout=K8S_REQUEST_TIMEOUT,
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"Secret {self.namespace}/{name} not found")
                return None
            raise

    def resolve(self) -> Credentials:
        for candidate in self.candidates:
            secret = self._read_secret(candidate.name)
            if secret is None:
                continue
            datasource = self._first_datasource(candidate.name, secret)
            logger.debug(f"Using federation credentials from {self.namespace}/{candidate.name}")
            return Credentials(
                user=datasource.basic_auth_user,
                password=candidate.password(datasource),
            )

        logger.error("unable to find grafana datasources secret")
        raise CredentialsNotFoundError(self.namespace, [c.name for c in self.candidates])

    @staticmethod
    def _first_datasource(secret_name: str, secret: Any) -> Datasource:
        data = secret.data or {}
        encoded = data.get(DATASOURCES_KEY)
        if not encoded:
            raise CredentialsDecodeError(secret_name, f"missing key {DATASOURCES_KEY}")

        try:
            payload = json.loads(base64.b64decode(encoded))
            parsed = Datasources.model_validate(payload)
        except (binascii.Error, ValueError, ValidationError) as e:
            raise CredentialsDecodeError(secret_name, str(e)) from e

        if not parsed.datasources:
            raise CredentialsDecodeError(secret_name, "no datasources defined")
        return parsed.datasources[0]
