"""
External hostname of the Prometheus UI.

The hostname comes from the OpenShift route in front of the oauth-proxy.
A route that does not exist yet, or that no router has admitted, yields an
empty host: the external URL is simply left hostless until a later pass.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from kubernetes.client.rest import ApiException

from promsync.timeouts import K8S_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"
ROUTE_PLURAL = "routes"


def is_route_ready(route: Optional[Dict[str, Any]]) -> bool:
    """True when at least one router admitted the route."""
    if not route:
        return False
    for ingress in (route.get("status") or {}).get("ingress") or []:
        for condition in ingress.get("conditions") or []:
            if condition.get("type") == "Admitted" and condition.get("status") == "True":
                return True
    return False


def route_host(custom_api: Any, namespace: str, name: str) -> str:
    try:
        route = custom_api.get_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace=namespace,
            plural=ROUTE_PLURAL,
            name=name,
            _request_timeout=K8S_REQUEST_TIMEOUT,
        )
    except ApiException as e:
        if e.status == 404:
            logger.debug(f"Route {namespace}/{name} does not exist yet")
            return ""
        raise

    if not is_route_ready(route):
        return ""
    return (route.get("spec") or {}).get("host") or ""
