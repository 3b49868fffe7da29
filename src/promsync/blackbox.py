"""
Black-box exporter configuration.

The exporter sidecar reads its modules from the ``black-box-config``
config map. The sidecar spec carries a hash of this content in the
``CONFIG_HASH`` env var: the mount never changes, so without it a new
config would not restart the pod.
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, NamedTuple

import yaml

BLACKBOX_CONFIG_KEY = "black-box-config.yaml"


def default_blackbox_modules() -> Dict[str, Any]:
    return {
        "modules": {
            "http_2xx": {
                "prober": "http",
                "timeout": "5s",
                "http": {
                    "preferred_ip_protocol": "ip4",
                    "valid_status_codes": [],
                    "method": "GET",
                },
            },
            "http_2xx_insecure": {
                "prober": "http",
                "timeout": "5s",
                "http": {
                    "preferred_ip_protocol": "ip4",
                    "tls_config": {"insecure_skip_verify": True},
                },
            },
            "tcp_connect": {
                "prober": "tcp",
                "timeout": "5s",
            },
        }
    }


class BlackboxConfig(NamedTuple):
    content: str
    hash: str

    def config_map_data(self) -> Dict[str, str]:
        return {BLACKBOX_CONFIG_KEY: self.content}


def build_blackbox_config(modules: Dict[str, Any] | None = None) -> BlackboxConfig:
    content = yaml.safe_dump(
        modules if modules is not None else default_blackbox_modules(),
        sort_keys=True,
        default_flow_style=False,
    )
    return BlackboxConfig(content, hashlib.sha256(content.encode("utf-8")).hexdigest())
