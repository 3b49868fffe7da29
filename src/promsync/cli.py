"""
promsync CLI - Render or reconcile the managed Prometheus.

Commands:
    promsync render     Print the desired Prometheus spec for a resource and its indexes
    promsync reconcile  Apply the desired state to the cluster
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Tuple

import click
import yaml
from kubernetes.client.rest import ApiException
from pydantic import ValidationError

from promsync.assembler import DesiredStateAssembler
from promsync.blackbox import build_blackbox_config
from promsync.config import get_config
from promsync.errors import PromSyncError
from promsync.fetcher import HttpResourceFetcher
from promsync.logger import configure_logging
from promsync.models.index import RepositoryIndex
from promsync.models.observability import Observability
from promsync.reconciler import PrometheusReconciler
from promsync.remote_write import RemoteWriteResolver


def _load_yaml(path: Path) -> Any:
    try:
        with open(path) as fh:
            return yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise click.ClickException(f"{path} is not valid YAML: {e}")


def _load_inputs(resource_path: Path, indexes_path: Path) -> Tuple[Observability, List[RepositoryIndex]]:
    raw_cr = _load_yaml(resource_path)
    raw_indexes = _load_yaml(indexes_path) or []
    if isinstance(raw_indexes, dict):
        raw_indexes = raw_indexes.get("indexes", [])
    if not isinstance(raw_indexes, list):
        raise click.ClickException(f"{indexes_path} must hold a list of repository indexes")

    try:
        cr = Observability.model_validate(raw_cr)
        indexes = [RepositoryIndex.model_validate(item) for item in raw_indexes]
    except ValidationError as e:
        raise click.ClickException(f"Invalid input: {e}")
    return cr, indexes


def _kubernetes_clients(kubeconfig: Optional[str]) -> Tuple[Any, Any]:
    from kubernetes import client, config

    if kubeconfig:
        config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()
    return client.CustomObjectsApi(), client.CoreV1Api()


@click.group()
@click.version_option(package_name="promsync")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]), default=None)
@click.option("--log-format", type=click.Choice(["json", "text"]), default=None)
def main(log_level: Optional[str], log_format: Optional[str]):
    """promsync - managed Prometheus configuration from repository indexes."""
    config = get_config()
    configure_logging(log_level or config.log_level, log_format or config.log_format)


_resource_option = click.option(
    "--resource", "-r", "resource_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Observability custom resource (YAML)",
)
_indexes_option = click.option(
    "--indexes", "-i", "indexes_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="List of repository indexes (YAML)",
)


@main.command()
@_resource_option
@_indexes_option
@click.option("--host", default="", help="External hostname of the Prometheus route")
def render(resource_path: Path, indexes_path: Path, host: str):
    """Print the desired Prometheus spec without touching the cluster."""
    config = get_config()
    cr, indexes = _load_inputs(resource_path, indexes_path)

    with HttpResourceFetcher.from_config(config) as fetcher:
        assembler = DesiredStateAssembler(config, RemoteWriteResolver(fetcher))
        result = assembler.assemble(
            cr, indexes, host=host, blackbox_config_hash=build_blackbox_config().hash
        )

    for index_id, reason in result.skipped_indexes.items():
        click.echo(f"# skipped {index_id}: {reason}", err=True)
    if result.storage_error is not None:
        click.echo(f"# storage fallback: {result.storage_error}", err=True)

    click.echo(yaml.safe_dump({"spec": result.spec.to_k8s()}, sort_keys=True), nl=False)


@main.command()
@_resource_option
@_indexes_option
@click.option("--kubeconfig", envvar="KUBECONFIG", help="Path to kubeconfig")
def reconcile(resource_path: Path, indexes_path: Path, kubeconfig: Optional[str]):
    """Apply the desired Prometheus state to the cluster."""
    config = get_config()
    cr, indexes = _load_inputs(resource_path, indexes_path)
    custom_api, core_api = _kubernetes_clients(kubeconfig or config.kubeconfig)

    with HttpResourceFetcher.from_config(config) as fetcher:
        reconciler = PrometheusReconciler(config, fetcher, custom_api, core_api)
        try:
            result = reconciler.reconcile(cr, indexes)
        except PromSyncError as e:
            raise click.ClickException(str(e))
        except ApiException as e:
            raise click.ClickException(f"Kubernetes API error: {e.status} {e.reason}")

    click.echo(f"Prometheus {config.prometheus_name}: {result.outcome.value}")
    click.echo(f"  remote write targets: {len(result.spec.remote_write)}")
    click.echo(f"  federation patterns:  {len(result.federation_patterns)}")
    for index_id, reason in result.skipped_indexes.items():
        click.echo(f"  skipped {index_id}: {reason}")


if __name__ == "__main__":
    main()
