"""
promsync - Managed Prometheus configuration from repository indexes.

Resolves the desired configuration of an operator-managed Prometheus from
externally hosted repository index documents and reconciles it against the
cluster:

- federation match patterns merged across indexes
- one remote-write target per index (Dex or token-refresher auth)
- basic-auth federation credentials from the Grafana datasources secret
- compare-and-update of only the fields promsync owns

Example usage:
    from promsync import PrometheusReconciler, HttpResourceFetcher
    from promsync.config import get_config

    config = get_config()
    reconciler = PrometheusReconciler(
        config, HttpResourceFetcher.from_config(config), custom_api, core_api
    )
    result = reconciler.reconcile(cr, indexes)
"""

__version__ = "0.1.0"
__all__ = [
    "DesiredStateAssembler",
    "HttpResourceFetcher",
    "PrometheusReconciler",
    "ReconcileApplier",
    "__version__",
]


# Lazy imports to avoid loading the kubernetes client at import time
def __getattr__(name: str):
    if name == "DesiredStateAssembler":
        from promsync.assembler import DesiredStateAssembler
        return DesiredStateAssembler
    if name == "HttpResourceFetcher":
        from promsync.fetcher import HttpResourceFetcher
        return HttpResourceFetcher
    if name == "PrometheusReconciler":
        from promsync.reconciler import PrometheusReconciler
        return PrometheusReconciler
    if name == "ReconcileApplier":
        from promsync.applier import ReconcileApplier
        return ReconcileApplier
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
