"""Prometheus metrics for the controller."""

from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram


logger = structlog.get_logger(__name__)


class FeederMetrics:
    """Counters and histograms on a private registry.

    A private registry keeps several controllers (and tests) from
    colliding on the process-wide default one.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.remote_retries = Counter(
            "feeder_remote_call_retries_total",
            "Remote calls retried after a transient failure",
            ["site"],
            registry=self.registry
        )
        self.remote_exhausted = Counter(
            "feeder_remote_call_exhausted_total",
            "Remote calls that failed every attempt",
            ["site"],
            registry=self.registry
        )
        self.transfers = Counter(
            "feeder_transfers_total",
            "Transfers dispatched to outputs",
            ["kind"],
            registry=self.registry
        )
        self.cycles = Counter(
            "feeder_cycles_total",
            "Control loop cycles by outcome",
            ["outcome"],
            registry=self.registry
        )
        self.dispatch_duration = Histogram(
            "feeder_dispatch_duration_seconds",
            "Time spent dispatching one cycle",
            registry=self.registry
        )

    def record_retry(self, site: str) -> None:
        self.remote_retries.labels(site=site).inc()

    def record_exhausted(self, site: str) -> None:
        self.remote_exhausted.labels(site=site).inc()

    def record_transfer(self, kind: str) -> None:
        self.transfers.labels(kind=kind).inc()

    def record_cycle(self, outcome: str) -> None:
        self.cycles.labels(outcome=outcome).inc()

    def value(self, name: str, **labels) -> float:
        """Current sample value, 0.0 when the series does not exist yet."""
        sample = self.registry.get_sample_value(name, labels or None)
        return sample or 0.0

    def serve(self, port: int) -> None:
        """Expose the registry over HTTP."""
        from prometheus_client import start_http_server
        start_http_server(port, registry=self.registry)
        logger.info("metrics_server_started", port=port)
