# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Prometheus Metrics Integration.

Enrollment runs are short-lived processes, so metrics live in a private
CollectorRegistry and are written out with the textfile collector format
instead of being served over HTTP.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile


class EnrollmentMetrics:
    """Prometheus metrics for enrollment runs.

    Exposes metrics:
    - idwallet_enrollment_total{outcome="done|already_enrolled|failed"}
    - idwallet_enrollment_failures_total{kind="..."}
    - idwallet_ca_request_duration_seconds

    Args:
        registry: Registry to register into. A fresh one is created when
            omitted so several instances can coexist.
        prefix: Metric name prefix. Defaults to ``idwallet``.
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        prefix: str = "idwallet",
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self.enrollment_total = Counter(
            f"{prefix}_enrollment_total",
            "Enrollment workflow runs by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.enrollment_failures = Counter(
            f"{prefix}_enrollment_failures_total",
            "Failed enrollment workflow runs by error kind",
            ["kind"],
            registry=self.registry,
        )
        self.ca_request_duration = Histogram(
            f"{prefix}_ca_request_duration_seconds",
            "CA enrollment request latency in seconds",
            registry=self.registry,
        )

    def record_outcome(self, outcome: str, error_kind: Optional[str] = None) -> None:
        """Record the terminal state of a workflow run."""
        self.enrollment_total.labels(outcome=outcome).inc()
        if error_kind:
            self.enrollment_failures.labels(kind=error_kind).inc()

    def record_ca_request(self, duration_seconds: float) -> None:
        self.ca_request_duration.observe(duration_seconds)

    def write_textfile(self, path: str) -> None:
        """Write all metrics to ``path`` for the node exporter textfile collector."""
        write_to_textfile(path, self.registry)
