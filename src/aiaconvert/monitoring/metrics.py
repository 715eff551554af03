"""
Metrics Collection
Prometheus metrics for conversion throughput and diagnostics
"""

import time

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics for the conversion service.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.registry = registry

        # Conversion metrics
        self.conversions_total = Counter(
            "aia_conversions_total",
            "Total number of project conversions",
            ["status"],
            registry=registry,
        )
        self.conversion_duration = Histogram(
            "aia_conversion_duration_seconds",
            "Project conversion duration in seconds",
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry,
        )
        self.screens_total = Counter(
            "aia_screens_total",
            "Total number of screens converted",
            ["status"],
            registry=registry,
        )
        self.diagnostics_total = Counter(
            "aia_diagnostics_total",
            "Total number of conversion diagnostics",
            ["code"],
            registry=registry,
        )

        # Error metrics
        self.errors_total = Counter(
            "aia_errors_total",
            "Total number of errors",
            ["error_type", "component"],
            registry=registry,
        )

        # System metrics
        self.uptime = Gauge(
            "aia_uptime_seconds",
            "Service uptime in seconds",
            registry=registry,
        )
        self.start_time = time.time()

    def record_conversion(self, status: str, duration: float) -> None:
        """Record a project conversion."""
        self.conversions_total.labels(status=status).inc()
        self.conversion_duration.observe(duration)

    def record_screen(self, status: str) -> None:
        self.screens_total.labels(status=status).inc()

    def record_diagnostic(self, code: str) -> None:
        self.diagnostics_total.labels(code=code).inc()

    def record_error(self, error_type: str, component: str) -> None:
        """Record an error."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def update_uptime(self) -> None:
        self.uptime.set(time.time() - self.start_time)

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        self.update_uptime()
        return generate_latest(self.registry)


# Global metrics collector instance
metrics_collector = MetricsCollector()
