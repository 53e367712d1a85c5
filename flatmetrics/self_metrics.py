"""Self-monitoring metrics for the exporter."""
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry


class SelfMetrics:
    """Exporter activity, registered on the registry it serves."""

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            registry = CollectorRegistry()

        self.scrapes_total = Counter(
            f"{prefix}scrapes_total",
            "Total number of scrapes served",
            ["status"],
            registry=registry
        )

        self.encode_duration_seconds = Histogram(
            f"{prefix}encode_duration_seconds",
            "Time spent collecting and encoding a snapshot",
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
            registry=registry
        )

        self.exported_keys = Gauge(
            f"{prefix}exported_keys",
            "Number of keys in the last encoded document",
            registry=registry
        )

    def record_scrape(self, status: str):
        """Record a served scrape."""
        self.scrapes_total.labels(status=status).inc()

    def record_encode_duration(self, duration: float):
        """Record encode duration."""
        self.encode_duration_seconds.observe(duration)

    def set_exported_keys(self, count: int):
        """Set exported key count."""
        self.exported_keys.set(count)
