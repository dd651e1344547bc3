"""Prometheus metrics for upstream calls and caches."""

from prometheus_client import Counter, Histogram

upstream_latency_ms = Histogram(
    "upstream_latency_ms",
    "Upstream call latency in milliseconds",
    ["service", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 16000],
)

upstream_errors_total = Counter(
    "upstream_errors_total",
    "Total upstream call errors",
    ["service", "reason"],
)

cache_hits_total = Counter(
    "cache_hits_total",
    "Total cache hits",
    ["cache"],
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total cache misses",
    ["cache"],
)


class UpstreamMetrics:
    """Interface for upstream metrics (no-op default)."""

    def record_latency(self, service: str, outcome: str, latency_ms: float) -> None:
        """Record upstream call latency."""
        pass

    def inc_error(self, service: str, reason: str) -> None:
        """Increment error counter."""
        pass

    def inc_cache_hit(self, cache: str) -> None:
        """Increment cache hit counter."""
        pass

    def inc_cache_miss(self, cache: str) -> None:
        """Increment cache miss counter."""
        pass


class PrometheusUpstreamMetrics(UpstreamMetrics):
    """Prometheus-based upstream metrics implementation."""

    def record_latency(self, service: str, outcome: str, latency_ms: float) -> None:
        upstream_latency_ms.labels(service=service, outcome=outcome).observe(latency_ms)

    def inc_error(self, service: str, reason: str) -> None:
        upstream_errors_total.labels(service=service, reason=reason).inc()

    def inc_cache_hit(self, cache: str) -> None:
        cache_hits_total.labels(cache=cache).inc()

    def inc_cache_miss(self, cache: str) -> None:
        cache_misses_total.labels(cache=cache).inc()
