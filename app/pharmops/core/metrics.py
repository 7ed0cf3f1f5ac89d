from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.pharmops.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._rbac_denied_total = None
        self._cleanup_runs_total = None
        self._cleanup_restored_total = None
        self._cleanup_skipped_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._rbac_denied_total = Counter(
            "rbac_denied_total",
            "RBAC permission denied decisions.",
            registry=self._registry,
        )
        self._cleanup_runs_total = Counter(
            "expired_sale_cleanup_runs_total",
            "Expired sale cleanup sweeps by mode and outcome.",
            ["mode", "outcome"],
            registry=self._registry,
        )
        self._cleanup_restored_total = Counter(
            "expired_sale_restored_total",
            "Expired sales whose reserved stock was restored and which were retired.",
            ["mode"],
            registry=self._registry,
        )
        self._cleanup_skipped_total = Counter(
            "expired_sale_skipped_total",
            "Expired sales left in place after a recoverable failure.",
            ["mode"],
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_rbac_denied(self) -> None:
        if not self.enabled:
            return
        self._rbac_denied_total.inc()

    def record_cleanup_run(self, *, mode: str, outcome: str, restored: int = 0, skipped: int = 0) -> None:
        if not self.enabled:
            return
        self._cleanup_runs_total.labels(mode=mode, outcome=outcome).inc()
        if restored:
            self._cleanup_restored_total.labels(mode=mode).inc(restored)
        if skipped:
            self._cleanup_skipped_total.labels(mode=mode).inc(skipped)

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
