"""
Metrics Collection for the Order Sync Pipeline

Collects and exposes metrics for:
- Order lifecycle (started, created, already synced, failed)
- Retries per error code
- ERP API calls (by method and status) and their latency
- Processing times per stage (average, p95)

Metrics are held in memory for the lifetime of the process.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class OrderMetrics:
    """Metrics for order reconciliation."""
    started: int = 0
    created: int = 0
    already_synced: int = 0
    failed: int = 0
    retries: int = 0

    # Failures and retries by error code
    by_error: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class ApiMetrics:
    """Metrics for outbound ERP calls."""
    calls: int = 0
    errors: int = 0

    # "POST 204" -> count
    by_status: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        """Get average processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Get 95th percentile processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for the order sync pipeline.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_order_started("1057113")
        metrics.record_api_call("POST", 204, duration_ms=820)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.orders = OrderMetrics()
        self.api = ApiMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Order Metrics
    # =========================================================================

    def record_order_started(self, order_id: str):
        """Record the start of a reconciliation."""
        with self._lock:
            self.orders.started += 1

    def record_order_created(self, order_id: str, duration_ms: float = None):
        """Record a newly created ERP order."""
        with self._lock:
            self.orders.created += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, "order.created")

    def record_order_already_synced(self, order_id: str):
        """Record an idempotent no-op."""
        with self._lock:
            self.orders.already_synced += 1

    def record_order_failed(self, order_id: str, error_code: str = None):
        """Record a terminal reconciliation failure."""
        with self._lock:
            self.orders.failed += 1
            if error_code:
                self.orders.by_error[error_code] += 1

    def record_retry(self, operation: str, attempt: int, error_code: str = None):
        """Record a retry attempt."""
        with self._lock:
            self.orders.retries += 1
            if error_code:
                self.orders.by_error[f"retry.{error_code}"] += 1

    # =========================================================================
    # API Metrics
    # =========================================================================

    def record_api_call(self, method: str, status_code: int, duration_ms: float = None):
        """Record an ERP API call."""
        with self._lock:
            self.api.calls += 1
            if status_code == 0 or status_code >= 400:
                self.api.errors += 1
            self.api.by_status[f"{method.upper()} {status_code}"] += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, f"api.{method.upper()}")

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "orders": {
                    "started": self.orders.started,
                    "created": self.orders.created,
                    "already_synced": self.orders.already_synced,
                    "failed": self.orders.failed,
                    "retries": self.orders.retries,
                    "by_error": dict(self.orders.by_error),
                },
                "api": {
                    "calls": self.api.calls,
                    "errors": self.api.errors,
                    "by_status": dict(self.api.by_status),
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_order_started(order_id: str):
    get_metrics().record_order_started(order_id)


def record_order_created(order_id: str, duration_ms: float = None):
    get_metrics().record_order_created(order_id, duration_ms)


def record_order_already_synced(order_id: str):
    get_metrics().record_order_already_synced(order_id)


def record_order_failed(order_id: str, error_code: str = None):
    get_metrics().record_order_failed(order_id, error_code)


def record_retry(operation: str, attempt: int, error_code: str = None):
    get_metrics().record_retry(operation, attempt, error_code)


def record_api_call(method: str, status_code: int, duration_ms: float = None):
    get_metrics().record_api_call(method, status_code, duration_ms)


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
