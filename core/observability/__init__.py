"""
Observability Module for the Order Sync Pipeline

Provides:
- Structured logging with correlation IDs (order, external id, attempt)
- Metrics collection (orders, retries, ERP API calls, processing times)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_order_started,
    record_order_created,
    record_order_already_synced,
    record_order_failed,
    record_retry,
    record_api_call,
    record_processing_time,
)

from core.observability.logging import (
    configure_logging,
    get_logger,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_order_started",
    "record_order_created",
    "record_order_already_synced",
    "record_order_failed",
    "record_retry",
    "record_api_call",
    "record_processing_time",
    # Logging
    "configure_logging",
    "get_logger",
    "CorrelationContext",
    "with_correlation",
]
