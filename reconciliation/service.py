"""Order sync service - retry-wrapped reconciliation and sequential batches.

Usage:
    config = load_config()
    service = OrderSyncService.from_config(config)
    batch = service.process_batch(raw_orders)
    print(batch.successful, batch.failed)
"""

import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Union

from connectors.erp_base import ERPTransport
from core.config import SyncConfig
from core.errors import OrderSyncError, ValidationError, error_code
from core.models.canonical import SourceOrder
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import (
    record_order_already_synced,
    record_order_created,
    record_order_failed,
    record_order_started,
)
from core.workflow.base import (
    BatchResult,
    FailureNotifier,
    LoggingNotifier,
    ReconcileResult,
    ReconcileStatus,
    SourceStatusUpdater,
)
from core.workflow.retry import RetryCoordinator, RetryPolicy
from reconciliation.reconciler import OrderReconciler


logger = get_logger(__name__)


OrderInput = Union[SourceOrder, Dict[str, Any]]


class OrderSyncService:
    """Processes storefront orders with retries and failure notification."""

    def __init__(
        self,
        reconciler: OrderReconciler,
        retry: Optional[RetryCoordinator] = None,
        batch_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the service.

        Args:
            reconciler: Runs one reconciliation attempt
            retry: Retry coordinator (3 attempts, 5s apart, logging notifier by default)
            batch_delay: Seconds to wait between orders in a batch
            sleep: Blocking sleep, injectable for tests
        """
        self.reconciler = reconciler
        self.retry = retry or RetryCoordinator(RetryPolicy(sleep=sleep), LoggingNotifier())
        self.batch_delay = batch_delay
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        transport: Optional[ERPTransport] = None,
        status_updater: Optional[SourceStatusUpdater] = None,
        notifier: Optional[FailureNotifier] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "OrderSyncService":
        """Wire a service from configuration.

        A NetSuite client and a 3DCart client are created from the settings
        unless given.
        """
        if transport is None:
            from connectors.netsuite.ns_client import NSClient
            transport = NSClient.from_settings(config.netsuite)

        if status_updater is None and config.storefront.is_configured:
            from connectors.storefront.tdc_client import ThreeDCartClient
            status_updater = ThreeDCartClient(config.storefront)

        reconciler = OrderReconciler(
            transport,
            config.mapping,
            config.processing,
            status_updater=status_updater,
        )
        policy = RetryPolicy(
            max_attempts=config.processing.retry_attempts,
            delay_seconds=config.processing.retry_delay,
            sleep=sleep,
        )
        return cls(
            reconciler,
            retry=RetryCoordinator(policy, notifier or LoggingNotifier()),
            batch_delay=config.processing.batch_delay,
            sleep=sleep,
        )

    def process_order(self, order: OrderInput) -> ReconcileResult:
        """Reconcile one order with retries.

        Never raises for sync failures: the returned result carries
        ``success``, ``status``, ``error_code``, ``error_message`` and
        ``attempts``.
        """
        started_at = datetime.utcnow()

        if not isinstance(order, SourceOrder):
            raw_id = str(order.get("OrderID", "")) if isinstance(order, dict) else ""
            try:
                order = SourceOrder.from_payload(order)
            except ValidationError as e:
                logger.error(f"Rejected order {raw_id or 'N/A'}: {e}")
                record_order_failed(raw_id, e.code)
                return self._failed_result(raw_id, started_at, e, attempts=0)

        record_order_started(order.order_id)
        start = time.monotonic()

        with with_correlation(order_id=order.order_id):
            outcome = self.retry.with_retry(
                lambda: self.reconciler.reconcile(order),
                operation="reconcile",
                subject_id=order.order_id,
            )

        if not outcome.success:
            record_order_failed(order.order_id, error_code(outcome.error))
            result = self._failed_result(order.order_id, started_at, outcome.error, outcome.attempts)
            result.external_id = self.reconciler.mapping.external_id(order.order_id)
            return result

        result = outcome.value
        result.started_at = started_at
        result.attempts = outcome.attempts
        if result.status == ReconcileStatus.ALREADY_SYNCED:
            record_order_already_synced(order.order_id)
        else:
            record_order_created(order.order_id, (time.monotonic() - start) * 1000)
        return result

    def process_batch(self, orders: Iterable[OrderInput], batch_id: Optional[str] = None) -> BatchResult:
        """Process orders one at a time, pausing ``batch_delay`` between them."""
        batch = BatchResult(batch_id=batch_id or f"batch-{uuid.uuid4().hex[:12]}")

        with with_correlation(batch_id=batch.batch_id):
            for index, order in enumerate(orders):
                if index and self.batch_delay > 0:
                    self.sleep(self.batch_delay)
                batch.results.append(self.process_order(order))

            logger.info(
                f"Batch complete: {batch.successful}/{batch.total_orders} succeeded, {batch.failed} failed",
                extra_fields={"total_orders": batch.total_orders},
            )
        return batch

    @staticmethod
    def _failed_result(
        order_id: str,
        started_at: datetime,
        error: Optional[BaseException],
        attempts: int,
    ) -> ReconcileResult:
        details: Dict[str, Any] = {}
        if isinstance(error, OrderSyncError):
            details = error.to_dict()
        return ReconcileResult(
            order_id=order_id,
            status=ReconcileStatus.FAILED,
            started_at=started_at,
            completed_at=datetime.utcnow(),
            attempts=attempts,
            error_code=error_code(error) if error else None,
            error_message=str(error) if error else None,
            error_details=details,
        )
