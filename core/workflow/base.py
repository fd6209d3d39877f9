"""Base result types and collaborator protocols for order reconciliation."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Protocol

from core.observability.logging import get_logger


logger = get_logger(__name__)


class ReconcileStatus(str, Enum):
    """Outcome of reconciling one order."""
    CREATED = "CREATED"                 # New ERP sales order created
    ALREADY_SYNCED = "ALREADY_SYNCED"   # External id already present; nothing created
    FAILED = "FAILED"


@dataclass
class ReconcileResult:
    """Standard result structure for one storefront order."""
    order_id: str
    status: ReconcileStatus
    started_at: datetime
    completed_at: Optional[datetime] = None

    external_id: Optional[str] = None

    # ERP results
    erp_order_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_created: bool = False
    customer_match: Optional[str] = None

    # Totals validation
    totals: Dict[str, Any] = field(default_factory=dict)
    totals_valid: Optional[bool] = None

    # Non-fatal issues (total mismatch, folded amounts, status update failure)
    warnings: List[str] = field(default_factory=list)
    source_status_updated: bool = False

    # Retry / error information
    attempts: int = 1
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status in (ReconcileStatus.CREATED, ReconcileStatus.ALREADY_SYNCED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "order_id": self.order_id,
            "external_id": self.external_id,
            "success": self.success,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "erp_order_id": self.erp_order_id,
            "customer": {
                "id": self.customer_id,
                "created": self.customer_created,
                "match": self.customer_match,
            },
            "totals": self.totals,
            "totals_valid": self.totals_valid,
            "warnings": self.warnings,
            "source_status_updated": self.source_status_updated,
            "attempts": self.attempts,
            "error": {
                "code": self.error_code,
                "message": self.error_message,
                "details": self.error_details,
            } if self.error_code else None,
        }


@dataclass
class BatchResult:
    """Summary of a sequential batch run."""
    batch_id: str
    results: List[ReconcileResult] = field(default_factory=list)

    @property
    def total_orders(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total_orders - self.successful

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "total_orders": self.total_orders,
            "successful": self.successful,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# External Collaborators
# =============================================================================

class FailureNotifier(Protocol):
    """Receives terminal reconciliation failures (email, chat, pager...)."""

    def notify_failure(self, order_id: str, attempts: int, error: BaseException) -> None:
        ...


class SourceStatusUpdater(Protocol):
    """Marks an order's status on the storefront after it reaches the ERP."""

    def update_order_status(self, order_id: str, status_id: int, comments: str = "") -> None:
        ...


class LoggingNotifier:
    """FailureNotifier that writes an ERROR log entry.

    The most recent ``history`` notifications are kept for inspection.
    """

    def __init__(self, history: int = 100):
        self.notifications: Deque[Dict[str, Any]] = deque(maxlen=history)

    def notify_failure(self, order_id: str, attempts: int, error: BaseException) -> None:
        payload = {
            "order_id": order_id,
            "attempts": attempts,
            "error_type": type(error).__name__,
            "error": str(error),
        }
        self.notifications.append(payload)
        logger.error(f"Order {order_id} failed after {attempts} attempt(s): {error}", extra_fields=payload)
