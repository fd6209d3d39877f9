"""Order checks run before a sales order is created.

Exposes high-level functions:
- validate_totals(order) -> TotalsCheck
- run_order_checks(order) -> List[CheckResult]

Totals checks never block creation: a mismatch between the storefront's
final amount and the recomputed amount is reported as a warning so that an
operator can look at it, and the order is still synchronized.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from core.models.canonical import SourceOrder
from core.observability.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Configuration & Data Structures
# =============================================================================

AMOUNT_TOLERANCE = Decimal("0.01")


class Severity(str, Enum):
    BLOCK = "BLOCK"
    WARN = "WARN"
    INFO = "INFO"


class CheckStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


class CheckResult:
    """Result of a single order check."""

    def __init__(
        self,
        check_id: str,
        severity: Severity,
        passed: bool,
        message: str,
        evidence: Optional[Dict] = None,
    ):
        self.check_id = check_id
        self.severity = severity
        self.passed = passed
        self.message = message
        self.evidence = evidence or {}

    @property
    def status(self) -> CheckStatus:
        if self.passed:
            return CheckStatus.PASS
        return CheckStatus.FAIL if self.severity == Severity.BLOCK else CheckStatus.WARN

    def to_dict(self) -> Dict:
        return {
            "check_id": self.check_id,
            "severity": self.severity.value,
            "status": self.status.value,
            "passed": self.passed,
            "message": self.message,
            "evidence": self.evidence,
        }


@dataclass(frozen=True)
class TotalsCheck:
    """Recomputed order total compared against the storefront's amount.

    ``calculated_total = items_subtotal + tax + shipping - discount``
    """
    items_subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    calculated_total: Decimal
    expected_total: Decimal
    difference: Decimal
    tolerance: Decimal
    is_valid: bool

    def to_dict(self) -> Dict[str, str]:
        return {
            "items_subtotal": str(self.items_subtotal),
            "tax": str(self.tax),
            "shipping": str(self.shipping),
            "discount": str(self.discount),
            "calculated_total": str(self.calculated_total),
            "expected_total": str(self.expected_total),
            "difference": str(self.difference),
            "is_valid": self.is_valid,
        }


# =============================================================================
# Utility Functions
# =============================================================================

def to_decimal(value) -> Optional[Decimal]:
    """Convert value to Decimal."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def amounts_match(
    a: Optional[Decimal],
    b: Optional[Decimal],
    tolerance: Decimal = AMOUNT_TOLERANCE,
) -> bool:
    """Check if two amounts match within tolerance."""
    if a is None or b is None:
        return False
    return abs(a - b) <= tolerance


# =============================================================================
# Checks
# =============================================================================

def validate_totals(order: SourceOrder, tolerance: Decimal = AMOUNT_TOLERANCE) -> TotalsCheck:
    """Recompute the order total from its parts.

    Args:
        order: Storefront order
        tolerance: Maximum absolute difference still considered a match

    Returns:
        TotalsCheck (``is_valid`` False on mismatch; never raises)
    """
    subtotal = order.items_subtotal
    calculated = subtotal + order.tax + order.shipping_cost - order.discount
    difference = calculated - order.amount
    is_valid = amounts_match(calculated, order.amount, tolerance)

    check = TotalsCheck(
        items_subtotal=subtotal,
        tax=order.tax,
        shipping=order.shipping_cost,
        discount=order.discount,
        calculated_total=calculated,
        expected_total=order.amount,
        difference=difference,
        tolerance=tolerance,
        is_valid=is_valid,
    )

    if not is_valid:
        logger.warning(
            f"Order {order.order_id} totals mismatch: calculated {calculated} "
            f"vs expected {order.amount} (difference {difference})",
            extra_fields={"totals": check.to_dict()},
        )
    return check


def check_t1_totals(order: SourceOrder, tolerance: Decimal = AMOUNT_TOLERANCE) -> CheckResult:
    """T1: Recomputed total matches the storefront amount."""
    totals = validate_totals(order, tolerance)
    if totals.is_valid:
        return CheckResult("T1", Severity.WARN, True, "Order totals match", totals.to_dict())
    return CheckResult(
        "T1",
        Severity.WARN,
        False,
        f"Order total mismatch: calculated {totals.calculated_total}, "
        f"expected {totals.expected_total} (difference {totals.difference})",
        totals.to_dict(),
    )


def check_t2_has_products(order: SourceOrder) -> CheckResult:
    """T2: Order carries at least one product line."""
    if order.items:
        return CheckResult("T2", Severity.BLOCK, True, f"{len(order.items)} product line(s)")
    return CheckResult("T2", Severity.BLOCK, False, "Order has no product lines")


def run_order_checks(order: SourceOrder, tolerance: Decimal = AMOUNT_TOLERANCE) -> List[CheckResult]:
    """Run all pre-creation checks for an order."""
    return [
        check_t1_totals(order, tolerance),
        check_t2_has_products(order),
    ]
