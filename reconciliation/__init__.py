"""Reconciliation - storefront orders into ERP sales orders."""

from reconciliation.engine import TotalsCheck, run_order_checks, validate_totals
from reconciliation.line_items import LineItemBuilder, LinePlan
from reconciliation.reconciler import OrderReconciler
from reconciliation.service import OrderSyncService

__all__ = [
    "TotalsCheck",
    "run_order_checks",
    "validate_totals",
    "LineItemBuilder",
    "LinePlan",
    "OrderReconciler",
    "OrderSyncService",
]
