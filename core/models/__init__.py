"""Core data models - storefront order snapshot and ERP references.

This package contains the canonical order types that are intentionally
independent of the ERP they are synchronized into.
"""

from core.models.canonical import (
    # Base
    CanonicalBase,
    DecimalValue,
    MoneyValue,

    # Order
    SourceOrder,
    LineItem,
    BillingContact,
    Shipment,
    QuestionAnswer,
    EMAIL_QUESTION_ID,
    REFERENCE_QUESTION_ID,
)

from core.models.refs import SyncStatus

__all__ = [
    "CanonicalBase",
    "DecimalValue",
    "MoneyValue",
    "SourceOrder",
    "LineItem",
    "BillingContact",
    "Shipment",
    "QuestionAnswer",
    "EMAIL_QUESTION_ID",
    "REFERENCE_QUESTION_ID",
    "SyncStatus",
]
