"""Reference models for ERP-side records seen by the sync pipeline."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncStatus(BaseModel):
    """Whether a storefront order already exists in the ERP.

    Recomputed on every pass from a live query, never persisted.

    Attributes:
        order_id: Storefront order id
        synced: True when an ERP sales order carries the order's external id
        erp_id: ERP internal id of the sales order
        erp_tranid: ERP display number (e.g. "SO10442")
        erp_status: ERP status code/label
        erp_total: ERP order total
        sync_date: ERP transaction date
        customer_id: ERP customer (entity) id on the order
        error: Set when the status could not be determined
    """
    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., description="Storefront order id")
    synced: bool = Field(default=False)
    erp_id: Optional[str] = None
    erp_tranid: Optional[str] = None
    erp_status: Optional[str] = None
    erp_total: Optional[Decimal] = None
    sync_date: Optional[str] = None
    customer_id: Optional[str] = None
    error: Optional[str] = None
    checked_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"checked_at"})
