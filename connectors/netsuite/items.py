"""NetSuite item lookups.

Product lines reference an ERP item found by exact SKU match, falling back to
a configured default item. Synthetic tax/shipping/discount lines reference
configured item ids that are validated before use so that one bad reference
cannot make NetSuite reject the whole order.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from connectors.erp_base import ERPTransport
from connectors.netsuite.ns_models import NSItemRecord
from connectors.netsuite.suiteql import quote_literal
from core.errors import AuthenticationError, ItemReferenceError, NotFoundError, OrderSyncError

logger = logging.getLogger(__name__)


@dataclass
class ItemValidation:
    """Result of checking an item reference."""
    item_id: int
    exists: bool
    usable: bool = False
    item_name: Optional[str] = None
    error: Optional[str] = None


class ItemCatalog:
    """Item lookups with a per-instance cache.

    Create one catalog per reconciliation so that item state is re-read on
    every pass.
    """

    def __init__(self, transport: ERPTransport, default_item_id: int):
        self.transport = transport
        self.default_item_id = default_item_id
        self._sku_cache: Dict[str, int] = {}
        self._validation_cache: Dict[int, ItemValidation] = {}

    def find_item_id(self, sku: str) -> int:
        """ERP item id for a storefront SKU (exact match), or the default item."""
        if sku in self._sku_cache:
            return self._sku_cache[sku]

        item_id = self.default_item_id
        try:
            rows = self.transport.run_query(
                f"SELECT id, itemid FROM item WHERE itemid = {quote_literal(sku)}"
            )
        except AuthenticationError:
            raise
        except OrderSyncError as e:
            logger.error(f"Item search failed for SKU {sku!r}, using default item {item_id}: {e}")
            rows = []

        if rows:
            item_id = int(rows[0]["id"])
            logger.debug(f"SKU {sku!r} -> NetSuite item {item_id}")
        else:
            logger.warning(
                f"No NetSuite item matches SKU {sku!r}; using default item {self.default_item_id}"
            )

        self._sku_cache[sku] = item_id
        return item_id

    def validate_item(self, item_id: int) -> ItemValidation:
        """Check that an item exists, is active and is a sale item."""
        if item_id in self._validation_cache:
            return self._validation_cache[item_id]

        try:
            record = NSItemRecord.model_validate(self.transport.get_record("item", item_id))
            validation = ItemValidation(
                item_id=item_id,
                exists=True,
                usable=record.usable,
                item_name=record.itemid or record.displayname,
                error=None if record.usable else "Item is inactive or not a sale item",
            )
        except NotFoundError:
            validation = ItemValidation(item_id=item_id, exists=False, error="Item does not exist")
        except AuthenticationError:
            raise
        except OrderSyncError as e:
            validation = ItemValidation(item_id=item_id, exists=False, error=str(e))

        self._validation_cache[item_id] = validation
        return validation

    def require_usable(self, item_id: int) -> ItemValidation:
        """Validate an item reference.

        Raises:
            ItemReferenceError: If the item is missing or unusable
        """
        validation = self.validate_item(item_id)
        if not (validation.exists and validation.usable):
            raise ItemReferenceError(
                f"Item {item_id} cannot be referenced: {validation.error}",
                item_id=item_id,
                reason=validation.error or "",
            )
        return validation
