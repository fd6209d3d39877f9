"""Sales order line construction.

Product lines reference ERP items found by SKU. Tax, shipping and discount
become their own lines only when configured to and when the configured item
can be referenced; otherwise the amount is folded onto the order header and
noted in the memo so that nothing disappears from the ERP record.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from connectors.erp_base import ERPTransport
from connectors.netsuite.items import ItemCatalog, ItemValidation
from core.config import OrderMappingSettings
from core.errors import ItemReferenceError, ValidationError
from core.models.canonical import LineItem, SourceOrder
from core.observability.logging import get_logger


logger = get_logger(__name__)


def to_json_number(value: Decimal):
    """int for whole numbers, float otherwise (the ERP API takes JSON numbers)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass
class LinePlan:
    """Lines and header adjustments for one sales order.

    Attributes:
        items: ERP item lines, product lines first
        header_fields: Folded amounts set on the order header
            (``discountTotal``, ``shippingCost``)
        notes: Human-readable notes for every folded amount
        folded: Amount name -> folded amount
        warnings: Item reference problems that forced a fold
    """
    items: List[Dict[str, Any]] = field(default_factory=list)
    header_fields: Dict[str, Any] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)
    folded: Dict[str, Decimal] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


class LineItemBuilder:
    """Builds the item list of a sales order.

    Create one builder per reconciliation; item lookups are cached for its
    lifetime only.
    """

    def __init__(
        self,
        transport: ERPTransport,
        mapping: OrderMappingSettings,
        catalog: Optional[ItemCatalog] = None,
    ):
        self.mapping = mapping
        self.catalog = catalog or ItemCatalog(transport, mapping.default_item_id)

    def resolve_item_id(self, sku: str) -> int:
        return self.catalog.find_item_id(sku)

    def validate_item(self, item_id: int) -> ItemValidation:
        return self.catalog.validate_item(item_id)

    def validate_item_reference(self, item_id: int) -> ItemValidation:
        """Raises ItemReferenceError when ``item_id`` cannot go on a line."""
        return self.catalog.require_usable(item_id)

    def product_line(self, item: LineItem) -> Dict[str, Any]:
        return {
            "item": {"id": self.resolve_item_id(item.item_id)},
            "quantity": to_json_number(item.quantity),
            "rate": to_json_number(item.unit_rate),
            "istaxable": self.mapping.sales_order_taxable,
        }

    def build(self, order: SourceOrder) -> LinePlan:
        """Build the line plan for an order.

        Raises:
            ValidationError: If the order has no product lines
        """
        if not order.items:
            raise ValidationError(
                f"Order {order.order_id} has no product lines",
                missing_fields=["OrderItemList"],
            )

        plan = LinePlan()
        for item in order.items:
            plan.items.append(self.product_line(item))

        self._add_amount(
            plan,
            name="tax",
            label="Sales tax",
            amount=order.tax,
            include=self.mapping.include_tax_as_line_item,
            item_id=self.mapping.tax_item_id,
            header_field=None,
        )
        self._add_amount(
            plan,
            name="shipping",
            label="Shipping",
            amount=order.shipping_cost,
            include=self.mapping.include_shipping_as_line_item,
            item_id=self.mapping.shipping_item_id,
            header_field="shippingCost",
        )
        self._add_amount(
            plan,
            name="discount",
            label="Discount",
            amount=order.discount,
            include=self.mapping.include_discount_as_line_item,
            item_id=self.mapping.discount_item_id,
            header_field="discountTotal",
            negative=True,
        )

        logger.info(
            f"Built {len(plan.items)} line(s) for order {order.order_id}",
            extra_fields={"folded": {k: str(v) for k, v in plan.folded.items()}},
        )
        return plan

    def _add_amount(
        self,
        plan: LinePlan,
        name: str,
        label: str,
        amount: Decimal,
        include: bool,
        item_id: int,
        header_field: Optional[str],
        negative: bool = False,
    ) -> None:
        if amount <= 0:
            return

        if include:
            try:
                self.validate_item_reference(item_id)
            except ItemReferenceError as e:
                logger.warning(f"{label} item {item_id} unusable, folding {amount} onto the order: {e}")
                plan.warnings.append(f"{label} item {item_id} unusable ({e.reason}); amount folded")
            else:
                plan.items.append({
                    "item": {"id": item_id},
                    "quantity": 1,
                    "rate": to_json_number(-amount if negative else amount),
                    "istaxable": False,
                })
                return

        plan.folded[name] = amount
        plan.notes.append(f"{label}: ${amount:.2f}")
        if header_field:
            plan.header_fields[header_field] = to_json_number(amount)
