"""
Order Reconciliation Tests

Validates one-order reconciliation end to end against a fake transport:
1. Totals invariant (order 1057113: 8581.99 - 1803.34 = 6778.65)
2. Idempotence: reconciling twice creates one sales order
3. Sales order payload shape (header, lines, shipping address)
4. Unusable tax/shipping/discount items fold onto the header and memo
5. Storefront status write-back never fails the order
"""

from dataclasses import replace
from decimal import Decimal
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def reconciler(fake_transport, mapping, processing):
    from reconciliation.reconciler import OrderReconciler
    return OrderReconciler(fake_transport, mapping, processing)


def sales_orders(fake_transport):
    return fake_transport.created_of("salesOrder")


class TestTotals:
    """validate_totals"""

    def test_reference_order_is_valid(self, sample_order):
        """Items 8500.00 + shipping 81.99 - discount 1803.34 = 6778.65."""
        from reconciliation.engine import validate_totals

        totals = validate_totals(sample_order)

        assert totals.items_subtotal == Decimal("8500.00")
        assert totals.calculated_total == Decimal("6778.65")
        assert totals.expected_total == Decimal("6778.65")
        assert totals.difference == 0
        assert totals.is_valid is True

    def test_option_price_is_additive(self, order_payload):
        from core.models.canonical import SourceOrder

        order_payload["OrderItemList"][0].update({"ItemQuantity": 3, "ItemUnitPrice": "10.10", "ItemOptionPrice": "0.05"})
        order = SourceOrder.from_payload(order_payload)

        assert order.items[0].line_total == Decimal("30.45")

    def test_within_tolerance(self, order_payload):
        from core.models.canonical import SourceOrder
        from reconciliation.engine import validate_totals

        order_payload["OrderAmount"] = "6778.66"
        assert validate_totals(SourceOrder.from_payload(order_payload)).is_valid is True

    def test_mismatch_detected(self, order_payload):
        from core.models.canonical import SourceOrder
        from reconciliation.engine import validate_totals

        order_payload["OrderAmount"] = "6800.00"
        totals = validate_totals(SourceOrder.from_payload(order_payload))

        assert totals.is_valid is False
        assert totals.difference == Decimal("-21.35")

    def test_order_checks(self, sample_order):
        from reconciliation.engine import CheckStatus, run_order_checks

        checks = {c.check_id: c for c in run_order_checks(sample_order)}
        assert checks["T1"].status == CheckStatus.PASS
        assert checks["T2"].status == CheckStatus.PASS
        assert checks["T1"].to_dict()["evidence"]["calculated_total"] == "6778.65"


class TestReconcile:
    """OrderReconciler.reconcile"""

    def test_creates_sales_order(self, reconciler, fake_transport, sample_order):
        from core.workflow.base import ReconcileStatus

        result = reconciler.reconcile(sample_order)

        assert result.status == ReconcileStatus.CREATED
        assert result.success is True
        assert result.external_id == "3DCART_1057113"
        assert result.customer_id == "5001"
        assert result.customer_created is True
        assert result.erp_order_id == "5002"
        assert result.totals_valid is True
        assert len(sales_orders(fake_transport)) == 1

    def test_sales_order_header(self, reconciler, fake_transport, sample_order):
        reconciler.reconcile(sample_order)
        payload = sales_orders(fake_transport)[0]

        assert payload["entity"] == {"id": 5001}
        assert payload["subsidiary"] == {"id": "1"}
        assert payload["department"] == {"id": "3"}
        assert payload["istaxable"] is False
        assert payload["tranDate"] == "2024-03-15"
        assert payload["externalId"] == "3DCART_1057113"
        assert payload["memo"].startswith("Order imported from 3DCart - Order #1057113")
        assert payload["otherrefnum"] == "PO-7781"
        assert payload["custbody2"] == "Leave at dock 4"

    def test_shipping_address(self, reconciler, fake_transport, sample_order):
        reconciler.reconcile(sample_order)
        address = sales_orders(fake_transport)[0]["shippingAddress"]

        assert address == {
            "addressee": "Sam Ortiz",
            "addrphone": "303-555-0199",
            "addr1": "9 Elm Rd",
            "city": "Denver",
            "state": "CO",
            "zip": "80202",
            "country": "US",
        }

    def test_shipping_addressee_includes_company(self, reconciler, fake_transport, order_payload):
        from core.models.canonical import SourceOrder

        order_payload["ShipmentList"][0]["ShipmentCompany"] = "Ortiz Ranch"
        order_payload["ShipmentList"][0]["ShipmentCountry"] = ""
        reconciler.reconcile(SourceOrder.from_payload(order_payload))
        address = sales_orders(fake_transport)[0]["shippingAddress"]

        assert address["addressee"] == "Sam Ortiz\nOrtiz Ranch"
        assert address["country"] == "US"

    def test_product_line_uses_default_item(self, reconciler, fake_transport, sample_order):
        """Unknown SKU -> default item; rate is unit + option price."""
        reconciler.reconcile(sample_order)
        lines = sales_orders(fake_transport)[0]["item"]["items"]

        assert lines == [{"item": {"id": 14238}, "quantity": 2, "rate": 4250, "istaxable": False}]
        assert any("itemid = 'SKU-100'" in q for q in fake_transport.queries)

    def test_product_line_uses_sku_match(self, reconciler, fake_transport, sample_order):
        fake_transport.on_query("FROM item", [{"id": "321", "itemid": "SKU-100"}])
        reconciler.reconcile(sample_order)

        assert sales_orders(fake_transport)[0]["item"]["items"][0]["item"] == {"id": 321}

    def test_total_mismatch_warns_but_creates(self, reconciler, fake_transport, order_payload):
        from core.models.canonical import SourceOrder
        from core.workflow.base import ReconcileStatus

        order_payload["OrderAmount"] = "7000.00"
        result = reconciler.reconcile(SourceOrder.from_payload(order_payload))

        assert result.status == ReconcileStatus.CREATED
        assert result.totals_valid is False
        assert any("Total mismatch" in w for w in result.warnings)

    def test_no_product_lines_rejected(self, reconciler, fake_transport, order_payload):
        from core.errors import ValidationError
        from core.models.canonical import SourceOrder

        order_payload["OrderItemList"] = []
        with pytest.raises(ValidationError):
            reconciler.reconcile(SourceOrder.from_payload(order_payload))
        assert sales_orders(fake_transport) == []

    def test_create_failure_raises(self, reconciler, fake_transport, sample_order):
        from core.errors import ValidationError

        fake_transport.on_query("LOWER(companyName)", [{"id": "77"}])
        fake_transport.create_errors.append(ValidationError("Invalid field value", 400))
        with pytest.raises(ValidationError):
            reconciler.reconcile(sample_order)


class TestIdempotence:
    """External id check before every creation."""

    def test_already_synced_creates_nothing(self, reconciler, fake_transport, sample_order):
        from core.workflow.base import ReconcileStatus

        fake_transport.on_query("FROM transaction", [{"id": "9001", "tranid": "SO9001", "externalid": "3DCART_1057113"}])
        fake_transport.on_query("LOWER(companyName)", [{"id": "77"}])

        result = reconciler.reconcile(sample_order)

        assert result.status == ReconcileStatus.ALREADY_SYNCED
        assert result.success is True
        assert result.erp_order_id == "9001"
        assert fake_transport.created == []

    def test_reconciling_twice_creates_one_order(self, reconciler, fake_transport, sample_order):
        """Second pass sees the first pass's order and customer."""
        from core.workflow.base import ReconcileStatus

        def existing_orders(query):
            return [
                {"id": "5002", "externalid": "3DCART_1057113"}
            ] if sales_orders(fake_transport) else []

        def existing_companies(query):
            return [{"id": "5001"}] if fake_transport.created_of("customer") else []

        fake_transport.on_query("FROM transaction", existing_orders)
        fake_transport.on_query("LOWER(companyName)", existing_companies)

        first = reconciler.reconcile(sample_order)
        second = reconciler.reconcile(sample_order)

        assert first.status == ReconcileStatus.CREATED
        assert second.status == ReconcileStatus.ALREADY_SYNCED
        assert second.erp_order_id == first.erp_order_id
        assert len(sales_orders(fake_transport)) == 1
        assert len(fake_transport.created_of("customer")) == 1

    def test_degraded_sync_check_proceeds(self, reconciler, fake_transport, sample_order):
        from core.errors import TransportError
        from core.workflow.base import ReconcileStatus

        fake_transport.on_query("FROM transaction", TransportError("query timed out"))
        result = reconciler.reconcile(sample_order)

        assert result.status == ReconcileStatus.CREATED
        assert any("Sync check failed" in w for w in result.warnings)


class TestFoldedAmounts:
    """Tax/shipping/discount lines and the fold path."""

    def test_amounts_folded_by_default(self, reconciler, fake_transport, sample_order):
        """Line flags off -> header fields plus memo notes."""
        reconciler.reconcile(sample_order)
        payload = sales_orders(fake_transport)[0]

        assert payload["discountTotal"] == 1803.34
        assert payload["shippingCost"] == 81.99
        assert "Discount: $1803.34" in payload["memo"]
        assert "Shipping: $81.99" in payload["memo"]
        assert len(payload["item"]["items"]) == 1

    def test_discount_line_when_item_usable(self, fake_transport, mapping, sample_order):
        from reconciliation.reconciler import OrderReconciler

        fake_transport.items[4] = {"id": "4", "itemId": "DISCOUNT", "isInactive": False, "isSaleItem": True}
        reconciler = OrderReconciler(fake_transport, replace(mapping, include_discount_as_line_item=True))

        reconciler.reconcile(sample_order)
        payload = sales_orders(fake_transport)[0]

        assert {"item": {"id": 4}, "quantity": 1, "rate": -1803.34, "istaxable": False} in payload["item"]["items"]
        assert "discountTotal" not in payload
        assert "Discount:" not in payload["memo"]

    def test_missing_discount_item_downgrades(self, fake_transport, mapping, sample_order):
        """Discount item 4 missing -> order still created with the discount visible."""
        from core.workflow.base import ReconcileStatus
        from reconciliation.reconciler import OrderReconciler

        reconciler = OrderReconciler(fake_transport, replace(mapping, include_discount_as_line_item=True))
        result = reconciler.reconcile(sample_order)
        payload = sales_orders(fake_transport)[0]

        assert result.status == ReconcileStatus.CREATED
        assert payload["discountTotal"] == 1803.34
        assert "Discount: $1803.34" in payload["memo"]
        assert all(line["item"]["id"] != 4 for line in payload["item"]["items"])
        assert any("Discount item 4" in w for w in result.warnings)

    def test_inactive_shipping_item_folds(self, fake_transport, mapping, sample_order):
        from reconciliation.reconciler import OrderReconciler

        fake_transport.items[3] = {"id": "3", "isInactive": True, "isSaleItem": True}
        reconciler = OrderReconciler(fake_transport, replace(mapping, include_shipping_as_line_item=True))
        reconciler.reconcile(sample_order)

        assert sales_orders(fake_transport)[0]["shippingCost"] == 81.99

    def test_tax_line(self, fake_transport, mapping, order_payload):
        from core.models.canonical import SourceOrder
        from reconciliation.line_items import LineItemBuilder

        order_payload["SalesTax"] = "12.50"
        fake_transport.items[2] = {"id": "2", "isinactive": "F", "issaleitem": "T"}
        builder = LineItemBuilder(fake_transport, replace(mapping, include_tax_as_line_item=True))

        plan = builder.build(SourceOrder.from_payload(order_payload))

        assert {"item": {"id": 2}, "quantity": 1, "rate": 12.5, "istaxable": False} in plan.items
        assert "tax" not in plan.folded

    def test_folded_tax_only_in_memo(self, fake_transport, mapping, order_payload):
        from core.models.canonical import SourceOrder
        from reconciliation.line_items import LineItemBuilder

        order_payload["SalesTax"] = "12.50"
        plan = LineItemBuilder(fake_transport, mapping).build(SourceOrder.from_payload(order_payload))

        assert plan.folded["tax"] == Decimal("12.50")
        assert "Sales tax: $12.50" in plan.notes
        assert set(plan.header_fields) == {"discountTotal", "shippingCost"}

    def test_item_reference_error(self, fake_transport, mapping):
        from core.errors import ItemReferenceError
        from reconciliation.line_items import LineItemBuilder

        builder = LineItemBuilder(fake_transport, mapping)
        with pytest.raises(ItemReferenceError) as exc_info:
            builder.validate_item_reference(4)
        assert exc_info.value.item_id == 4
        assert builder.validate_item(4).exists is False


class TestSourceStatusUpdate:
    """Storefront write-back after creation."""

    def test_status_updated_after_create(self, fake_transport, mapping, processing, sample_order):
        from reconciliation.reconciler import OrderReconciler

        updater = MagicMock()
        result = OrderReconciler(fake_transport, mapping, processing, status_updater=updater).reconcile(sample_order)

        updater.update_order_status.assert_called_once_with("1057113", 2, "Order synchronized to NetSuite")
        assert result.source_status_updated is True

    def test_status_update_failure_is_logged_only(self, fake_transport, mapping, processing, sample_order):
        from core.errors import TransportError
        from core.workflow.base import ReconcileStatus
        from reconciliation.reconciler import OrderReconciler

        updater = MagicMock()
        updater.update_order_status.side_effect = TransportError("3DCart down")
        result = OrderReconciler(fake_transport, mapping, processing, status_updater=updater).reconcile(sample_order)

        assert result.status == ReconcileStatus.CREATED
        assert result.source_status_updated is False
        assert any("3DCart down" in w for w in result.warnings)

    def test_not_updated_when_already_synced(self, fake_transport, mapping, processing, sample_order):
        from reconciliation.reconciler import OrderReconciler

        fake_transport.on_query("FROM transaction", [{"id": "9001", "externalid": "3DCART_1057113"}])
        updater = MagicMock()
        OrderReconciler(fake_transport, mapping, processing, status_updater=updater).reconcile(sample_order)

        updater.update_order_status.assert_not_called()

    def test_disabled_by_setting(self, fake_transport, mapping, processing, sample_order):
        from reconciliation.reconciler import OrderReconciler

        updater = MagicMock()
        settings = replace(processing, update_source_status=False)
        OrderReconciler(fake_transport, mapping, settings, status_updater=updater).reconcile(sample_order)

        updater.update_order_status.assert_not_called()
