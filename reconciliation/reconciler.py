"""Order reconciler - one storefront order to one ERP sales order.

The reconciler runs a single attempt end to end:
1. Recompute totals (warning only)
2. Resolve the customer
3. Check whether the order already exists in the ERP
4. Build lines, folding unusable tax/shipping/discount references
5. Create the sales order in one call
6. Optionally write the status back to the storefront

It raises on failure; retries are the caller's concern (see
reconciliation.service).
"""

import time
from datetime import datetime
from typing import Any, Dict, Optional

from connectors.erp_base import ERPTransport
from connectors.netsuite.sync_status import SyncStatusResolver
from core.config import OrderMappingSettings, ProcessingSettings
from core.models.canonical import SourceOrder
from core.observability.logging import (
    get_logger,
    log_stage_complete,
    log_stage_error,
    log_stage_start,
    with_correlation,
)
from core.observability.metrics import record_processing_time
from core.workflow.base import ReconcileResult, ReconcileStatus, SourceStatusUpdater
from customer_resolver.resolver import CustomerIdentityResolver
from reconciliation.engine import validate_totals
from reconciliation.line_items import LineItemBuilder, LinePlan


logger = get_logger(__name__)


SOURCE_SYSTEM_LABEL = "3DCart Integration"
SHIP_IMMEDIATELY = 2
DEFAULT_COUNTRY = "US"


class OrderReconciler:
    """Reconciles storefront orders into ERP sales orders.

    Usage:
        reconciler = OrderReconciler(client, config.mapping, config.processing)
        result = reconciler.reconcile(order)
        print(result.status, result.erp_order_id)
    """

    def __init__(
        self,
        transport: ERPTransport,
        mapping: OrderMappingSettings,
        processing: Optional[ProcessingSettings] = None,
        status_updater: Optional[SourceStatusUpdater] = None,
        customer_resolver: Optional[CustomerIdentityResolver] = None,
        sync_resolver: Optional[SyncStatusResolver] = None,
    ):
        """Initialize the reconciler.

        Args:
            transport: ERP transport
            mapping: Order mapping settings
            processing: Status write-back settings (defaults apply if omitted)
            status_updater: Storefront client; status write-back is skipped when None
            customer_resolver: Override the default customer resolver
            sync_resolver: Override the default sync status resolver
        """
        self.transport = transport
        self.mapping = mapping
        self.processing = processing or ProcessingSettings()
        self.status_updater = status_updater
        self.customer_resolver = customer_resolver or CustomerIdentityResolver(transport, mapping)
        self.sync_resolver = sync_resolver or SyncStatusResolver(transport, mapping.source_prefix)

    def reconcile(self, order: SourceOrder) -> ReconcileResult:
        """Run one reconciliation attempt.

        Args:
            order: Validated storefront order

        Returns:
            ReconcileResult with status CREATED or ALREADY_SYNCED

        Raises:
            OrderSyncError: Any failure (the caller decides whether to retry)
        """
        external_id = self.mapping.external_id(order.order_id)
        result = ReconcileResult(
            order_id=order.order_id,
            status=ReconcileStatus.FAILED,
            started_at=datetime.utcnow(),
            external_id=external_id,
        )
        start = time.monotonic()

        with with_correlation(order_id=order.order_id, external_id=external_id):
            # Totals never block
            totals = validate_totals(order, self.mapping.total_tolerance)
            result.totals = totals.to_dict()
            result.totals_valid = totals.is_valid
            if not totals.is_valid:
                result.warnings.append(
                    f"Total mismatch: calculated {totals.calculated_total}, "
                    f"expected {totals.expected_total} (difference {totals.difference})"
                )

            log_stage_start("customer")
            stage_start = time.monotonic()
            try:
                resolution = self.customer_resolver.resolve(order)
            except Exception as e:
                log_stage_error("customer", str(e))
                raise
            log_stage_complete("customer", (time.monotonic() - stage_start) * 1000)
            record_processing_time("customer", (time.monotonic() - stage_start) * 1000)

            result.customer_id = resolution.customer_id
            result.customer_created = resolution.created
            result.customer_match = resolution.match_method.value

            with with_correlation(customer_id=resolution.customer_id):
                status = self.sync_resolver.check(order.order_id)
                if status.synced:
                    logger.info(
                        f"Order {order.order_id} already synced as ERP order {status.erp_id}",
                        extra_fields={"erp_tranid": status.erp_tranid},
                    )
                    result.status = ReconcileStatus.ALREADY_SYNCED
                    result.erp_order_id = status.erp_id
                    result.completed_at = datetime.utcnow()
                    return result
                if status.is_error:
                    logger.warning(f"Sync check degraded, proceeding with creation: {status.error}")
                    result.warnings.append(f"Sync check failed: {status.error}")

                plan = LineItemBuilder(self.transport, self.mapping).build(order)
                result.warnings.extend(plan.warnings)

                payload = self.build_sales_order(order, resolution.customer_id, plan)

                log_stage_start("create_sales_order")
                stage_start = time.monotonic()
                try:
                    erp_order_id = self.transport.create_record("salesOrder", payload)
                except Exception as e:
                    log_stage_error("create_sales_order", str(e))
                    raise
                log_stage_complete("create_sales_order", (time.monotonic() - stage_start) * 1000)
                record_processing_time("create_sales_order", (time.monotonic() - stage_start) * 1000)

                result.status = ReconcileStatus.CREATED
                result.erp_order_id = erp_order_id

                with with_correlation(erp_order_id=erp_order_id):
                    logger.info(f"Created ERP sales order {erp_order_id} for order {order.order_id}")
                    result.source_status_updated = self._update_source_status(order, result)

        result.completed_at = datetime.utcnow()
        record_processing_time("reconcile", (time.monotonic() - start) * 1000)
        return result

    def _update_source_status(self, order: SourceOrder, result: ReconcileResult) -> bool:
        """Mark the order on the storefront; failures are logged, never raised."""
        if self.status_updater is None or not self.processing.update_source_status:
            return False
        try:
            self.status_updater.update_order_status(
                order.order_id,
                self.processing.success_status_id,
                self.processing.success_comment,
            )
        except Exception as e:
            logger.error(f"Failed to update storefront status for order {order.order_id}: {e}")
            result.warnings.append(f"Storefront status update failed: {e}")
            return False
        return True

    # =========================================================================
    # Payload
    # =========================================================================

    def build_sales_order(self, order: SourceOrder, customer_id: str, plan: LinePlan) -> Dict[str, Any]:
        """Sales order record (header and all lines) for a single create call."""
        order_date = order.order_date or datetime.utcnow()

        memo = f"Order imported from 3DCart - Order #{order.order_id}"
        if plan.notes:
            memo = f"{memo} | {'; '.join(plan.notes)}"

        sales_order: Dict[str, Any] = {
            "entity": {"id": int(customer_id)},
            "subsidiary": {"id": str(self.mapping.subsidiary_id)},
            "department": {"id": str(self.mapping.department_id)},
            "istaxable": self.mapping.sales_order_taxable,
            "tranDate": order_date.strftime("%Y-%m-%d"),
            "memo": memo,
            "externalId": self.mapping.external_id(order.order_id),
            "custbodycustbody4": SOURCE_SYSTEM_LABEL,
            "custbodyship_immediate": SHIP_IMMEDIATELY,
        }

        if order.customer_reference:
            sales_order["otherrefnum"] = order.customer_reference
        if order.customer_comments:
            sales_order["custbody2"] = order.customer_comments

        shipping_address = self.build_shipping_address(order)
        if shipping_address:
            sales_order["shippingAddress"] = shipping_address

        sales_order.update(plan.header_fields)
        sales_order["item"] = {"items": plan.items}
        return sales_order

    def build_shipping_address(self, order: SourceOrder) -> Optional[Dict[str, str]]:
        """Ship-to address from the first shipment."""
        shipment = order.primary_shipment
        if shipment is None:
            return None

        addressee = shipment.full_name
        if shipment.company:
            addressee = f"{addressee}\n{shipment.company}"

        address = {
            "addressee": addressee,
            "addrphone": shipment.phone,
            "addr1": shipment.address1,
            "addr2": shipment.address2,
            "city": shipment.city,
            "state": shipment.state,
            "zip": shipment.zip_code,
        }
        address = {k: v for k, v in address.items() if v}
        address["country"] = shipment.country or DEFAULT_COUNTRY
        return address
