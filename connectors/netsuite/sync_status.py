"""Bulk sync-status lookup for storefront orders.

One SuiteQL query covers a whole batch (``externalid IN (...)``) instead of
one lookup per order. Failures never propagate: a failed query reports every
order in the batch as not synced, with the error message attached.
"""

import logging
from typing import Dict, Iterable, List

from connectors.erp_base import ERPTransport
from connectors.netsuite.ns_models import NSTransactionRow
from connectors.netsuite.suiteql import in_list
from core.errors import OrderSyncError
from core.models.refs import SyncStatus

logger = logging.getLogger(__name__)


SYNC_STATUS_QUERY = (
    "SELECT id, tranid, externalid, status, foreigntotal, trandate, entity "
    "FROM transaction "
    "WHERE recordtype = 'salesorder' AND externalid IN {external_ids}"
)


class SyncStatusResolver:
    """Determines which storefront orders already exist as ERP sales orders.

    Usage:
        resolver = SyncStatusResolver(client, source_prefix="3DCART")
        statuses = resolver.check_batch(["1057113", "1057114"])
        if statuses["1057113"].synced:
            ...
    """

    def __init__(self, transport: ERPTransport, source_prefix: str = "3DCART"):
        self.transport = transport
        self.source_prefix = source_prefix

    def external_id(self, order_id: str) -> str:
        return f"{self.source_prefix}_{order_id}"

    def order_id_from_external(self, external_id: str) -> str:
        prefix = f"{self.source_prefix}_"
        return external_id[len(prefix):] if external_id.startswith(prefix) else external_id

    def build_query(self, order_ids: Iterable[str]) -> str:
        return SYNC_STATUS_QUERY.format(
            external_ids=in_list(self.external_id(order_id) for order_id in order_ids)
        )

    def check_batch(self, order_ids: List[str]) -> Dict[str, SyncStatus]:
        """Sync status for every order id in the batch.

        Args:
            order_ids: Storefront order ids

        Returns:
            Map of order id -> SyncStatus (one entry per distinct input id)
        """
        unique_ids = list(dict.fromkeys(str(order_id) for order_id in order_ids))
        if not unique_ids:
            return {}

        try:
            rows = self.transport.run_query(self.build_query(unique_ids))
        except OrderSyncError as e:
            logger.error(f"Failed to check sync status for {len(unique_ids)} order(s): {e}")
            return {
                order_id: SyncStatus(order_id=order_id, synced=False, error=str(e))
                for order_id in unique_ids
            }

        found: Dict[str, SyncStatus] = {}
        for raw in rows:
            row = NSTransactionRow.model_validate(raw)
            if not row.externalid:
                continue
            order_id = self.order_id_from_external(row.externalid)
            if order_id in found:
                logger.warning(
                    f"Multiple ERP sales orders share external id {row.externalid}: "
                    f"{found[order_id].erp_id}, {row.id}"
                )
                continue
            found[order_id] = SyncStatus(
                order_id=order_id,
                synced=True,
                erp_id=row.id,
                erp_tranid=row.tranid,
                erp_status=row.status,
                erp_total=row.foreigntotal,
                sync_date=row.trandate,
                customer_id=row.entity,
            )

        statuses = {
            order_id: found.get(order_id) or SyncStatus(order_id=order_id, synced=False)
            for order_id in unique_ids
        }

        synced_count = sum(1 for s in statuses.values() if s.synced)
        logger.info(f"Sync status: {synced_count}/{len(unique_ids)} order(s) already in NetSuite")
        return statuses

    def check(self, order_id: str) -> SyncStatus:
        """Sync status for a single order."""
        return self.check_batch([order_id])[str(order_id)]
