"""NetSuite Connector Package.

Implements the ERPTransport interface for Oracle NetSuite (REST record API
and SuiteQL), plus the NetSuite-side lookups used by reconciliation.
"""

from connectors.netsuite.ns_auth import (
    NSAuthConfig,
    RequestSigner,
    SignatureContext,
    SignatureMethod,
    percent_encode,
)
from connectors.netsuite.ns_client import NSApiConfig, NSClient
from connectors.netsuite.ns_models import (
    NSCustomerRow,
    NSErrorDetail,
    NSErrorResponse,
    NSItemRecord,
    NSTransactionRow,
    SuiteQLPage,
)
from connectors.netsuite.items import ItemCatalog, ItemValidation
from connectors.netsuite.sync_status import SyncStatusResolver

__all__ = [
    # Auth
    "NSAuthConfig",
    "RequestSigner",
    "SignatureContext",
    "SignatureMethod",
    "percent_encode",
    # Client
    "NSApiConfig",
    "NSClient",
    # Models
    "NSCustomerRow",
    "NSErrorDetail",
    "NSErrorResponse",
    "NSItemRecord",
    "NSTransactionRow",
    "SuiteQLPage",
    # Lookups
    "ItemCatalog",
    "ItemValidation",
    "SyncStatusResolver",
]
