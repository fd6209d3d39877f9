"""ERP Connectors - Pluggable ERP and storefront integrations.

This package contains the abstract ERP transport and concrete implementations:
- netsuite/: OAuth 1.0a signed REST record API and SuiteQL
- storefront/: 3DCart order status write-back

Key Design Principle:
- The reconciler and resolvers depend ONLY on the ERPTransport interface
- Transports map HTTP failures onto core.errors and never retry

To add a new ERP:
1. Create a new folder (e.g., sap/)
2. Implement ERPTransport
3. Register using @register_transport decorator
"""

from connectors.erp_base import (
    # Core interface
    ERPResponse,
    ERPTransport,

    # Factory functions
    create_transport,
    register_transport,
    list_available_transports,
)

__all__ = [
    # Core interface
    "ERPResponse",
    "ERPTransport",

    # Factory
    "create_transport",
    "register_transport",
    "list_available_transports",
]
