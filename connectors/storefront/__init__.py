"""3DCart storefront connector.

Writes order status back to the storefront once an order has reached the ERP.
"""

from connectors.storefront.tdc_client import ThreeDCartClient

__all__ = ["ThreeDCartClient"]
