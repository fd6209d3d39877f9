"""Customer Resolver - Maps storefront orders onto ERP customers.

This package decides which ERP customer an order is booked against:
- Dropship orders: a person customer for the recipient, under the buyer's
  company when one is found
- Regular orders: the store customer registered under the checkout email,
  else a company customer created for the order

Usage:
    from customer_resolver import CustomerIdentityResolver

    resolver = CustomerIdentityResolver(client, config.mapping)
    resolution = resolver.resolve(order)
    customer_id = resolution.customer_id
"""

from customer_resolver.models import (
    CustomerAddress,
    CustomerCandidate,
    CustomerKind,
    CustomerResolution,
    MatchMethod,
)
from customer_resolver.normalize import is_valid_email, normalize_email, normalize_phone, truncate
from customer_resolver.resolver import CustomerIdentityResolver

__all__ = [
    # Models
    "CustomerAddress",
    "CustomerCandidate",
    "CustomerKind",
    "CustomerResolution",
    "MatchMethod",
    # Resolver
    "CustomerIdentityResolver",
    # Normalization
    "is_valid_email",
    "normalize_email",
    "normalize_phone",
    "truncate",
]
