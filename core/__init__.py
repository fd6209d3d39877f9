"""Core module - ERP-neutral models, configuration and plumbing.

This module contains the canonical storefront order models, the error
taxonomy, configuration, observability and the retry coordinator. It is
intentionally ERP-agnostic.

ERP-specific logic (NetSuite) belongs in /connectors/.
"""

__version__ = "1.0.0"
