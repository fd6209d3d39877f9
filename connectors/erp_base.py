"""Abstract ERP Transport Interface.

This module defines the interface the reconciliation core uses to talk to an
ERP. It is intentionally ERP-agnostic - no NetSuite specifics here.

Transports implement this interface to:
1. Execute authenticated record calls (create, read, update)
2. Run analytical (SQL-like) queries with transparent pagination
3. Translate HTTP failures into the core error taxonomy

Key Design Principles:
- The reconciler, resolvers and scripts depend ONLY on this interface
- Transports never retry; the RetryCoordinator owns retry policy
- ERP-specific implementations live in connector subfolders
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.errors import ValidationError


# =============================================================================
# Responses
# =============================================================================

@dataclass
class ERPResponse:
    """A successful (< 400) ERP response."""
    status_code: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def location(self) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == "location":
                return value
        return None

    def created_id(self, record_type: str) -> str:
        """Id of a newly created record.

        Records created with 204 carry the id at the end of the Location
        header (".../salesOrder/123456"); 200/201 responses carry it in the
        JSON body.

        Raises:
            ValidationError: If no id can be found
        """
        location = self.location
        if location:
            match = re.search(rf"/{re.escape(record_type)}/(\d+)/?$", location, re.IGNORECASE)
            if match:
                return match.group(1)

        if isinstance(self.body, dict) and self.body.get("id") is not None:
            return str(self.body["id"])

        raise ValidationError(
            f"{record_type} created (HTTP {self.status_code}) but no id in Location header or body",
            status_code=self.status_code,
        )


# =============================================================================
# Transport Interface
# =============================================================================

class ERPTransport(ABC):
    """Abstract base class for ERP transports.

    Implementations must raise the core error taxonomy:
    - AuthenticationError on 401/403
    - ValidationError on 400 (with parsed error details)
    - NotFoundError on 404
    - RateLimitError on 429
    - TransportError on network failures, timeouts and 5xx
    """

    @abstractmethod
    def execute(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> ERPResponse:
        """Execute one signed record call.

        Args:
            method: HTTP method
            path: Record path relative to the record API root (e.g. "/salesOrder")
            params: Query parameters
            body: JSON body

        Returns:
            ERPResponse for status codes below 400
        """
        pass

    @abstractmethod
    def run_query(self, query: str) -> List[Dict[str, Any]]:
        """Run an analytical query and return every row across all pages."""
        pass

    # Convenience wrappers shared by all transports

    def create_record(self, record_type: str, payload: Dict[str, Any]) -> str:
        """Create a record and return its ERP id."""
        response = self.execute("POST", f"/{record_type}", body=payload)
        return response.created_id(record_type)

    def get_record(self, record_type: str, record_id: Any) -> Dict[str, Any]:
        response = self.execute("GET", f"/{record_type}/{record_id}")
        return response.body if isinstance(response.body, dict) else {}


# =============================================================================
# Transport Factory
# =============================================================================

_transport_registry: Dict[str, type] = {}


def register_transport(transport_type: str):
    """Decorator to register a transport implementation."""
    def decorator(cls):
        _transport_registry[transport_type] = cls
        return cls
    return decorator


def create_transport(transport_type: str, *args, **kwargs) -> ERPTransport:
    """Create a transport instance by registered name.

    Raises:
        ValueError: If transport_type is not registered
    """
    key = transport_type.lower()

    if key not in _transport_registry:
        available = list(_transport_registry.keys())
        raise ValueError(
            f"Unknown transport type: {transport_type}. "
            f"Available: {available}"
        )

    return _transport_registry[key](*args, **kwargs)


def list_available_transports() -> List[str]:
    """List registered transport types."""
    return list(_transport_registry.keys())
