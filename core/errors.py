"""Error taxonomy for order synchronization.

Every failure raised by the transport, the resolvers and the reconciler is an
OrderSyncError subclass. Each class carries a machine-readable ``code`` and a
``retryable`` flag that the retry coordinator consults.
"""

from typing import Any, Dict, List, Optional


class OrderSyncError(Exception):
    """Base exception for order sync errors."""
    code = "ORDER_SYNC_ERROR"
    retryable = False

    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }


class AuthenticationError(OrderSyncError):
    """Signature or credentials rejected (401/403)."""
    code = "AUTHENTICATION_FAILED"


class ValidationError(OrderSyncError):
    """Malformed order/customer data, or a 400 from the ERP.

    Attributes:
        details: Parsed ERP error details (detail, error_code, error_path)
        missing_fields: Names of required fields that were absent
    """
    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response_body: str = "",
        details: Optional[List[Dict[str, str]]] = None,
        missing_fields: Optional[List[str]] = None,
    ):
        super().__init__(message, status_code, response_body)
        self.details = details or []
        self.missing_fields = missing_fields or []

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.details:
            data["details"] = self.details
        if self.missing_fields:
            data["missing_fields"] = self.missing_fields
        return data


class NotFoundError(OrderSyncError):
    """Record not found (404)."""
    code = "NOT_FOUND"


class ItemReferenceError(OrderSyncError):
    """A configured ERP item id does not exist or cannot be sold."""
    code = "ITEM_REFERENCE_INVALID"

    def __init__(self, message: str, item_id: int, reason: str = ""):
        super().__init__(message)
        self.item_id = item_id
        self.reason = reason


class DuplicateOrderError(OrderSyncError):
    """More than one ERP order carries the same external id."""
    code = "DUPLICATE_ORDER"

    def __init__(self, message: str, external_id: str, erp_ids: Optional[List[str]] = None):
        super().__init__(message)
        self.external_id = external_id
        self.erp_ids = erp_ids or []


class TransportError(OrderSyncError):
    """Network failure, timeout or ERP server error."""
    code = "TRANSPORT_ERROR"
    retryable = True


class RateLimitError(TransportError):
    """Rate limit exceeded (429)."""
    code = "RATE_LIMITED"

    def __init__(self, message: str, retry_after: int = 60, response_body: str = ""):
        super().__init__(message, 429, response_body)
        self.retry_after = retry_after


def error_code(error: BaseException) -> str:
    """Machine-readable code for any exception."""
    if isinstance(error, OrderSyncError):
        return error.code
    return "UNEXPECTED_ERROR"
