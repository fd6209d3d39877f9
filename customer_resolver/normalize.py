"""Contact Field Normalization.

This module cleans the contact fields that go onto a new ERP customer record.
NetSuite rejects over-long values and malformed emails outright, so values
are validated and truncated here rather than sent as-is.

Examples:
    "  jane@example.com " → "jane@example.com"  (valid)
    "jane@"               → None                (discarded)
    "(555) 010-2000"      → "(555) 010-2000"    (valid phone)
    "call me"             → None                (discarded)
"""

import logging
import re
from typing import Optional

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


# NetSuite customer field limits
MAX_COMPANY_NAME = 83
MAX_PERSON_NAME = 32
MAX_PHONE = 22
MAX_EMAIL = 254

PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)\.]+$")

_email_adapter = TypeAdapter(EmailStr)


def clean(value: Optional[str]) -> str:
    """Trim a possibly-missing string."""
    return (value or "").strip()


def is_valid_email(value: Optional[str]) -> bool:
    """Check an email address.

    Examples:
        >>> is_valid_email("jane@example.com")
        True
        >>> is_valid_email("jane@")
        False
    """
    text = clean(value)
    if not text or len(text) > MAX_EMAIL:
        return False
    try:
        _email_adapter.validate_python(text)
    except PydanticValidationError:
        return False
    return True


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Trimmed email, or None when it is blank or malformed."""
    text = clean(value)
    if not text:
        return None
    if not is_valid_email(text):
        logger.warning(f"Discarding malformed email {text!r}")
        return None
    return text


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Phone number truncated to the ERP limit, or None when it is not a phone number."""
    text = clean(value)
    if not text:
        return None
    if not PHONE_PATTERN.match(text):
        logger.warning(f"Discarding invalid phone number {text!r}")
        return None
    return truncate(text, MAX_PHONE, "phone")


def truncate(value: Optional[str], limit: int, field_name: str) -> str:
    """Trim and cut a value to ``limit`` characters, warning when it is cut.

    Examples:
        >>> truncate("Alexandria", 4, "firstName")
        'Alex'
    """
    text = clean(value)
    if len(text) > limit:
        logger.warning(f"Truncating {field_name} from {len(text)} to {limit} characters: {text!r}")
        return text[:limit]
    return text


def join_name(first: Optional[str], last: Optional[str]) -> str:
    """'First Last' with missing parts dropped."""
    return " ".join(p for p in (clean(first), clean(last)) if p)
