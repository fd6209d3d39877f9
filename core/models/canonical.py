"""Core canonical data models - storefront order snapshot.

These models represent an inbound storefront (3DCart) order in a typed,
immutable form. Field aliases follow the storefront payload keys so that a raw
webhook/API payload can be validated directly with ``SourceOrder.from_payload``.

ERP-specific field mappings are handled in /connectors/ and /reconciliation/.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated

from core.errors import ValidationError


# Question slots in the storefront checkout form
EMAIL_QUESTION_ID = 1
REFERENCE_QUESTION_ID = 2


# =============================================================================
# Value Parsers (handle the storefront's loosely typed JSON)
# =============================================================================

def _parse_decimal(value):
    """Parse decimal from various formats (string with $ or commas, floats, etc.)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        s = s.replace("$", "").replace(",", "")
        if s.startswith("(") and s.endswith(")"):
            s = "-" + s[1:-1]
        try:
            parsed = Decimal(s)
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}") from None
        if not parsed.is_finite():
            raise ValueError(f"Invalid amount: {value!r}")
        return parsed
    return value


def _parse_money(value):
    """Like _parse_decimal, but blank means zero."""
    parsed = _parse_decimal(value)
    return Decimal("0") if parsed is None else parsed


def _parse_str(value):
    """Coerce numeric ids to strings and trim whitespace."""
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _parse_int(value):
    """Parse integer from various formats."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        s = value.strip().replace(",", "")
        if s == "":
            return None
        try:
            return int(float(s))
        except OverflowError:
            raise ValueError(f"Invalid integer: {value!r}") from None
    return value


def _parse_datetime(value):
    """Parse the storefront's order timestamps."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        try:
            return datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            pass
        for fmt in ("%m/%d/%Y %I:%M:%S %p", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y", "%Y-%m-%d %H:%M:%S"):
            try:
                return datetime.strptime(s, fmt)
            except ValueError:
                continue
        raise ValueError(f"Cannot parse date: {s}")
    return value


DecimalValue = Annotated[Decimal, BeforeValidator(_parse_decimal)]
MoneyValue = Annotated[Decimal, BeforeValidator(_parse_money)]
StrValue = Annotated[str, BeforeValidator(_parse_str)]
IntValue = Annotated[int, BeforeValidator(_parse_int)]
DateTimeValue = Annotated[datetime, BeforeValidator(_parse_datetime)]


def _first_present(data: Dict[str, Any], target: str, *fallbacks: str) -> None:
    """Copy the first non-empty fallback key into ``target`` when it is missing."""
    if data.get(target) not in (None, ""):
        return
    for key in fallbacks:
        if data.get(key) not in (None, ""):
            data[target] = data[key]
            return


# =============================================================================
# Base Model
# =============================================================================

class CanonicalBase(BaseModel):
    """Base model for all canonical data structures."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# =============================================================================
# Order Parts
# =============================================================================

class BillingContact(CanonicalBase):
    """Billing block of an order (flat ``Billing*`` keys in the payload)."""
    first_name: Optional[StrValue] = Field(default=None, alias="BillingFirstName")
    last_name: Optional[StrValue] = Field(default=None, alias="BillingLastName")
    company: Optional[StrValue] = Field(default=None, alias="BillingCompany")
    address1: Optional[StrValue] = Field(default=None, alias="BillingAddress")
    address2: Optional[StrValue] = Field(default=None, alias="BillingAddress2")
    city: Optional[StrValue] = Field(default=None, alias="BillingCity")
    state: Optional[StrValue] = Field(default=None, alias="BillingState")
    zip_code: Optional[StrValue] = Field(default=None, alias="BillingZipCode")
    country: Optional[StrValue] = Field(default=None, alias="BillingCountry")
    phone: Optional[StrValue] = Field(default=None, alias="BillingPhoneNumber")
    email: Optional[StrValue] = Field(default=None, alias="BillingEmail")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()


class Shipment(CanonicalBase):
    """One entry of the order's ``ShipmentList``."""
    first_name: Optional[StrValue] = Field(default=None, alias="ShipmentFirstName")
    last_name: Optional[StrValue] = Field(default=None, alias="ShipmentLastName")
    company: Optional[StrValue] = Field(default=None, alias="ShipmentCompany")
    address1: Optional[StrValue] = Field(default=None, alias="ShipmentAddress")
    address2: Optional[StrValue] = Field(default=None, alias="ShipmentAddress2")
    city: Optional[StrValue] = Field(default=None, alias="ShipmentCity")
    state: Optional[StrValue] = Field(default=None, alias="ShipmentState")
    zip_code: Optional[StrValue] = Field(default=None, alias="ShipmentZipCode")
    country: Optional[StrValue] = Field(default=None, alias="ShipmentCountry")
    phone: Optional[StrValue] = Field(default=None, alias="ShipmentPhone")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()


class QuestionAnswer(CanonicalBase):
    """A checkout question and the customer's answer."""
    question_id: IntValue = Field(..., alias="QuestionID")
    answer: Optional[StrValue] = Field(default=None, alias="QuestionAnswer")


class LineItem(CanonicalBase):
    """A purchased product line.

    The line's contribution to the subtotal is
    ``quantity * (unit_price + option_price)``.
    """
    item_id: StrValue = Field(..., alias="ItemID", description="Storefront SKU")
    catalog_id: Optional[StrValue] = Field(default=None, alias="CatalogID")
    description: StrValue = Field(..., alias="ItemDescription")
    quantity: DecimalValue = Field(..., alias="ItemQuantity", gt=0)
    unit_price: DecimalValue = Field(..., alias="ItemUnitPrice")
    option_price: MoneyValue = Field(default=Decimal("0"), alias="ItemOptionPrice")

    @model_validator(mode="before")
    @classmethod
    def _apply_fallbacks(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            _first_present(data, "ItemID", "item_id", "OrderItemID", "CatalogID")
            _first_present(data, "ItemUnitPrice", "unit_price", "ItemPrice")
        return data

    @property
    def unit_rate(self) -> Decimal:
        """Per-unit price including option surcharge."""
        return self.unit_price + self.option_price

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_rate


# =============================================================================
# Source Order
# =============================================================================

class SourceOrder(CanonicalBase):
    """Immutable snapshot of an inbound storefront order."""
    order_id: StrValue = Field(..., alias="OrderID")
    order_date: Optional[DateTimeValue] = Field(default=None, alias="OrderDate")
    status_id: Optional[IntValue] = Field(default=None, alias="OrderStatusID")
    customer_id: Optional[StrValue] = Field(default=None, alias="CustomerID")
    payment_method: Optional[StrValue] = Field(default=None, alias="BillingPaymentMethod")
    invoice_prefix: Optional[StrValue] = Field(default=None, alias="InvoiceNumberPrefix")
    invoice_number: Optional[StrValue] = Field(default=None, alias="InvoiceNumber")
    customer_comments: Optional[StrValue] = Field(default=None, alias="CustomerComments")

    # Totals
    amount: MoneyValue = Field(default=Decimal("0"), alias="OrderAmount", description="Final total after discount")
    discount: MoneyValue = Field(default=Decimal("0"), alias="OrderDiscount")
    tax: MoneyValue = Field(default=Decimal("0"), alias="SalesTax")
    shipping_cost: MoneyValue = Field(default=Decimal("0"), alias="ShippingCost")

    billing: BillingContact = Field(default_factory=BillingContact)
    shipments: List[Shipment] = Field(default_factory=list, alias="ShipmentList")
    items: List[LineItem] = Field(default_factory=list, alias="OrderItemList")
    questions: List[QuestionAnswer] = Field(default_factory=list, alias="QuestionList")

    @model_validator(mode="before")
    @classmethod
    def _collect_payload_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        _first_present(data, "OrderAmount", "amount", "OrderTotal")
        _first_present(data, "OrderDiscount", "discount", "DiscountAmount")
        if "billing" not in data:
            data["billing"] = {k: v for k, v in data.items() if k.startswith("Billing")}
        return data

    @field_validator("order_id")
    @classmethod
    def _check_order_id(cls, value: str) -> str:
        if not value:
            raise ValueError("OrderID is required")
        if not (value.isdigit() or value.startswith("TEST_")):
            raise ValueError(f"OrderID must be numeric or start with TEST_: {value!r}")
        return value

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SourceOrder":
        """Validate a raw storefront payload.

        Raises:
            ValidationError: With ``missing_fields`` naming every invalid field
        """
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            order_id = payload.get("OrderID", "N/A") if isinstance(payload, dict) else "N/A"
            raise ValidationError(
                f"Invalid order {order_id}: {', '.join(fields)}",
                missing_fields=fields,
            ) from e

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def primary_shipment(self) -> Optional[Shipment]:
        return self.shipments[0] if self.shipments else None

    def answer_for(self, question_id: int) -> str:
        """Trimmed answer to a checkout question, or empty string."""
        for question in self.questions:
            if question.question_id == question_id:
                return (question.answer or "").strip()
        return ""

    @property
    def alternate_email(self) -> str:
        """Contact email the customer typed into checkout question 1."""
        return self.answer_for(EMAIL_QUESTION_ID)

    @property
    def customer_reference(self) -> str:
        """PO / reference number from checkout question 2."""
        return self.answer_for(REFERENCE_QUESTION_ID)

    @property
    def items_subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def invoice_label(self) -> str:
        return f"{self.invoice_prefix or ''}{self.invoice_number or ''}"

    def is_dropship(self, dropship_payment_method: str) -> bool:
        return (self.payment_method or "") == dropship_payment_method
