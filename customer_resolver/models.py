"""Customer Resolver Data Models.

This module defines the Pydantic models for customer resolution:
- CustomerAddress: One address book entry for a new ERP customer
- CustomerCandidate: The customer an order should be booked against
- CustomerResolution: The result of customer resolution
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CustomerKind(str, Enum):
    """Which kind of ERP customer an order maps to."""
    PERSON = "person"       # Dropship end customer (child of a company)
    COMPANY = "company"     # Regular storefront buyer


class MatchMethod(str, Enum):
    """How the customer was resolved."""
    STORE_CUSTOMER = "store_customer"        # Existing company found by alternate email
    EXISTING_PERSON = "existing_person"      # Existing dropship person found by name
    EXISTING_COMPANY = "existing_company"    # Company created on an earlier attempt
    CREATED = "created"                      # New customer record created


class CustomerAddress(BaseModel):
    """Address book entry.

    Attributes:
        addressee: Recipient name (and company on a second line)
        default_billing: Marks the default billing address
        default_shipping: Marks the default shipping address
    """
    model_config = ConfigDict(frozen=True)

    addressee: str = ""
    addr1: str = ""
    addr2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    default_billing: bool = False
    default_shipping: bool = False

    def to_record(self) -> dict:
        """NetSuite addressbook item."""
        address = {
            "addressee": self.addressee,
            "addr1": self.addr1,
            "addr2": self.addr2,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
        }
        return {
            "defaultBilling": self.default_billing,
            "defaultShipping": self.default_shipping,
            "addressbookaddress": {k: v for k, v in address.items() if v},
        }


class CustomerCandidate(BaseModel):
    """The customer an order should be booked against.

    Either a person (dropship recipient, optionally under a parent company)
    or a company. ``disambiguator`` is the source order id that gets
    prefixed onto new company names.
    """
    model_config = ConfigDict(frozen=True)

    is_person: bool
    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    parent_id: Optional[str] = None
    disambiguator: Optional[str] = None
    addresses: List[CustomerAddress] = Field(default_factory=list)

    @property
    def kind(self) -> CustomerKind:
        return CustomerKind.PERSON if self.is_person else CustomerKind.COMPANY

    @property
    def display_company_name(self) -> str:
        """Company name as stored in the ERP for a new company record."""
        if self.disambiguator and self.company_name:
            return f"{self.disambiguator}: {self.company_name}"
        return self.company_name


class CustomerResolution(BaseModel):
    """Result of customer resolution.

    Attributes:
        customer_id: ERP internal id of the customer to book the order on
        candidate: The candidate that was matched or created
        created: True when a new customer record was created
        match_method: How the customer was found
        parent_id: ERP id of the parent company (dropship only)
        resolution_time_ms: Wall time spent resolving
    """
    customer_id: str
    candidate: CustomerCandidate
    created: bool = False
    match_method: MatchMethod = MatchMethod.CREATED
    parent_id: Optional[str] = None
    resolution_time_ms: Optional[int] = None
