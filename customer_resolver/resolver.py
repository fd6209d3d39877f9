"""Customer Resolution Algorithm.

This module decides which ERP customer a storefront order is booked against:
1. Dropship orders map to a person customer (the ship-to recipient),
   attached to the buyer's company when one can be found
2. Regular orders map to a company customer, reusing the store customer
   registered under the checkout email when there is one
3. Anything not found is created

Every search is an exact (case-insensitive) SuiteQL match. A retry after a
partial failure finds the customer created on the earlier attempt instead of
creating a second one.
"""

import time
from typing import Any, Dict, List, Optional

from connectors.erp_base import ERPTransport
from connectors.netsuite.ns_models import NSCustomerRow
from connectors.netsuite.suiteql import int_literal, quote_literal
from core.config import OrderMappingSettings
from core.errors import AuthenticationError, OrderSyncError, ValidationError
from core.models.canonical import SourceOrder
from core.observability.logging import get_logger
from customer_resolver.models import (
    CustomerAddress,
    CustomerCandidate,
    CustomerResolution,
    MatchMethod,
)
from customer_resolver.normalize import (
    MAX_COMPANY_NAME,
    MAX_PERSON_NAME,
    clean,
    join_name,
    normalize_email,
    normalize_phone,
    truncate,
)


logger = get_logger(__name__)


CUSTOMER_COLUMNS = "id, firstName, lastName, email, companyName, phone, isperson"


class CustomerIdentityResolver:
    """Resolves a storefront order to an ERP customer id.

    Example:
        resolver = CustomerIdentityResolver(client, config.mapping)
        resolution = resolver.resolve(order)
        print(resolution.customer_id, resolution.match_method)
    """

    def __init__(self, transport: ERPTransport, mapping: OrderMappingSettings):
        """Initialize the resolver.

        Args:
            transport: ERP transport used for searches and creation
            mapping: Subsidiary and dropship payment method settings
        """
        self.transport = transport
        self.mapping = mapping

    def resolve(self, order: SourceOrder) -> CustomerResolution:
        """Find or create the customer for an order.

        Args:
            order: Validated storefront order

        Returns:
            CustomerResolution with the ERP customer id

        Raises:
            ValidationError: If the order carries no usable customer name
            AuthenticationError: If the ERP rejects the credentials
            OrderSyncError: If customer creation fails
        """
        start = time.monotonic()

        if order.is_dropship(self.mapping.dropship_payment_method):
            resolution = self._resolve_person(order)
        else:
            resolution = self._resolve_company(order)

        resolution.resolution_time_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Resolved customer {resolution.customer_id} for order {order.order_id} "
            f"({resolution.match_method.value})",
            extra_fields={
                "customer_id": resolution.customer_id,
                "customer_kind": resolution.candidate.kind.value,
                "created": resolution.created,
            },
        )
        return resolution

    def _resolve_person(self, order: SourceOrder) -> CustomerResolution:
        parent = self.find_parent_company(order.billing.email, order.billing.phone)
        parent_id = parent.id if parent else None

        candidate = self.build_person_candidate(order, parent_id)

        existing = self.find_existing_person(candidate.first_name, candidate.last_name, parent_id)
        if existing:
            return CustomerResolution(
                customer_id=existing.id,
                candidate=candidate,
                match_method=MatchMethod.EXISTING_PERSON,
                parent_id=parent_id,
            )

        customer_id = self.create_customer(candidate)
        return CustomerResolution(
            customer_id=customer_id,
            candidate=candidate,
            created=True,
            match_method=MatchMethod.CREATED,
            parent_id=parent_id,
        )

    def _resolve_company(self, order: SourceOrder) -> CustomerResolution:
        alternate_email = normalize_email(order.alternate_email)
        if alternate_email:
            store_customer = self.find_store_customer(alternate_email)
            if store_customer:
                return CustomerResolution(
                    customer_id=store_customer.id,
                    candidate=CustomerCandidate(
                        is_person=False,
                        company_name=store_customer.companyname or "",
                        email=store_customer.email,
                        phone=store_customer.phone,
                    ),
                    match_method=MatchMethod.STORE_CUSTOMER,
                )

        candidate = self.build_company_candidate(order)

        company_name = truncate(candidate.display_company_name, MAX_COMPANY_NAME, "companyName")
        existing = self.find_company_by_name(company_name)
        if existing:
            return CustomerResolution(
                customer_id=existing.id,
                candidate=candidate,
                match_method=MatchMethod.EXISTING_COMPANY,
            )

        parent = self.find_parent_company(order.billing.email, order.billing.phone)
        if parent:
            candidate = candidate.model_copy(update={"parent_id": parent.id})

        customer_id = self.create_customer(candidate)
        return CustomerResolution(
            customer_id=customer_id,
            candidate=candidate,
            created=True,
            match_method=MatchMethod.CREATED,
            parent_id=candidate.parent_id,
        )

    # =========================================================================
    # Searches
    # =========================================================================

    def _search_one(self, query: str, description: str) -> Optional[NSCustomerRow]:
        """First row of a customer search, or None.

        Transport and ERP-side failures count as "not found"; rejected
        credentials propagate.
        """
        try:
            rows = self.transport.run_query(query)
        except AuthenticationError:
            raise
        except OrderSyncError as e:
            logger.warning(f"{description} failed, treating as not found: {e}")
            return None

        if not rows:
            logger.debug(f"{description}: no match")
            return None
        if len(rows) > 1:
            logger.info(f"{description}: {len(rows)} matches, using the first")
        return NSCustomerRow.model_validate(rows[0])

    def find_parent_company(self, email: Optional[str], phone: Optional[str]) -> Optional[NSCustomerRow]:
        """Company customer matching the billing email or billing phone."""
        conditions = []
        if clean(email):
            conditions.append(f"LOWER(email) = LOWER({quote_literal(clean(email))})")
        if clean(phone):
            conditions.append(f"phone = {quote_literal(clean(phone))}")
        if not conditions:
            return None

        query = (
            f"SELECT {CUSTOMER_COLUMNS} FROM customer "
            f"WHERE ({' OR '.join(conditions)}) AND isperson = 'F'"
        )
        return self._search_one(query, "Parent company search")

    def find_store_customer(self, email: str) -> Optional[NSCustomerRow]:
        """Company customer registered under the checkout email."""
        query = (
            f"SELECT {CUSTOMER_COLUMNS} FROM customer "
            f"WHERE LOWER(email) = LOWER({quote_literal(email)}) AND isperson = 'F'"
        )
        return self._search_one(query, "Store customer search")

    def find_existing_person(
        self,
        first_name: str,
        last_name: str,
        parent_id: Optional[str] = None,
    ) -> Optional[NSCustomerRow]:
        """Person customer with exactly this name (under ``parent_id`` when given).

        Blank name parts are left out of the match (NetSuite stores them as
        NULL); with no name at all there is nothing to search for.
        """
        conditions = []
        if first_name:
            conditions.append(f"LOWER(firstName) = LOWER({quote_literal(first_name)})")
        if last_name:
            conditions.append(f"LOWER(lastName) = LOWER({quote_literal(last_name)})")
        if not conditions:
            return None

        conditions.append("isperson = 'T'")
        if parent_id:
            conditions.append(f"parent = {int_literal(parent_id)}")
        query = f"SELECT {CUSTOMER_COLUMNS}, parent FROM customer WHERE " + " AND ".join(conditions)
        return self._search_one(query, "Existing person search")

    def find_company_by_name(self, company_name: str) -> Optional[NSCustomerRow]:
        """Company customer with exactly this name."""
        query = (
            f"SELECT {CUSTOMER_COLUMNS} FROM customer "
            f"WHERE LOWER(companyName) = LOWER({quote_literal(company_name)}) AND isperson = 'F'"
        )
        return self._search_one(query, "Company name search")

    # =========================================================================
    # Candidates
    # =========================================================================

    def build_person_candidate(self, order: SourceOrder, parent_id: Optional[str] = None) -> CustomerCandidate:
        """Dropship recipient as a person customer.

        The name comes from the first shipment (falling back to billing). The
        invoice number is appended to the last name so each recipient record
        stays tied to its order. Email is always left blank.
        """
        shipment = order.primary_shipment
        first_name = clean(shipment.first_name if shipment else None)
        last_name = clean(shipment.last_name if shipment else None)
        if not first_name and not last_name:
            first_name = clean(order.billing.first_name)
            last_name = clean(order.billing.last_name)

        if not first_name and not last_name:
            raise ValidationError(
                f"Order {order.order_id} has no recipient name",
                missing_fields=["ShipmentFirstName", "ShipmentLastName", "BillingFirstName", "BillingLastName"],
            )

        if order.invoice_label:
            last_name = f"{last_name}: {order.invoice_label}" if last_name else order.invoice_label

        return CustomerCandidate(
            is_person=True,
            first_name=truncate(first_name, MAX_PERSON_NAME, "firstName"),
            last_name=truncate(last_name, MAX_PERSON_NAME, "lastName"),
            company_name=clean(shipment.company if shipment else None),
            email=None,
            phone=normalize_phone(shipment.phone if shipment else None),
            parent_id=parent_id,
            addresses=self.build_addresses(order),
        )

    def build_company_candidate(self, order: SourceOrder) -> CustomerCandidate:
        """Regular buyer as a company customer.

        The company name is the billing company, else the ship-to name, else
        the billing name; the order id is used as a disambiguating prefix.
        """
        shipment = order.primary_shipment
        company = (
            clean(order.billing.company)
            or (shipment.full_name if shipment else "")
            or order.billing.full_name
        )
        if not company:
            raise ValidationError(
                f"Order {order.order_id} has no company or customer name",
                missing_fields=["BillingCompany", "BillingFirstName", "BillingLastName"],
            )

        email = normalize_email(order.alternate_email) or normalize_email(order.billing.email)

        return CustomerCandidate(
            is_person=False,
            first_name=truncate(order.billing.first_name, MAX_PERSON_NAME, "firstName"),
            last_name=truncate(order.billing.last_name, MAX_PERSON_NAME, "lastName"),
            company_name=company,
            email=email,
            phone=normalize_phone(order.billing.phone),
            disambiguator=order.order_id,
            addresses=self.build_addresses(order),
        )

    def build_addresses(self, order: SourceOrder) -> List[CustomerAddress]:
        """Default billing address, plus the first shipment when it differs."""
        addresses = []
        billing = order.billing

        if clean(billing.address1) or clean(billing.city):
            addresses.append(CustomerAddress(
                addressee="\n".join(p for p in (billing.full_name, clean(billing.company)) if p),
                addr1=clean(billing.address1),
                addr2=clean(billing.address2),
                city=clean(billing.city),
                state=clean(billing.state),
                zip=clean(billing.zip_code),
                country=clean(billing.country),
                default_billing=True,
            ))

        shipment = order.primary_shipment
        if shipment and (clean(shipment.address1) or clean(shipment.city)):
            same_as_billing = (
                clean(shipment.address1) == clean(billing.address1)
                and clean(shipment.city) == clean(billing.city)
                and clean(shipment.zip_code) == clean(billing.zip_code)
            )
            if not same_as_billing:
                addresses.append(CustomerAddress(
                    addressee="\n".join(
                        p for p in (shipment.full_name, clean(shipment.company) or clean(billing.company)) if p
                    ),
                    addr1=clean(shipment.address1),
                    addr2=clean(shipment.address2),
                    city=clean(shipment.city),
                    state=clean(shipment.state),
                    zip=clean(shipment.zip_code),
                    country=clean(shipment.country),
                    default_shipping=True,
                ))

        return addresses

    # =========================================================================
    # Creation
    # =========================================================================

    def build_customer_record(self, candidate: CustomerCandidate) -> Dict[str, Any]:
        """NetSuite customer record for a candidate, with field limits applied."""
        record: Dict[str, Any] = {
            "isPerson": candidate.is_person,
            "subsidiary": {"id": str(self.mapping.subsidiary_id)},
        }

        if candidate.first_name:
            record["firstName"] = truncate(candidate.first_name, MAX_PERSON_NAME, "firstName")
        if candidate.last_name:
            record["lastName"] = truncate(candidate.last_name, MAX_PERSON_NAME, "lastName")

        company_name = candidate.company_name if candidate.is_person else candidate.display_company_name
        if company_name:
            record["companyName"] = truncate(company_name, MAX_COMPANY_NAME, "companyName")

        email = normalize_email(candidate.email)
        if email:
            record["email"] = email

        phone = normalize_phone(candidate.phone)
        if phone:
            record["phone"] = phone

        if candidate.parent_id:
            record["parent"] = {"id": int_literal(candidate.parent_id)}

        if candidate.addresses:
            record["addressbook"] = {"items": [a.to_record() for a in candidate.addresses]}

        return record

    def create_customer(self, candidate: CustomerCandidate) -> str:
        """Create the customer record and return its ERP id."""
        record = self.build_customer_record(candidate)
        label = join_name(candidate.first_name, candidate.last_name) or record.get("companyName", "")
        logger.info(
            f"Creating {candidate.kind.value} customer {label!r}",
            extra_fields={"parent_id": candidate.parent_id},
        )
        customer_id = self.transport.create_record("customer", record)
        logger.info(f"Created customer {customer_id}", extra_fields={"customer_id": customer_id})
        return customer_id
