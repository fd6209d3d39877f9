"""
Customer Resolution Tests

Validates how orders map onto ERP customers:
1. Dropship orders -> person customer with blank email, under the buyer's company
2. Regular orders -> store customer by checkout email, else a new company
3. Retries find what an earlier attempt created
4. Missing names are rejected with the offending fields listed
"""

import pytest


PARENT_QUERY = "WHERE (LOWER(email)"
STORE_QUERY = "WHERE LOWER(email)"
COMPANY_QUERY = "LOWER(companyName)"
PERSON_QUERY = "isperson = 'T'"


@pytest.fixture
def resolver(fake_transport, mapping):
    from customer_resolver import CustomerIdentityResolver
    return CustomerIdentityResolver(fake_transport, mapping)


class TestRegularOrders:
    """Company customers."""

    def test_store_customer_reused(self, resolver, fake_transport, sample_order):
        """Checkout email matching a company customer is reused verbatim."""
        from customer_resolver import MatchMethod

        fake_transport.on_query(STORE_QUERY, [{
            "id": "42",
            "companyname": "Reyes Outfitters",
            "email": "buyer@reyesoutfitters.com",
            "isperson": "F",
        }])

        resolution = resolver.resolve(sample_order)

        assert resolution.customer_id == "42"
        assert resolution.match_method == MatchMethod.STORE_CUSTOMER
        assert resolution.created is False
        assert fake_transport.created == []
        assert "LOWER('buyer@reyesoutfitters.com')" in fake_transport.queries[0]
        assert "isperson = 'F'" in fake_transport.queries[0]

    def test_new_company_created(self, resolver, fake_transport, sample_order):
        """No store customer -> company named "<orderId>: <company>"."""
        resolution = resolver.resolve(sample_order)

        assert resolution.created is True
        assert resolution.candidate.is_person is False
        records = fake_transport.created_of("customer")
        assert len(records) == 1
        record = records[0]
        assert record["isPerson"] is False
        assert record["companyName"] == "1057113: Reyes Outfitters"
        assert record["email"] == "buyer@reyesoutfitters.com"
        assert record["phone"] == "512-555-0100"
        assert record["subsidiary"] == {"id": "1"}
        assert "parent" not in record
        assert resolution.customer_id == "5001"

    def test_address_book_has_billing_and_shipping(self, resolver, fake_transport, sample_order):
        resolver.resolve(sample_order)
        items = fake_transport.created_of("customer")[0]["addressbook"]["items"]

        assert len(items) == 2
        billing, shipping = items
        assert billing["defaultBilling"] is True
        assert billing["addressbookaddress"]["addressee"] == "Dana Reyes\nReyes Outfitters"
        assert billing["addressbookaddress"]["city"] == "Austin"
        assert shipping["defaultShipping"] is True
        assert shipping["addressbookaddress"]["addr1"] == "9 Elm Rd"

    def test_company_from_earlier_attempt_reused(self, resolver, fake_transport, sample_order):
        """A retry finds the company created before the failure."""
        from customer_resolver import MatchMethod

        fake_transport.on_query(COMPANY_QUERY, [{"id": "77", "companyname": "1057113: Reyes Outfitters"}])

        resolution = resolver.resolve(sample_order)

        assert resolution.customer_id == "77"
        assert resolution.match_method == MatchMethod.EXISTING_COMPANY
        assert fake_transport.created == []

    def test_parent_link_on_new_company(self, resolver, fake_transport, sample_order):
        fake_transport.on_query(PARENT_QUERY, [{"id": "300", "companyname": "Reyes Group"}])

        resolver.resolve(sample_order)

        assert fake_transport.created_of("customer")[0]["parent"] == {"id": 300}

    def test_malformed_checkout_email_ignored(self, resolver, fake_transport, order_payload):
        """An invalid checkout email skips the store search and is not stored."""
        from core.models.canonical import SourceOrder

        order_payload["QuestionList"][0]["QuestionAnswer"] = "buyer@"
        resolver.resolve(SourceOrder.from_payload(order_payload))

        assert not any(STORE_QUERY in q for q in fake_transport.queries)
        assert fake_transport.created_of("customer")[0]["email"] == "dana@reyesoutfitters.com"

    def test_company_name_falls_back_to_ship_to_name(self, resolver, fake_transport, order_payload):
        from core.models.canonical import SourceOrder

        order_payload["BillingCompany"] = ""
        resolver.resolve(SourceOrder.from_payload(order_payload))

        assert fake_transport.created_of("customer")[0]["companyName"] == "1057113: Sam Ortiz"

    def test_long_company_name_truncated(self, resolver, fake_transport, order_payload):
        from core.models.canonical import SourceOrder

        order_payload["BillingCompany"] = "X" * 120
        resolver.resolve(SourceOrder.from_payload(order_payload))

        assert len(fake_transport.created_of("customer")[0]["companyName"]) == 83

    def test_no_name_is_validation_error(self, resolver, order_payload):
        from core.errors import ValidationError
        from core.models.canonical import SourceOrder

        for key in ("BillingCompany", "BillingFirstName", "BillingLastName"):
            order_payload[key] = ""
        order_payload["ShipmentList"] = []

        with pytest.raises(ValidationError) as exc_info:
            resolver.resolve(SourceOrder.from_payload(order_payload))
        assert "BillingCompany" in exc_info.value.missing_fields


class TestDropshipOrders:
    """Person customers for dropship recipients."""

    def test_person_with_blank_email(self, resolver, fake_transport, dropship_order):
        """Recipient name from the shipment, invoice number on the last name, no email."""
        from customer_resolver import CustomerKind

        resolution = resolver.resolve(dropship_order)

        assert resolution.candidate.kind == CustomerKind.PERSON
        assert resolution.candidate.email is None
        record = fake_transport.created_of("customer")[0]
        assert record["isPerson"] is True
        assert record["firstName"] == "Sam"
        assert record["lastName"] == "Ortiz: AB-1057113"
        assert record["phone"] == "303-555-0199"
        assert "email" not in record

    def test_parent_company_by_billing_contact(self, resolver, fake_transport, dropship_order):
        """Parent search uses billing email OR billing phone among companies."""
        fake_transport.on_query(PARENT_QUERY, [{"id": "300", "companyname": "Reyes Outfitters"}])

        resolution = resolver.resolve(dropship_order)

        parent_query = fake_transport.queries[0]
        assert "LOWER(email) = LOWER('dana@reyesoutfitters.com')" in parent_query
        assert "phone = '512-555-0100'" in parent_query
        assert "isperson = 'F'" in parent_query
        assert resolution.parent_id == "300"
        assert fake_transport.created_of("customer")[0]["parent"] == {"id": 300}
        person_query = fake_transport.queries[1]
        assert "AND parent = 300" in person_query

    def test_existing_person_reused(self, resolver, fake_transport, dropship_order):
        from customer_resolver import MatchMethod

        fake_transport.on_query(PERSON_QUERY, [{"id": "812", "firstname": "Sam", "lastname": "Ortiz: AB-1057113"}])

        resolution = resolver.resolve(dropship_order)

        assert resolution.customer_id == "812"
        assert resolution.match_method == MatchMethod.EXISTING_PERSON
        assert fake_transport.created == []
        assert "LOWER(lastName) = LOWER('Ortiz: AB-1057113')" in fake_transport.queries[-1]

    def test_name_falls_back_to_billing(self, resolver, fake_transport, order_payload):
        from core.models.canonical import SourceOrder

        order_payload["BillingPaymentMethod"] = "Dropship to Customer"
        order_payload["ShipmentList"][0]["ShipmentFirstName"] = ""
        order_payload["ShipmentList"][0]["ShipmentLastName"] = ""

        resolver.resolve(SourceOrder.from_payload(order_payload))

        record = fake_transport.created_of("customer")[0]
        assert record["firstName"] == "Dana"
        assert record["lastName"] == "Reyes: AB-1057113"

    def test_blank_last_name_left_out_of_search(self, resolver, fake_transport, order_payload):
        """A retry still finds a recipient that has only a first name."""
        from core.models.canonical import SourceOrder
        from customer_resolver import MatchMethod

        order_payload["BillingPaymentMethod"] = "Dropship to Customer"
        order_payload["ShipmentList"][0]["ShipmentLastName"] = ""
        order_payload["InvoiceNumberPrefix"] = ""
        order_payload["InvoiceNumber"] = ""
        order = SourceOrder.from_payload(order_payload)

        def existing_people(query):
            return [{"id": "5001", "firstname": "Sam"}] if fake_transport.created_of("customer") else []

        fake_transport.on_query(PERSON_QUERY, existing_people)

        first = resolver.resolve(order)
        second = resolver.resolve(order)

        person_query = fake_transport.queries[-1]
        assert "LOWER(firstName) = LOWER('Sam')" in person_query
        assert "lastName" not in person_query.split("WHERE")[1]
        assert first.created is True
        assert second.customer_id == first.customer_id
        assert second.match_method == MatchMethod.EXISTING_PERSON
        assert len(fake_transport.created_of("customer")) == 1

    def test_person_search_skipped_without_name(self, resolver, fake_transport):
        assert resolver.find_existing_person("", "") is None
        assert fake_transport.queries == []

    def test_invoice_label_alone_as_last_name(self, resolver, fake_transport, order_payload):
        """No separator is added in front of the invoice number."""
        from core.models.canonical import SourceOrder

        order_payload["BillingPaymentMethod"] = "Dropship to Customer"
        order_payload["ShipmentList"][0]["ShipmentLastName"] = ""

        resolver.resolve(SourceOrder.from_payload(order_payload))

        record = fake_transport.created_of("customer")[0]
        assert record["firstName"] == "Sam"
        assert record["lastName"] == "AB-1057113"

    def test_apostrophes_escaped(self, resolver, fake_transport, order_payload):
        from core.models.canonical import SourceOrder

        order_payload["BillingPaymentMethod"] = "Dropship to Customer"
        order_payload["ShipmentList"][0]["ShipmentLastName"] = "O'Brien"
        order_payload["InvoiceNumberPrefix"] = ""
        order_payload["InvoiceNumber"] = ""

        resolver.resolve(SourceOrder.from_payload(order_payload))

        assert "LOWER('O''Brien')" in fake_transport.queries[-1]


class TestSearchFailures:
    """Search errors are "not found", except rejected credentials."""

    def test_transport_error_treated_as_not_found(self, resolver, fake_transport, dropship_order):
        from core.errors import TransportError

        fake_transport.on_query(PARENT_QUERY, TransportError("timeout"))
        resolution = resolver.resolve(dropship_order)

        assert resolution.created is True
        assert resolution.parent_id is None

    def test_authentication_error_propagates(self, resolver, fake_transport, dropship_order):
        from core.errors import AuthenticationError

        fake_transport.on_query(PARENT_QUERY, AuthenticationError("bad token", 401))
        with pytest.raises(AuthenticationError):
            resolver.resolve(dropship_order)

    def test_create_failure_propagates(self, resolver, fake_transport, sample_order):
        from core.errors import TransportError

        fake_transport.create_errors.append(TransportError("503", 503))
        with pytest.raises(TransportError):
            resolver.resolve(sample_order)


class TestNormalization:
    """Contact field cleaning."""

    def test_email_validation(self):
        from customer_resolver.normalize import is_valid_email
        assert is_valid_email("jane.doe@reyesoutfitters.com") is True
        assert is_valid_email("jane@") is False
        assert is_valid_email("") is False
        assert is_valid_email(None) is False

    def test_phone_normalization(self):
        from customer_resolver.normalize import normalize_phone
        assert normalize_phone(" (555) 010-2000 ") == "(555) 010-2000"
        assert normalize_phone("call me") is None
        assert len(normalize_phone("1" * 30)) == 22

    def test_truncate(self):
        from customer_resolver.normalize import truncate
        assert truncate("Alexandria", 4, "firstName") == "Alex"
        assert truncate(None, 4, "firstName") == ""
