"""Shared pytest fixtures: a recording fake ERP transport and sample orders."""

import copy
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from connectors.erp_base import ERPResponse, ERPTransport
from core.config import OrderMappingSettings, ProcessingSettings
from core.errors import NotFoundError


QueryResult = Union[List[Dict[str, Any]], Exception, Callable[[str], List[Dict[str, Any]]]]


class FakeTransport(ERPTransport):
    """In-memory ERPTransport that records every call.

    Queries are answered by the first registered fragment contained in the
    query text; unmatched queries return no rows. Creates get sequential ids
    returned through a Location header, as NetSuite does on 204.
    """

    def __init__(self):
        self.queries: List[str] = []
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.created: List[Tuple[str, Dict[str, Any]]] = []
        self.items: Dict[int, Dict[str, Any]] = {}
        self.create_errors: List[Exception] = []
        self._query_results: List[Tuple[str, QueryResult]] = []
        self._next_id = 5000

    def on_query(self, fragment: str, result: QueryResult) -> "FakeTransport":
        self._query_results.append((fragment, result))
        return self

    def created_of(self, record_type: str) -> List[Dict[str, Any]]:
        return [payload for kind, payload in self.created if kind == record_type]

    def run_query(self, query: str) -> List[Dict[str, Any]]:
        self.queries.append(query)
        for fragment, result in self._query_results:
            if fragment in query:
                if isinstance(result, Exception):
                    raise result
                if callable(result):
                    return result(query)
                return list(result)
        return []

    def execute(self, method, path, params=None, body=None) -> ERPResponse:
        self.calls.append((method, path, body))
        parts = path.strip("/").split("/")
        record_type = parts[0]

        if method == "POST":
            if self.create_errors:
                raise self.create_errors.pop(0)
            self._next_id += 1
            self.created.append((record_type, body))
            return ERPResponse(
                status_code=204,
                headers={"Location": f"https://acct.suitetalk.api.netsuite.com/services/rest/record/v1/{record_type}/{self._next_id}"},
            )

        if method == "GET" and record_type == "item":
            item_id = int(parts[1])
            if item_id not in self.items:
                raise NotFoundError(f"Resource not found: {path}", 404)
            return ERPResponse(status_code=200, body=self.items[item_id])

        return ERPResponse(status_code=200, body={})


SAMPLE_ORDER = {
    "OrderID": 1057113,
    "OrderDate": "2024-03-15T10:22:00",
    "OrderStatusID": 1,
    "BillingPaymentMethod": "Credit Card",
    "InvoiceNumberPrefix": "AB-",
    "InvoiceNumber": 1057113,
    "BillingFirstName": "Dana",
    "BillingLastName": "Reyes",
    "BillingCompany": "Reyes Outfitters",
    "BillingAddress": "100 Main St",
    "BillingAddress2": "",
    "BillingCity": "Austin",
    "BillingState": "TX",
    "BillingZipCode": "78701",
    "BillingCountry": "US",
    "BillingPhoneNumber": "512-555-0100",
    "BillingEmail": "dana@reyesoutfitters.com",
    "OrderAmount": 6778.65,
    "OrderDiscount": 1803.34,
    "SalesTax": 0,
    "ShippingCost": 81.99,
    "CustomerComments": "Leave at dock 4",
    "ShipmentList": [
        {
            "ShipmentFirstName": "Sam",
            "ShipmentLastName": "Ortiz",
            "ShipmentCompany": "",
            "ShipmentAddress": "9 Elm Rd",
            "ShipmentAddress2": "",
            "ShipmentCity": "Denver",
            "ShipmentState": "CO",
            "ShipmentZipCode": "80202",
            "ShipmentCountry": "US",
            "ShipmentPhone": "303-555-0199",
        }
    ],
    "OrderItemList": [
        {
            "ItemID": "SKU-100",
            "ItemDescription": "Roping saddle",
            "ItemQuantity": 2,
            "ItemUnitPrice": 4000.00,
            "ItemOptionPrice": 250.00,
        }
    ],
    "QuestionList": [
        {"QuestionID": 1, "QuestionAnswer": " buyer@reyesoutfitters.com "},
        {"QuestionID": 2, "QuestionAnswer": "PO-7781"},
    ],
}


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def mapping():
    return OrderMappingSettings()


@pytest.fixture
def processing():
    return ProcessingSettings()


@pytest.fixture
def order_payload():
    """A fresh copy of the sample storefront order (safe to mutate)."""
    return copy.deepcopy(SAMPLE_ORDER)


@pytest.fixture
def sample_order(order_payload):
    from core.models.canonical import SourceOrder
    return SourceOrder.from_payload(order_payload)


@pytest.fixture
def dropship_order(order_payload):
    from core.models.canonical import SourceOrder
    order_payload["BillingPaymentMethod"] = "Dropship to Customer"
    return SourceOrder.from_payload(order_payload)


@pytest.fixture
def sleeps():
    """Records requested sleeps instead of blocking."""
    return []


@pytest.fixture
def no_sleep(sleeps):
    return sleeps.append
