"""NetSuite data models.

These are NetSuite-specific models that map to REST record and SuiteQL
responses. They are separate from the canonical models in /core/models/.

SuiteQL returns lower-cased column names and "T"/"F" for booleans; the
REST record API returns camelCase names and JSON booleans. The parsers below
accept both.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


def _ns_bool(value):
    if isinstance(value, str):
        return value.strip().upper() in ("T", "TRUE", "Y", "YES", "1")
    return value


def _ns_id(value):
    """Ids arrive as numbers, strings, or {"id": ...} references."""
    if isinstance(value, dict):
        value = value.get("id")
    if value is None or value == "":
        return None
    return str(value)


NSBool = Annotated[bool, BeforeValidator(_ns_bool)]
NSId = Annotated[str, BeforeValidator(_ns_id)]
NSOptionalId = Annotated[Optional[str], BeforeValidator(_ns_id)]


# =============================================================================
# NetSuite API Models
# =============================================================================

class NSBaseModel(BaseModel):
    """Base model for NetSuite API payloads."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NSErrorDetail(NSBaseModel):
    """One entry of ``o:errorDetails`` in a NetSuite error response."""
    detail: str = Field("Unknown error", alias="detail")
    error_code: str = Field("Unknown code", alias="o:errorCode")
    error_path: str = Field("Unknown path", alias="o:errorPath")

    def to_dict(self) -> Dict[str, str]:
        return {
            "detail": self.detail,
            "errorCode": self.error_code,
            "errorPath": self.error_path,
        }


class NSErrorResponse(NSBaseModel):
    """NetSuite REST error body."""
    title: Optional[str] = Field(None, alias="title")
    status: Optional[int] = Field(None, alias="status")
    error_details: List[NSErrorDetail] = Field(default_factory=list, alias="o:errorDetails")

    @property
    def summary(self) -> str:
        if self.error_details:
            return "; ".join(f"{d.error_code}: {d.detail}" for d in self.error_details)
        return self.title or "Unknown error"


class SuiteQLPage(NSBaseModel):
    """One page of SuiteQL results.

    Maps to: POST /services/rest/query/v1/suiteql
    """
    items: List[Dict[str, Any]] = Field(default_factory=list, alias="items")
    has_more: bool = Field(False, alias="hasMore")
    count: Optional[int] = Field(None, alias="count")
    offset: Optional[int] = Field(None, alias="offset")
    total_results: Optional[int] = Field(None, alias="totalResults")


class NSItemRecord(NSBaseModel):
    """Item record used to pre-validate tax/shipping/discount references.

    Maps to: GET /services/rest/record/v1/item/{id}
    """
    id: NSOptionalId = Field(None, alias="id")
    itemid: Optional[str] = Field(None, alias="itemId")
    displayname: Optional[str] = Field(None, alias="displayName")
    isinactive: NSBool = Field(False, alias="isInactive")
    issaleitem: NSBool = Field(False, alias="isSaleItem")

    @property
    def usable(self) -> bool:
        """Active and flagged sellable."""
        return not self.isinactive and self.issaleitem


class NSTransactionRow(NSBaseModel):
    """SuiteQL row from the ``transaction`` table."""
    id: NSId
    tranid: Optional[str] = None
    externalid: Optional[str] = None
    status: Optional[str] = None
    foreigntotal: Optional[Decimal] = None
    trandate: Optional[str] = None
    entity: NSOptionalId = None


class NSCustomerRow(NSBaseModel):
    """SuiteQL row from the ``customer`` table."""
    id: NSId
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    companyname: Optional[str] = None
    phone: Optional[str] = None
    isperson: NSBool = False
    parent: NSOptionalId = None
