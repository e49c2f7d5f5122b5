"""
odata_expand.api.models - Pydantic models for API responses
============================================================
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Example defaults for the Swagger UI
# ---------------------------------------------------------------------------

EXAMPLE_PERSON: Dict[str, Any] = {
    "Name": "Ada Lovelace",
    "Age": 36,
    "Attributes": {"Nickname": "Enchantress of Numbers"},
    "Title": "Countess",
    "Orders": [{"Product": "Analytical Engine", "Quantity": 1}],
    "Pets": [{"Name": "Rex", "Species": "Dog", "Colour": "Brown"}],
}

EXAMPLE_FILTER = "Age gt 10"
EXAMPLE_EXPAND = "Orders,Pets"


class ODataErrorDetail(BaseModel):
    """Body of an OData error."""

    code: str = Field(description="Error code, e.g. BadRequest")
    message: str = Field(description="Human readable message")


class ODataErrorResponse(BaseModel):
    """OData JSON error envelope."""

    error: ODataErrorDetail


class PersonCollectionResponse(BaseModel):
    """Collection read response (documentation only; entity shapes vary with $select/$expand)."""

    model_config = ConfigDict(populate_by_name=True)

    context: str = Field(alias="@odata.context")
    count: Optional[int] = Field(default=None, alias="@odata.count")
    value: List[Dict[str, Any]]
    next_link: Optional[str] = Field(default=None, alias="@odata.nextLink")


class HealthResponse(BaseModel):
    ok: bool
    version: str
