"""
Persons OData Service (odata_expand)
====================================

An OData-style ``Persons`` entity set whose reads always carry their
open-ended ``Attributes``, a client SDK for it, and helpers for reaching
non-public members of objects.

Usage
-----
>>> from odata_expand import ODataConfig, ODataSession, PersonsService
>>>
>>> with ODataSession(ODataConfig("http://localhost:5050/odata/")) as sess:
...     persons = PersonsService(sess)
...     persons.create({"Name": "Ada", "Age": 36, "Title": "Countess"})
...     adults = persons.query(filter_expr="Age ge 18", expand=["Orders"])

Subpackages
-----------
- odata_expand.core: Configuration, persistence and reflection helpers
- odata_expand.odata: $expand rewrite, query options, $metadata
- odata_expand.persons: Persons entities, open records, persistence context
- odata_expand.client: HTTP client SDK
- odata_expand.api: FastAPI service

"""

__version__ = "0.1.0"

from odata_expand.core.reflection import (
    MemberNotFoundError,
    get_private_field_value,
    get_private_property_value,
    set_private_field_value,
    set_private_property_value,
)

from odata_expand.client import (
    ODataConfig,
    ODataMetadata,
    ODataSession,
    ODataUpstreamError,
    PersonsService,
)

__all__ = [
    # Version
    "__version__",
    # Reflection
    "MemberNotFoundError",
    "get_private_field_value",
    "get_private_property_value",
    "set_private_field_value",
    "set_private_property_value",
    # Client
    "ODataConfig",
    "ODataMetadata",
    "ODataSession",
    "ODataUpstreamError",
    "PersonsService",
]
