"""
odata_expand.client - Client SDK
=================================

- ODataSession: HTTP session with retry and OData error extraction
- PersonsService: query/create client for the Persons entity set
- ODataMetadata: $metadata parsing and field validation

"""

from odata_expand.client.session import ODataConfig, ODataSession, ODataUpstreamError
from odata_expand.client.metadata import EntitySetInfo, ODataMetadata
from odata_expand.client.service import PersonsService, escape_odata_literal

__all__ = [
    "ODataConfig",
    "ODataSession",
    "ODataUpstreamError",
    "EntitySetInfo",
    "ODataMetadata",
    "PersonsService",
    "escape_odata_literal",
]
