"""
odata_expand.odata - OData request handling
============================================

- rewrite_query_string / rewrite_target: implicit Attributes expansion
- QueryOptions / apply_options: system query options on SQLAlchemy selects
- EdmModel: entity types, $metadata and the service document

"""

from odata_expand.odata.errors import ExpandRewriteError, ODataQueryError, ODataRequestError
from odata_expand.odata.expand import rewrite_expand_value, rewrite_query_string, rewrite_target
from odata_expand.odata.metadata import EdmModel, EntityShape, NavigationProperty, StructuralProperty
from odata_expand.odata.options import ExpandItem, QueryOptions, apply_options, parse_expand

__all__ = [
    "ExpandRewriteError",
    "ODataQueryError",
    "ODataRequestError",
    "rewrite_expand_value",
    "rewrite_query_string",
    "rewrite_target",
    "EdmModel",
    "EntityShape",
    "NavigationProperty",
    "StructuralProperty",
    "ExpandItem",
    "QueryOptions",
    "apply_options",
    "parse_expand",
]
