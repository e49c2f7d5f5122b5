"""
odata_expand.core - Configuration, persistence and reflection
==============================================================

- ServiceConfig: Environment-driven service configuration
- Database: Async engine and session factory
- get/set_private_*_value: Named access to non-public members

"""

from odata_expand.core.config import ServiceConfig, load_env_file
from odata_expand.core.database import Base, Database
from odata_expand.core.reflection import (
    MemberNotFoundError,
    get_private_field_value,
    get_private_property_value,
    set_private_field_value,
    set_private_property_value,
)

__all__ = [
    "ServiceConfig",
    "load_env_file",
    "Base",
    "Database",
    "MemberNotFoundError",
    "get_private_field_value",
    "get_private_property_value",
    "set_private_field_value",
    "set_private_property_value",
]
