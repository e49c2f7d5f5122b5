"""
odata_expand.api - REST/OData HTTP surface
===========================================

FastAPI application exposing the ``Persons`` entity set.

Usage
-----
>>> from odata_expand.api import create_app
>>> app = create_app()
>>> # Run with: uvicorn odata_expand.api:app

Or run directly:
>>> python -m odata_expand.api

"""

from odata_expand.core.config import load_env_file

# Load .env before the default app reads its configuration
load_env_file()

from odata_expand.api.gateway import create_app, PersonsGateway  # noqa: E402

# Create default app instance for uvicorn
app = create_app()

__all__ = [
    "create_app",
    "PersonsGateway",
    "app",
]
