"""
Pytest configuration and shared fixtures.
"""

from typing import Any, Dict
from unittest.mock import Mock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from odata_expand.api.gateway import create_app
from odata_expand.core.config import ServiceConfig
from odata_expand.core.database import Database
from odata_expand.persons.entities import build_model


@pytest.fixture
def mock_session():
    """Create a mock ODataSession."""
    session = Mock()
    session.cfg = Mock()
    session.base = "http://test.example.com/odata/"
    session.timeout = 60.0
    session.verify = True
    session.session = Mock()
    return session


@pytest.fixture
def sample_metadata_xml():
    """$metadata document of the Persons service."""
    return build_model().to_csdl()


@pytest.fixture
def sample_collection_response():
    """Sample OData v4 collection response."""
    return {
        "@odata.context": "http://test.example.com/odata/$metadata#Persons",
        "value": [
            {"Id": 1, "Name": "Ada", "Age": 36, "Attributes": []},
            {"Id": 2, "Name": "Grace", "Age": 85, "Attributes": []},
        ],
    }


@pytest.fixture
def sample_person() -> Dict[str, Any]:
    """Open person record with dynamic properties on every level."""
    return {
        "Name": "Ada",
        "Age": 36,
        "Title": "Countess",
        "Attributes": {"Nickname": "Enchantress"},
        "Orders": [{"Product": "Engine", "Quantity": 2, "Priority": "high"}],
        "Pets": [{"Name": "Rex", "Species": "Dog", "Colour": "Brown"}],
    }


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'persons.db'}"


@pytest_asyncio.fixture
async def database(db_url):
    """Database with all tables created, disposed after the test."""
    db = Database(db_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def make_client(db_url):
    """Factory for a TestClient over a fresh app; closes every client it made."""
    clients = []

    def _make(**overrides: Any) -> TestClient:
        cfg = ServiceConfig(database_url=db_url, **overrides)
        client = TestClient(create_app(cfg))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    """TestClient for the service with default settings."""
    return make_client()
