"""
Product API: Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    ├── mock_collection:    MagicMock/AsyncMock collection for unit tests
    ├── memory_collection:  In-memory collection double for endpoint scenarios
    ├── sample_product_doc: A stored product document
    ├── test_client:        HTTPX AsyncClient, service backed by memory_collection
    ├── mock_client:        HTTPX AsyncClient, service backed by mock_collection
    └── unready_client:     HTTPX AsyncClient with no service installed (503)
"""

import copy
import os
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
import bson
from bson import ObjectId
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings BEFORE any product_api imports
os.environ["MONGO_URI"] = "mongodb://localhost:27017/?test=1"
os.environ["LOG_LEVEL"] = "WARNING"


# ══════════════════════════════════════════════════════════════════════════
# In-memory collection double
# ══════════════════════════════════════════════════════════════════════════


def _matches(document, query):
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict):
            if "$gte" in condition and not (value is not None and value >= condition["$gte"]):
                return False
        elif value != condition:
            return False
    return True


def _project(document, projection):
    if projection is None:
        return copy.deepcopy(document)
    included = [key for key, flag in projection.items() if flag and key != "_id"]
    result = {}
    if projection.get("_id", 1):
        result["_id"] = document["_id"]
    for key in included:
        if key in document:
            result[key] = copy.deepcopy(document[key])
    return result


class InMemoryCursor:
    """Supports the find() → sort() → to_list() chain ProductService uses."""

    def __init__(self, documents, projection):
        self._documents = documents
        self._projection = projection

    def sort(self, spec):
        for key, direction in reversed(spec):
            self._documents.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return [_project(doc, self._projection) for doc in self._documents]


class InMemoryCollection:
    """
    Minimal stand-in for an AsyncCollection holding documents in a dict.

    Only the operations and operators ProductService issues are supported:
    equality / $gte filters, inclusion projections, $set and $currentDate.
    """

    def __init__(self):
        self.documents = {}

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        # The driver encodes before sending; unencodable values fail here too
        bson.encode(document)
        self.documents[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query):
        for document in self.documents.values():
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query, projection=None):
        matching = [doc for doc in self.documents.values() if _matches(doc, query)]
        return InMemoryCursor(matching, projection)

    async def find_one_and_update(self, query, update, return_document=None):
        for document in self.documents.values():
            if _matches(document, query):
                bson.encode(update.get("$set", {}))
                document.update(copy.deepcopy(update.get("$set", {})))
                for key in update.get("$currentDate", {}):
                    document[key] = datetime.now(timezone.utc)
                return copy.deepcopy(document)
        return None

    async def delete_one(self, query):
        for key, document in list(self.documents.items()):
            if _matches(document, query):
                del self.documents[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def mock_collection():
    """
    Provides a mock products collection.

    Usage:
        async def test_get(mock_collection):
            mock_collection.find_one.return_value = doc
            result = await ProductService(mock_collection).get_product(doc["_id"])

    `find` is synchronous (it returns a cursor); the cursor's `sort` returns
    the same cursor and `to_list` is awaitable.
    """
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.delete_one = AsyncMock()

    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    return collection


@pytest.fixture
def memory_collection():
    return InMemoryCollection()


@pytest.fixture
def sample_product_doc():
    """A product document as the driver returns it (ObjectId, aware datetime)."""
    return {
        "_id": ObjectId("65f1c0c2a8b4e5d6f7a8b9c0"),
        "name": "Pen",
        "category": "Stationery",
        "price": 1.5,
        "stock": 0,
        "createdAt": datetime(2024, 3, 13, 12, 0, 0, 123000, tzinfo=timezone.utc),
    }


def _client_for(app):
    # raise_app_exceptions=False: the catch-all handler's 500 is returned
    # instead of the exception Starlette re-raises after sending it
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def test_client(memory_collection):
    """
    HTTPX AsyncClient talking to a fresh app whose ProductService is backed
    by the in-memory collection. The lifespan does not run, so no MongoDB
    connection is attempted.
    """
    from product_api.main import create_app
    from product_api.services.product_service import ProductService

    app = create_app()
    app.state.product_service = ProductService(memory_collection)
    async with _client_for(app) as client:
        yield client


@pytest_asyncio.fixture
async def mock_client(mock_collection):
    """Like test_client, but the service uses mock_collection."""
    from product_api.main import create_app
    from product_api.services.product_service import ProductService

    app = create_app()
    app.state.product_service = ProductService(mock_collection)
    async with _client_for(app) as client:
        yield client


@pytest_asyncio.fixture
async def unready_client():
    """A fresh app before the lifespan has installed a ProductService."""
    from product_api.main import create_app

    async with _client_for(create_app()) as client:
        yield client
