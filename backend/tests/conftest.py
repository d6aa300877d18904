"""
Movie Catalog Backend: Test Configuration (conftest.py)
==========================================================

What:  Shared fixtures: an in-memory stand-in for the movies collection,
       a MovieStore wired to it, and an HTTPX client for the FastAPI app.
How:   The fake client/collection implement just the pymongo async calls the
       service makes (admin.command, insert_one, find().sort().to_list,
       delete_one), so no MongoDB server is needed.

Fixture Hierarchy (all function-scoped):
    fake_collection → fake_client → store → test_client
"""

import os

# Settings are read at import time; set the environment first.
os.environ["MONGO_URL"] = "mongodb://localhost:27017"
os.environ["MONGO_DATABASE"] = "movie_catalog_test"
os.environ["MONGO_CONNECT_ATTEMPTS"] = "1"
os.environ["LOG_LEVEL"] = "WARNING"

from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from catalog.database import MovieStore


# ══════════════════════════════════════════════════════════════════════════
# In-memory MongoDB doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]], error: Optional[Exception] = None):
        self._documents = documents
        self._error = error

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._documents.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        if self._error:
            raise self._error
        docs = [dict(d) for d in self._documents]
        return docs if length is None else docs[:length]


class FakeCollection:
    """
    Keeps documents in a dict keyed by _id.

    Set `fail_with` to an exception instance to make every operation raise it.
    """

    def __init__(self):
        self.documents: Dict[ObjectId, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def insert_one(self, document: Dict[str, Any]):
        self._check()
        # pymongo adds _id to the caller's dict too
        document.setdefault("_id", ObjectId())
        self.documents[document["_id"]] = dict(document)
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    def find(self, filter: Optional[Dict[str, Any]] = None) -> FakeCursor:
        return FakeCursor(list(self.documents.values()), error=self.fail_with)

    async def delete_one(self, filter: Dict[str, Any]):
        self._check()
        removed = self.documents.pop(filter["_id"], None)
        return SimpleNamespace(deleted_count=0 if removed is None else 1, acknowledged=True)


class FakeMongoClient:
    """Routes client[db][collection] to one FakeCollection and records the names."""

    def __init__(self, collection: FakeCollection):
        self.collection = collection
        self.admin = SimpleNamespace(command=AsyncMock(return_value={"ok": 1.0}))
        self.close = AsyncMock()
        self.opened: List[str] = []

    def __getitem__(self, database: str):
        client = self

        class _Database:
            def __getitem__(self, name: str):
                client.opened.append(f"{database}.{name}")
                return client.collection

        return _Database()


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def fake_client(fake_collection) -> FakeMongoClient:
    return FakeMongoClient(fake_collection)


@pytest_asyncio.fixture
async def store(fake_client):
    """A connected MovieStore backed by the in-memory collection."""
    movie_store = MovieStore(
        database="movie_catalog_test",
        collection="movies",
        connect_attempts=1,
        client=fake_client,
    )
    await movie_store.connect()
    yield movie_store
    await movie_store.close()


@pytest.fixture
def sample_movie() -> Dict[str, str]:
    return {"name": "Inception", "year": "2010", "rating": "9.0"}


@pytest_asyncio.fixture
async def test_client(store):
    """
    HTTPX AsyncClient talking to a fresh app built around `store`.

    ASGITransport does not run the lifespan, so the store is connected by
    its own fixture.
    """
    from catalog.main import create_app

    app = create_app(store=store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
