"""
Movie Catalog Backend: Movie Service Unit Tests
==================================================

What:  create / list / delete against the in-memory collection.

What we test:
    ✅ Create then list returns the submitted fields with a store-assigned id
    ✅ Missing or empty fields raise ValidationError and persist nothing
    ✅ Delete reports 1, then 0 on repeat (idempotent)
    ✅ Malformed ids raise ValidationError, not InternalError
    ✅ Empty collection lists as []
    ✅ Concurrent creates get distinct ids
    ✅ Driver failures become DatabaseError; unready store → StoreUnavailableError
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from catalog.config import Settings
from catalog.database import MovieStore
from catalog.exceptions import (
    DatabaseError,
    InternalError,
    StoreUnavailableError,
    ValidationError,
)
from catalog.schemas.movie import MovieCreate
from catalog.services.movie_service import MovieService


class TestCreateMovie:
    def setup_method(self):
        self.service = MovieService()

    @pytest.mark.asyncio
    async def test_create_returns_assigned_id(self, store, fake_collection, sample_movie):
        result = await self.service.create_movie(store, sample_movie)

        assert result.message == "Movie added successfully"
        assert ObjectId.is_valid(result.movie.id)
        assert result.movie.name == "Inception"
        assert result.movie.year == "2010"
        assert result.movie.rating == "9.0"

        stored = fake_collection.documents[ObjectId(result.movie.id)]
        assert stored == {
            "_id": ObjectId(result.movie.id),
            "name": "Inception",
            "year": "2010",
            "rating": "9.0",
        }

    @pytest.mark.asyncio
    async def test_create_accepts_validated_model(self, store, fake_collection):
        payload = MovieCreate(name="Heat", year="1995", rating="8.3")
        result = await self.service.create_movie(store, payload)

        assert result.movie.name == "Heat"
        assert len(fake_collection.documents) == 1

    @pytest.mark.asyncio
    async def test_service_settings_recheck_prebuilt_model(self, store, fake_collection):
        service = MovieService(Settings(strict_field_validation=True))
        payload = MovieCreate(name="Heat", year="mid nineties", rating="8.3")

        with pytest.raises(ValidationError) as exc_info:
            await service.create_movie(store, payload)

        assert exc_info.value.field == "body"
        assert fake_collection.documents == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "year", "rating"])
    async def test_missing_field_rejected(self, store, fake_collection, sample_movie, missing):
        payload = dict(sample_movie)
        del payload[missing]

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_movie(store, payload)

        assert exc_info.value.field == missing
        assert fake_collection.documents == {}

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, store, fake_collection):
        with pytest.raises(ValidationError, match="name"):
            await self.service.create_movie(
                store, {"name": "", "year": "2010", "rating": "9.0"}
            )
        assert fake_collection.documents == {}

    @pytest.mark.asyncio
    async def test_whitespace_only_rejected(self, store, fake_collection):
        with pytest.raises(ValidationError):
            await self.service.create_movie(
                store, {"name": "Inception", "year": "   ", "rating": "9.0"}
            )
        assert fake_collection.documents == {}

    @pytest.mark.asyncio
    async def test_non_mapping_payload_rejected(self, store):
        with pytest.raises(ValidationError, match="object"):
            await self.service.create_movie(store, ["Inception", "2010", "9.0"])

    @pytest.mark.asyncio
    async def test_insert_failure_raises_database_error(self, store, fake_collection, sample_movie):
        fake_collection.fail_with = AutoReconnect("connection reset")

        with pytest.raises(DatabaseError) as exc_info:
            await self.service.create_movie(store, sample_movie)

        assert isinstance(exc_info.value, InternalError)
        assert exc_info.value.context["error_type"] == "AutoReconnect"
        assert "connection reset" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_validation_runs_before_store_check(self):
        unready = MovieStore(client=None)

        with pytest.raises(ValidationError):
            await self.service.create_movie(unready, {"name": "Heat"})

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids(self, store, fake_collection):
        first, second = await asyncio.gather(
            self.service.create_movie(store, {"name": "Alien", "year": "1979", "rating": "8.5"}),
            self.service.create_movie(store, {"name": "Aliens", "year": "1986", "rating": "8.4"}),
        )

        assert first.movie.id != second.movie.id
        listed = await self.service.list_movies(store)
        assert {m.id for m in listed} == {first.movie.id, second.movie.id}


class TestListMovies:
    def setup_method(self):
        self.service = MovieService()

    @pytest.mark.asyncio
    async def test_empty_collection_lists_empty(self, store):
        assert await self.service.list_movies(store) == []

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, store):
        for name in ("First", "Second", "Third"):
            await self.service.create_movie(store, {"name": name, "year": "2000", "rating": "5"})

        listed = await self.service.list_movies(store)

        assert [m.name for m in listed] == ["First", "Second", "Third"]

    @pytest.mark.asyncio
    async def test_list_tolerates_foreign_documents(self, store, fake_collection):
        oid = ObjectId()
        fake_collection.documents[oid] = {"_id": oid, "name": "Imported", "year": 1999}

        listed = await self.service.list_movies(store)

        assert listed[0].id == str(oid)
        assert listed[0].year == "1999"
        assert listed[0].rating == ""

    @pytest.mark.asyncio
    async def test_read_failure_raises_database_error(self, store, fake_collection):
        fake_collection.fail_with = ServerSelectionTimeoutError("no servers")

        with pytest.raises(DatabaseError):
            await self.service.list_movies(store)

    @pytest.mark.asyncio
    async def test_unreachable_store_raises_unavailable(self, fake_client):
        fake_client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("down"))
        unready = MovieStore(client=fake_client, connect_attempts=1)

        with pytest.raises(StoreUnavailableError):
            await self.service.list_movies(unready)


class TestDeleteMovie:
    def setup_method(self):
        self.service = MovieService()

    @pytest.mark.asyncio
    async def test_delete_then_repeat_is_idempotent(self, store, sample_movie):
        created = await self.service.create_movie(store, sample_movie)

        first = await self.service.delete_movie(store, created.movie.id)
        second = await self.service.delete_movie(store, created.movie.id)

        assert first.result.deleted_count == 1
        assert first.result.acknowledged is True
        assert second.result.deleted_count == 0
        assert second.message == "No movie with that id"

    @pytest.mark.asyncio
    async def test_delete_unknown_id_counts_zero(self, store):
        result = await self.service.delete_movie(store, str(ObjectId()))
        assert result.result.deleted_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["", "abc", "z" * 24, "65a1f0c2e4b0a1b2c3d4e5f", 42, None])
    async def test_malformed_id_is_validation_error(self, store, bad_id):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.delete_movie(store, bad_id)

        assert not isinstance(exc_info.value, InternalError)
        assert exc_info.value.field == "id"

    @pytest.mark.asyncio
    async def test_delete_failure_raises_database_error(self, store, fake_collection):
        fake_collection.fail_with = AutoReconnect("gone")

        with pytest.raises(DatabaseError) as exc_info:
            await self.service.delete_movie(store, str(ObjectId()))

        assert exc_info.value.context["operation"] == "delete_one"

    @pytest.mark.asyncio
    async def test_inception_scenario(self, store):
        created = await self.service.create_movie(
            store, {"name": "Inception", "year": "2010", "rating": "9.0"}
        )
        listed = await self.service.list_movies(store)
        assert [(m.name, m.year, m.rating) for m in listed] == [("Inception", "2010", "9.0")]

        deleted = await self.service.delete_movie(store, created.movie.id)
        assert deleted.result.deleted_count == 1

        assert await self.service.list_movies(store) == []
