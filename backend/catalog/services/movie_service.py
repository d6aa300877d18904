"""
Movie Catalog Backend: Movie Service (Business Logic)
========================================================

What:  Create, list and delete movie records.
How:   Each operation takes the MovieStore it should use, waits for the store
       to be ready, performs one atomic MongoDB call and maps the outcome to a
       response schema.
Who:   Called by the movie route handlers; callable directly without HTTP.

Error Handling Strategy:
    Caller mistakes      → ValidationError (nothing is written)
    Store not connected  → StoreUnavailableError (from MovieStore.ensure_ready)
    Driver failures      → DatabaseError, driver message logged not returned

    Operations are independent: a failure in one never affects another, and
    none of them is retried here.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

import pydantic
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from catalog.config import Settings, settings
from catalog.database import MovieStore
from catalog.exceptions import DatabaseError, ValidationError
from catalog.models.movie import document_to_record, new_movie_document, parse_movie_id
from catalog.schemas.movie import (
    DeleteResult,
    MovieCreate,
    MovieCreatedResponse,
    MovieDeletedResponse,
    MovieResponse,
)

logger = logging.getLogger(__name__)


class MovieService:
    """
    Business logic layer for movie operations.

    Responsibilities:
        - create_movie(): validate, insert, return the record with its new id
        - list_movies(): every record, ordered by _id (insertion order)
        - delete_movie(): remove by id, report the removal count

    Args:
        config: Settings whose field limits apply to create. The process-wide
                settings are used when omitted.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config

    async def create_movie(
        self,
        store: MovieStore,
        payload: Union[MovieCreate, Mapping[str, Any]],
    ) -> MovieCreatedResponse:
        """
        Insert one movie.

        Args:
            store: Connected (or connectable) MovieStore
            payload: A MovieCreate or a raw mapping, checked against self.config

        Returns:
            MovieCreatedResponse echoing the fields plus the assigned id

        Raises:
            ValidationError: name, year or rating missing, empty or invalid
            StoreUnavailableError: store not connected
            DatabaseError: insert failed
        """
        movie = self._validate(payload)
        collection = await store.ensure_ready()

        document = new_movie_document(movie.name, movie.year, movie.rating)
        try:
            result = await collection.insert_one(document)
        except PyMongoError as e:
            logger.error("Insert failed for movie '%s': %s", movie.name, e)
            raise DatabaseError(
                message="Could not save the movie. Please try again.",
                context={"operation": "insert_one", "error_type": type(e).__name__},
            ) from e

        movie_id = str(result.inserted_id)
        logger.info("Movie %s created: %s (%s)", movie_id, movie.name, movie.year)

        return MovieCreatedResponse(
            message="Movie added successfully",
            movie=MovieResponse(
                id=movie_id,
                name=movie.name,
                year=movie.year,
                rating=movie.rating,
            ),
        )

    async def list_movies(self, store: MovieStore) -> List[MovieResponse]:
        """
        Return every stored movie, oldest first.

        ObjectIds start with their creation timestamp, so sorting on _id gives
        insertion order. An empty collection yields an empty list.

        Raises:
            StoreUnavailableError: store not connected
            DatabaseError: query failed
        """
        collection = await store.ensure_ready()
        try:
            documents = await collection.find({}).sort("_id", ASCENDING).to_list(None)
        except PyMongoError as e:
            logger.error("Listing movies failed: %s", e)
            raise DatabaseError(
                message="Could not retrieve movies. Please try again.",
                context={"operation": "find", "error_type": type(e).__name__},
            ) from e

        return [MovieResponse.model_validate(document_to_record(doc)) for doc in documents]

    async def delete_movie(self, store: MovieStore, movie_id: Any) -> MovieDeletedResponse:
        """
        Delete one movie by id.

        Deleting an id that does not exist is not an error; the result then
        reports deleted_count=0. The deleted document is not returned.

        Raises:
            ValidationError: movie_id is not a valid ObjectId
            StoreUnavailableError: store not connected
            DatabaseError: delete failed
        """
        object_id = parse_movie_id(movie_id)
        collection = await store.ensure_ready()

        try:
            result = await collection.delete_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Delete failed for movie %s: %s", object_id, e)
            raise DatabaseError(
                message="Could not delete the movie. Please try again.",
                context={
                    "operation": "delete_one",
                    "movie_id": str(object_id),
                    "error_type": type(e).__name__,
                },
            ) from e

        # deleted_count is only available on acknowledged writes
        acknowledged = bool(result.acknowledged)
        deleted_count = result.deleted_count if acknowledged else 0

        if deleted_count:
            logger.info("Movie %s deleted", object_id)
            message = "Movie deleted successfully"
        else:
            logger.info("Delete of movie %s matched nothing", object_id)
            message = "No movie with that id"

        return MovieDeletedResponse(
            message=message,
            result=DeleteResult(deleted_count=deleted_count, acknowledged=acknowledged),
        )

    def _validate(self, payload: Union[MovieCreate, Mapping[str, Any]]) -> MovieCreate:
        # A prebuilt model may have been checked under other limits
        if isinstance(payload, MovieCreate):
            payload = payload.model_dump()
        if not isinstance(payload, Mapping):
            raise ValidationError(message="Movie payload must be an object", field="body")
        try:
            return MovieCreate.model_validate(
                dict(payload),
                context={"settings": self.config or settings},
            )
        except pydantic.ValidationError as e:
            raise ValidationError.from_errors(e.errors()) from e
