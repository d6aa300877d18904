"""
Movie Catalog Backend: Movie Route Handlers
==============================================

What:  The HTTP surface of the catalog: create, list and delete movies.
How:   Thin handlers; each resolves the MovieStore dependency and delegates
       to a MovieService bound to the app settings. Errors propagate to the
       global handlers in main.py.

Routes (relative to config.api_prefix, "/api" by default):
    POST   /movies             create a movie                 → 201
    GET    /movies/stream      list every movie               → 200
    GET    /movies             same list                      → 200
    POST   /delete             delete by id in the JSON body  → 200
    DELETE /movies/{movie_id}  delete by id in the path       → 200

List responses carry no caching headers; the list changes on every write.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Response

from catalog.config import Settings
from catalog.database import MovieStore, get_store
from catalog.schemas.movie import (
    ErrorResponse,
    MovieCreate,
    MovieCreatedResponse,
    MovieDeleteRequest,
    MovieDeletedResponse,
    MovieResponse,
)
from catalog.services.movie_service import MovieService

logger = logging.getLogger(__name__)

STORE_ERRORS = {
    500: {"description": "Store error", "model": ErrorResponse},
    503: {"description": "Store not connected", "model": ErrorResponse},
}


def build_router(config: Settings) -> APIRouter:
    """
    Creates the movie router mounted under `config.api_prefix`.

    The prefix differs between deployment shapes ("/api" behind a shared
    host, "" for the standalone server), so it is chosen at app build time.
    Field limits on create also come from `config`.
    """
    router = APIRouter(prefix=config.api_prefix, tags=["Movies"])
    service = MovieService(config)

    @router.post(
        "/movies",
        status_code=201,
        response_model=MovieCreatedResponse,
        responses={
            201: {"description": "Movie created", "model": MovieCreatedResponse},
            400: {"description": "Missing or invalid field", "model": ErrorResponse},
            **STORE_ERRORS,
        },
        summary="Add a movie",
        # The body is checked by the service under this app's limits; the
        # schema is still published for the docs.
        openapi_extra={
            "requestBody": {
                "required": True,
                "content": {"application/json": {"schema": MovieCreate.model_json_schema()}},
            }
        },
    )
    async def create_movie(
        payload: Dict[str, Any] = Body(...),
        store: MovieStore = Depends(get_store),
    ) -> MovieCreatedResponse:
        return await service.create_movie(store, payload)

    async def list_movies(
        response: Response,
        store: MovieStore = Depends(get_store),
    ) -> List[MovieResponse]:
        movies = await service.list_movies(store)
        response.headers["X-Total-Count"] = str(len(movies))
        return movies

    for path, name in (("/movies/stream", "stream_movies"), ("/movies", "list_movies")):
        router.add_api_route(
            path,
            list_movies,
            methods=["GET"],
            name=name,
            response_model=List[MovieResponse],
            responses=STORE_ERRORS,
            summary="List all movies",
            description="Every stored movie, oldest first. No filtering or paging.",
        )

    @router.post(
        "/delete",
        response_model=MovieDeletedResponse,
        responses={
            400: {"description": "Malformed movie id", "model": ErrorResponse},
            **STORE_ERRORS,
        },
        summary="Delete a movie by id",
        description=(
            "Reports how many documents were removed (0 or 1). "
            "Deleting an unknown id succeeds with deleted_count 0."
        ),
    )
    async def delete_movie(
        payload: MovieDeleteRequest,
        store: MovieStore = Depends(get_store),
    ) -> MovieDeletedResponse:
        return await service.delete_movie(store, payload.id)

    @router.delete(
        "/movies/{movie_id}",
        response_model=MovieDeletedResponse,
        responses={
            400: {"description": "Malformed movie id", "model": ErrorResponse},
            **STORE_ERRORS,
        },
        summary="Delete a movie by id (path form)",
    )
    async def delete_movie_by_path(
        movie_id: str,
        store: MovieStore = Depends(get_store),
    ) -> MovieDeletedResponse:
        return await service.delete_movie(store, movie_id)

    return router
