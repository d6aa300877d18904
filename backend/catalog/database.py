"""
Movie Catalog Backend: MongoDB Store Client
==============================================

What:  MovieStore owns the pymongo AsyncMongoClient and the movies collection.
How:   Constructed once by the app factory, connected in the lifespan handler,
       stored on app.state and handed to route handlers through get_store().
       Nothing in the package holds a module-level connection handle.

Lifecycle:
    MovieStore(...)      → not ready, no client yet
    await connect()      → client created, server pinged, collection bound
                           (retried with exponential backoff)
    await ensure_ready() → per-request precondition; one lazy reconnect
                           attempt, StoreUnavailableError if it fails
    await close()        → client closed, store back to not ready

Connection Pooling:
    AsyncMongoClient keeps its own pool and is safe to share across all
    concurrent requests on the event loop. serverSelectionTimeoutMS bounds
    how long any single operation waits for a reachable server.
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from catalog.config import Settings
from catalog.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class MovieStore:
    """
    Explicitly constructed handle on the movies collection.

    Args:
        url: MongoDB connection string
        database: Database name
        collection: Collection name
        server_selection_timeout_ms: Driver server-selection timeout
        connect_attempts: Attempts made by connect() before giving up
        connect_min_wait / connect_max_wait: Backoff bounds in seconds
        client: Pre-built client to adopt instead of creating one.
                The store closes it on close().
    """

    def __init__(
        self,
        url: str = "mongodb://localhost:27017",
        database: str = "movie_catalog",
        collection: str = "movies",
        server_selection_timeout_ms: int = 5000,
        connect_attempts: int = 3,
        connect_min_wait: float = 0.5,
        connect_max_wait: float = 5.0,
        client: Optional[Any] = None,
    ):
        self.url = url
        self.database_name = database
        self.collection_name = collection
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.connect_attempts = connect_attempts
        self.connect_min_wait = connect_min_wait
        self.connect_max_wait = connect_max_wait

        self._client = client
        self._collection = None
        self._lock = asyncio.Lock()
        # Lazy reconnect shared by all requests waiting on it
        self._pending: Optional[asyncio.Future] = None

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[Any] = None) -> "MovieStore":
        return cls(
            url=settings.mongo_url,
            database=settings.mongo_database,
            collection=settings.mongo_collection,
            server_selection_timeout_ms=settings.mongo_server_selection_timeout_ms,
            connect_attempts=settings.mongo_connect_attempts,
            connect_min_wait=settings.mongo_connect_min_wait,
            connect_max_wait=settings.mongo_connect_max_wait,
            client=client,
        )

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def ready(self) -> bool:
        return self._collection is not None

    @property
    def collection(self):
        """The bound collection. Raises StoreUnavailableError when not connected."""
        if self._collection is None:
            raise StoreUnavailableError(
                context={"collection": self.collection_name, "reason": "not_connected"}
            )
        return self._collection

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """
        Connect with retries.

        Raises:
            PyMongoError: the last driver error once all attempts are spent
        """
        async with self._lock:
            if self.ready:
                return
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.connect_attempts),
                wait=wait_exponential(
                    multiplier=self.connect_min_wait,
                    min=self.connect_min_wait,
                    max=self.connect_max_wait,
                ),
                retry=retry_if_exception_type(PyMongoError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._connect_once()

    async def ensure_ready(self):
        """
        Per-request readiness check.

        Returns the bound collection. When the store is not connected, makes a
        single connection attempt (no backoff) so a request never waits on the
        full startup retry schedule. Requests arriving while that attempt is
        in flight wait for it and share its outcome; at most one attempt runs
        at a time.

        Raises:
            StoreUnavailableError: still not connected after the attempt
        """
        if self.ready:
            return self._collection

        attempt = self._pending
        if attempt is None:
            attempt = self._pending = asyncio.ensure_future(self._reconnect())
        try:
            # shield: a cancelled request must not cancel the shared attempt
            await asyncio.shield(attempt)
        except PyMongoError as e:
            raise StoreUnavailableError(
                context={
                    "collection": self.collection_name,
                    "error_type": type(e).__name__,
                }
            ) from e
        finally:
            if self._pending is attempt and attempt.done():
                self._pending = None
        return self._collection

    async def ping(self) -> bool:
        """Round-trips a ping to the server. Never raises."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", type(e).__name__)
            return False

    async def close(self) -> None:
        """Closes the client. Safe to call more than once."""
        client, self._client, self._collection = self._client, None, None
        if client is not None:
            await client.close()
            logger.info("MongoDB client closed")

    # ── Internals ─────────────────────────────────────────────────────────

    async def _reconnect(self) -> None:
        async with self._lock:
            if self.ready:
                return
            try:
                await self._connect_once()
            except PyMongoError as e:
                logger.warning("Lazy connection to MongoDB failed: %s", type(e).__name__)
                raise

    def _build_client(self):
        return AsyncMongoClient(
            self.url,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            appname="movie-catalog",
        )

    async def _connect_once(self) -> None:
        if self._client is None:
            self._client = self._build_client()
        await self._client.admin.command("ping")
        self._collection = self._client[self.database_name][self.collection_name]
        logger.info(
            "Connected to MongoDB collection %s.%s",
            self.database_name,
            self.collection_name,
        )


# ── FastAPI Dependency ────────────────────────────────────────────────────
async def get_store(request: Request) -> MovieStore:
    """
    Provides the application's MovieStore to route handlers.

    Usage:
        @router.get("/movies")
        async def list_movies(store: MovieStore = Depends(get_store)): ...
    """
    return request.app.state.store
