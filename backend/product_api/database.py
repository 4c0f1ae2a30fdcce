"""
Product API: MongoDB Connection Management
=============================================

What:  Owns the async MongoDB client and the products collection handle.
How:   `MongoDatabase.connect()` creates an AsyncMongoClient, pings the server
       and resolves the collection; `close()` releases the client.
Who:   Created by the lifespan handler in main.py; the resolved collection is
       handed to ProductService.
When:  Connected once at startup, closed once at shutdown.

Architecture Decision:
    pymongo's native asyncio client keeps every store call non-blocking, so a
    slow query suspends only the request that issued it.

    The client connects lazily; the `admin` ping at startup makes an
    unreachable server a startup failure rather than a first-request failure.

Timestamps:
    tz_aware=True makes the driver return timezone-aware UTC datetimes, which
    serialize as ISO 8601 with an explicit offset.
"""

import logging
from typing import Any, Dict, Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection

logger = logging.getLogger(__name__)


class MongoDatabase:
    """
    Connection holder for the products collection.

    Attributes:
        uri:              MongoDB connection string
        database_name:    Database containing the collection (e.g. "shop")
        collection_name:  Collection name (e.g. "products")
        timeout_ms:       Server selection timeout for the startup ping
    """

    def __init__(
        self,
        uri: str,
        database_name: str = "shop",
        collection_name: str = "products",
        timeout_ms: int = 5000,
    ):
        self.uri = uri
        self.database_name = database_name
        self.collection_name = collection_name
        self.timeout_ms = timeout_ms
        self._client: Optional[AsyncMongoClient] = None
        self._products: Optional[AsyncCollection] = None

    @property
    def is_connected(self) -> bool:
        return self._products is not None

    @property
    def products(self) -> AsyncCollection:
        """The products collection. Only valid after connect()."""
        if self._products is None:
            raise RuntimeError("MongoDatabase.connect() has not completed")
        return self._products

    async def connect(self) -> AsyncCollection:
        """
        Open the client and verify the server is reachable.

        Raises:
            pymongo.errors.PyMongoError: Server unreachable or authentication
                failed. The client is closed before the error propagates.
        """
        client: AsyncMongoClient[Dict[str, Any]] = AsyncMongoClient(
            self.uri,
            tz_aware=True,
            serverSelectionTimeoutMS=self.timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except Exception:
            await client.close()
            raise

        self._client = client
        self._products = client[self.database_name][self.collection_name]
        logger.info(
            "Connected to MongoDB: %s.%s", self.database_name, self.collection_name
        )
        return self._products

    async def close(self) -> None:
        """
        What:  Closes the client and all pooled connections.
        When:  Called during application shutdown (lifespan handler).
        """
        if self._client is not None:
            await self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
