"""MongoDB principal store."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import PyMongoError

from scopedroles.config import RolesConfig
from scopedroles.db.database import RoleStore
from scopedroles.db.query import Update
from scopedroles.exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


class MongoStore(RoleStore):
    """MongoDB-backed principal store.

    The connection is opened lazily on first use. Update and query errors
    raised by the driver propagate unchanged.
    """

    def __init__(self, config: Optional[RolesConfig] = None, **kwargs: Any) -> None:
        """Initialize the store.

        Args:
            config: Store configuration; read from the environment if omitted
            **kwargs: Overrides for individual configuration fields
        """
        self.config = config or RolesConfig.from_env(**kwargs)
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the connection eagerly."""
        await self.get_collection()

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None

    async def get_db(self) -> AsyncIOMotorDatabase:
        """Get database instance, connecting on first call.

        Raises:
            StoreConnectionError: If the server cannot be reached
        """
        if self._client is None:
            async with self._lock:
                if self._client is None:  # Double-check locking
                    params: Dict[str, Any] = {"maxPoolSize": self.config.max_pool_size}
                    if self.config.server_selection_timeout_ms is not None:
                        params["serverSelectionTimeoutMS"] = (
                            self.config.server_selection_timeout_ms
                        )
                    try:
                        client = AsyncIOMotorClient(self.config.mongodb_uri, **params)
                        await client.admin.command("ping")
                    except PyMongoError as e:
                        raise StoreConnectionError(
                            f"Failed to connect to MongoDB: {e}",
                            details={"uri": self.config.mongodb_uri},
                        ) from e
                    self._client = client
                    self._db = client.get_database(self.config.mongodb_db_name)
                    logger.debug(
                        f"Connected to MongoDB database {self.config.mongodb_db_name!r}"
                    )

        assert self._db is not None
        return self._db

    async def get_collection(self) -> AsyncIOMotorCollection:
        db = await self.get_db()
        return db[self.config.collection]

    async def update_many(
        self,
        filter_query: Dict[str, Any],
        update: Update,
        array_filters: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        coll = await self.get_collection()
        result = await coll.update_many(
            filter_query, update, array_filters=array_filters
        )
        return {
            "matched_count": result.matched_count,
            "modified_count": result.modified_count,
        }

    async def find(
        self,
        filter_query: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        coll = await self.get_collection()
        cursor = coll.find(filter_query, projection)
        return [dict(doc) async for doc in cursor]

    async def insert_one(self, document: Dict[str, Any]) -> Any:
        coll = await self.get_collection()
        result = await coll.insert_one(dict(document))
        return result.inserted_id

    async def delete_many(self, filter_query: Dict[str, Any]) -> Dict[str, Any]:
        coll = await self.get_collection()
        result = await coll.delete_many(filter_query)
        return {"deleted_count": result.deleted_count}


__all__ = ["MongoStore"]
