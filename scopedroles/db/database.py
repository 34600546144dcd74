"""Store abstraction for principal records."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from scopedroles.db.query import Update
from scopedroles.models import ID_FIELD


class RoleStore(ABC):
    """Abstract base class for principal record stores.

    A store provides the two capabilities the role operations are built
    on, with the call shapes of a motor collection:

    - ``update_many(filter, update, array_filters=None)``: apply ``update``
      atomically to every matching record; zero matches is a no-op
    - ``find(filter, projection=None)``: return matching records

    Bound methods of a store can be handed straight to the functions in
    :mod:`scopedroles.mutator` and :mod:`scopedroles.query`.
    """

    @abstractmethod
    async def update_many(
        self,
        filter_query: Dict[str, Any],
        update: Update,
        array_filters: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Update all records matching the filter.

        Args:
            filter_query: MongoDB-style filter query
            update: Update operators or a pipeline of update stages
            array_filters: Conditions for ``$[ident]`` positional paths

        Returns:
            Result information with ``matched_count`` and ``modified_count``
        """

    @abstractmethod
    async def find(
        self,
        filter_query: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Find records matching a filter.

        Args:
            filter_query: MongoDB-style filter query
            projection: Optional field projection

        Returns:
            List of matching records
        """

    async def find_one(
        self,
        filter_query: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Find the first record matching a filter."""
        results = await self.find(filter_query, projection)
        return results[0] if results else None

    async def get_principal(self, principal_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a principal record by identifier."""
        return await self.find_one({ID_FIELD: principal_id})

    async def insert_one(self, document: Dict[str, Any]) -> Any:
        """Insert a principal record.

        Principal lifecycle belongs to the owning application; stores
        implement this for fixtures and administration.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support inserts")

    async def delete_many(self, filter_query: Dict[str, Any]) -> Dict[str, Any]:
        """Delete all records matching the filter."""
        raise NotImplementedError(f"{type(self).__name__} does not support deletes")

    async def close(self) -> None:
        """Release any resources held by the store."""


__all__ = ["RoleStore"]
