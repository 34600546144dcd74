"""In-memory principal store."""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional

from scopedroles.db.database import RoleStore
from scopedroles.db.query import QueryEngine, Update
from scopedroles.exceptions import ValidationError
from scopedroles.models import ID_FIELD

logger = logging.getLogger(__name__)


class MemoryStore(RoleStore):
    """Dictionary-backed store with MongoDB update semantics.

    Each request runs under a single lock, so every update is atomic per
    record just as MongoDB updates are atomic per document. Documents are
    copied on the way in and out.
    """

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None) -> None:
        self._documents: Dict[Any, Dict[str, Any]] = {}
        self._lock: Optional[asyncio.Lock] = None  # Lazy initialization
        for document in documents or []:
            self._insert(document)

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _insert(self, document: Dict[str, Any]) -> Any:
        if ID_FIELD not in document:
            raise ValidationError(
                f"Document is missing '{ID_FIELD}'", details={"document": document}
            )
        doc_id = document[ID_FIELD]
        if doc_id in self._documents:
            raise ValidationError(
                f"Duplicate document ID: {doc_id}", details={"id": doc_id}
            )
        self._documents[doc_id] = copy.deepcopy(document)
        return doc_id

    async def insert_one(self, document: Dict[str, Any]) -> Any:
        async with self._get_lock():
            return self._insert(document)

    async def update_many(
        self,
        filter_query: Dict[str, Any],
        update: Update,
        array_filters: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        matched = 0
        modified = 0
        async with self._get_lock():
            for doc_id, document in list(self._documents.items()):
                if not QueryEngine.match(document, filter_query):
                    continue
                matched += 1
                updated = QueryEngine.apply_update(
                    copy.deepcopy(document), update, array_filters
                )
                if updated != document:
                    self._documents[doc_id] = updated
                    modified += 1
        logger.debug(f"update_many matched={matched} modified={modified}")
        return {"matched_count": matched, "modified_count": modified}

    async def find(
        self,
        filter_query: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        async with self._get_lock():
            return [
                QueryEngine.project(document, projection)
                for document in self._documents.values()
                if QueryEngine.match(document, filter_query)
            ]

    async def delete_many(self, filter_query: Dict[str, Any]) -> Dict[str, Any]:
        async with self._get_lock():
            doomed = [
                doc_id
                for doc_id, document in self._documents.items()
                if QueryEngine.match(document, filter_query)
            ]
            for doc_id in doomed:
                del self._documents[doc_id]
        return {"deleted_count": len(doomed)}

    async def clear_all(self) -> None:
        """Remove every record. Primarily for tests."""
        async with self._get_lock():
            self._documents.clear()


__all__ = ["MemoryStore"]
