"""Role service bound to a principal store."""

import logging
from typing import Iterable, List, Optional, Union

from scopedroles import evaluator, mutator, query
from scopedroles.db.database import RoleStore
from scopedroles.validation import require

logger = logging.getLogger(__name__)

OneOrMany = Union[str, Iterable[str]]


class RoleService:
    """Convenience facade over the role operations for one store.

    Example:
        >>> service = RoleService(MemoryStore())
        >>> await service.add_permissions("u1", ["admin"], "g1")
        >>> await service.has_permission("u1", "admin", "g1")
        True
    """

    def __init__(self, store: RoleStore) -> None:
        require(store, "store")
        self.store = store

    async def add_permissions(
        self, ids: OneOrMany, permissions: OneOrMany, scope: str
    ) -> None:
        await mutator.add_permissions(self.store.update_many, ids, permissions, scope)

    async def set_permissions(
        self, ids: OneOrMany, permissions: OneOrMany, scope: str
    ) -> None:
        await mutator.set_permissions(self.store.update_many, ids, permissions, scope)

    async def remove_permissions(
        self, ids: OneOrMany, permissions: OneOrMany, scope: str
    ) -> None:
        await mutator.remove_permissions(
            self.store.update_many, ids, permissions, scope
        )

    async def remove_scopes(self, ids: OneOrMany, scopes: OneOrMany) -> None:
        await mutator.remove_scopes(self.store.update_many, ids, scopes)

    async def find_principals(self, scope: str, permissions: OneOrMany) -> List[str]:
        return await query.find_principals_with_permissions(
            self.store.find, scope, permissions
        )

    async def has_permission(
        self, principal_id: str, permissions: OneOrMany, scope: Optional[str] = None
    ) -> bool:
        """Load a principal and check it holds any of ``permissions``.

        Unknown principals hold nothing.
        """
        require(principal_id, "principal_id")
        principal = await self.store.get_principal(principal_id)
        if principal is None:
            logger.debug(f"Principal {principal_id!r} not found")
        return evaluator.user_has_permission(principal, permissions, scope)

    async def permissions_for(
        self,
        principal_id: str,
        scope: Optional[str] = None,
        exclude_global: bool = False,
    ) -> List[str]:
        """Load a principal and list its permissions.

        Unknown principals yield an empty list.
        """
        require(principal_id, "principal_id")
        principal = await self.store.get_principal(principal_id)
        if principal is None:
            logger.debug(f"Principal {principal_id!r} not found")
            return []
        return evaluator.permissions_for_principal(principal, scope, exclude_global)


__all__ = ["RoleService"]
