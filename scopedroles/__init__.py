"""
scopedroles - Scoped role-based access control over document stores.

Principals carry an embedded list of role grants, one per scope. The grant
stored under ``GLOBAL_SCOPE`` applies in every scope.

Main Exports:
    Model:
        - GLOBAL_SCOPE, RoleGrant, Principal

    Evaluation (pure, no I/O):
        - user_has_permission
        - permissions_for_principal

    Mutation (async, injected ``update_many``):
        - add_permissions, set_permissions
        - remove_permissions, remove_scopes

    Query (async, injected ``find``):
        - find_principals_with_permissions

    Stores & service:
        - RoleStore, MemoryStore, get_store, RoleService

Example:
    >>> from scopedroles import MemoryStore, add_permissions, user_has_permission
    >>>
    >>> store = MemoryStore([{"_id": "u1", "roles": []}])
    >>> await add_permissions(store.update_many, "u1", ["admin"], "g1")
    >>> user_has_permission(await store.get_principal("u1"), "admin", "g1")
    True
"""

__version__ = "0.1.0"

from . import exceptions
from .config import RolesConfig
from .db import MemoryStore, RoleStore, get_store
from .evaluator import permissions_for_principal, user_has_permission
from .logging_config import configure_logging
from .models import GLOBAL_SCOPE, Principal, RoleGrant
from .mutator import (
    add_permissions,
    remove_permissions,
    remove_scopes,
    set_permissions,
)
from .query import find_principals_with_permissions
from .service import RoleService

__all__ = [
    "__version__",
    "exceptions",
    "GLOBAL_SCOPE",
    "RoleGrant",
    "Principal",
    "user_has_permission",
    "permissions_for_principal",
    "add_permissions",
    "set_permissions",
    "remove_permissions",
    "remove_scopes",
    "find_principals_with_permissions",
    "RoleStore",
    "MemoryStore",
    "get_store",
    "RoleService",
    "RolesConfig",
    "configure_logging",
]
