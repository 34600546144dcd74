"""Store-facing role mutations.

Every function here builds MongoDB-style update requests and hands them to
an injected ``update_many`` coroutine function with the signature of
``AsyncIOMotorCollection.update_many``::

    await update_many(filter, update, array_filters=None)

Requests are idempotent. Identifiers that match no principal are skipped
by the store. Store errors are not caught.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from scopedroles.models import ID_FIELD, ROLES_FIELD
from scopedroles.validation import require, require_list

logger = logging.getLogger(__name__)

UpdateMany = Callable[..., Awaitable[Any]]
OneOrMany = Union[str, Iterable[str]]

_ELEM = "elem"


def _ids_filter(ids: List[str], **extra: Any) -> Dict[str, Any]:
    query: Dict[str, Any] = {ID_FIELD: {"$in": ids}}
    query.update(extra)
    return query


def _scope_present(ids: List[str], scope: str) -> Dict[str, Any]:
    return _ids_filter(ids, **{f"{ROLES_FIELD}.scope": scope})


def _scope_absent(ids: List[str], scope: str) -> Dict[str, Any]:
    return _ids_filter(ids, **{f"{ROLES_FIELD}.scope": {"$ne": scope}})


def _matched_grant_path() -> str:
    return f"{ROLES_FIELD}.$[{_ELEM}].permissions"


def _array_filters(scope: str) -> List[Dict[str, Any]]:
    return [{f"{_ELEM}.scope": scope}]


async def _create_scope(
    update_many: UpdateMany, ids: List[str], permissions: List[str], scope: str
) -> Any:
    """Append a new grant for principals that do not hold ``scope`` yet.

    Positional array filters never materialize a missing element, so the
    grant has to be pushed by a separate request guarded on its absence.
    """
    grant = {"scope": scope, "permissions": list(permissions)}
    result = await update_many(
        _scope_absent(ids, scope), {"$push": {ROLES_FIELD: grant}}
    )
    logger.debug(f"Created scope {scope!r} for ids={ids}: {result}")
    return result


def _validate(
    update_many: Optional[UpdateMany],
    ids: Optional[OneOrMany],
    permissions: Optional[OneOrMany],
    scope: Optional[str],
    permissions_param: str,
):
    require(update_many, "update_many")
    id_list = require_list(ids, "ids")
    permission_list = require_list(permissions, permissions_param)
    require(scope, "scope")
    return id_list, permission_list


async def add_permissions(
    update_many: UpdateMany,
    ids: OneOrMany,
    permissions: OneOrMany,
    scope: str,
) -> None:
    """Grant ``permissions`` in ``scope`` to one or more principals.

    Existing grants for the scope receive a set-union of the permissions;
    principals without the scope get a new grant.

    Args:
        update_many: Store bulk-update coroutine function
        ids: Principal identifier or identifiers
        permissions: Permission or permissions to add
        scope: Target scope

    Raises:
        MissingArgumentError: If any argument is missing or empty
    """
    id_list, permission_list = _validate(
        update_many, ids, permissions, scope, "permissions"
    )
    logger.debug(
        f"Adding {permission_list} in scope {scope!r} to {len(id_list)} principal(s)"
    )

    result = await update_many(
        _scope_present(id_list, scope),
        {"$addToSet": {_matched_grant_path(): {"$each": permission_list}}},
        array_filters=_array_filters(scope),
    )
    logger.debug(f"Merged into existing scope {scope!r}: {result}")
    await _create_scope(update_many, id_list, permission_list, scope)


async def set_permissions(
    update_many: UpdateMany,
    ids: OneOrMany,
    permissions: OneOrMany,
    scope: str,
) -> None:
    """Replace the permissions held in ``scope`` by one or more principals.

    Raises:
        MissingArgumentError: If any argument is missing or empty
    """
    id_list, permission_list = _validate(
        update_many, ids, permissions, scope, "permissions"
    )
    logger.debug(
        f"Setting {permission_list} in scope {scope!r} for {len(id_list)} principal(s)"
    )

    result = await update_many(
        _scope_present(id_list, scope),
        {"$set": {_matched_grant_path(): permission_list}},
        array_filters=_array_filters(scope),
    )
    logger.debug(f"Replaced permissions in scope {scope!r}: {result}")
    await _create_scope(update_many, id_list, permission_list, scope)


def _without_permissions(scope: str, permissions: List[str]) -> List[Dict[str, Any]]:
    """Pipeline update that filters ``permissions`` out of the scope's grant.

    The grant's position in the array is unknown, so every grant is mapped
    and only the one whose scope matches is rewritten.
    """
    return [
        {
            "$set": {
                ROLES_FIELD: {
                    "$map": {
                        "input": f"${ROLES_FIELD}",
                        "as": "role",
                        "in": {
                            "$cond": [
                                {"$eq": ["$$role.scope", {"$literal": scope}]},
                                {
                                    "$mergeObjects": [
                                        "$$role",
                                        {
                                            "permissions": {
                                                "$filter": {
                                                    "input": "$$role.permissions",
                                                    "as": "perm",
                                                    "cond": {
                                                        "$not": [
                                                            {
                                                                "$in": [
                                                                    "$$perm",
                                                                    {"$literal": permissions},
                                                                ]
                                                            }
                                                        ]
                                                    },
                                                }
                                            }
                                        },
                                    ]
                                },
                                "$$role",
                            ]
                        },
                    }
                }
            }
        }
    ]


async def remove_permissions(
    update_many: UpdateMany,
    ids: OneOrMany,
    permissions: OneOrMany,
    scope: str,
) -> None:
    """Remove ``permissions`` from the grant held in ``scope``.

    Other scopes are untouched. A grant left with no permissions stays in
    place; use :func:`remove_scopes` to drop it.

    Raises:
        MissingArgumentError: If any argument is missing or empty
    """
    id_list, permission_list = _validate(
        update_many, ids, permissions, scope, "permissions"
    )
    logger.debug(
        f"Removing {permission_list} from scope {scope!r} for {len(id_list)} principal(s)"
    )

    result = await update_many(
        _scope_present(id_list, scope),
        _without_permissions(scope, permission_list),
    )
    logger.debug(f"Removed permissions from scope {scope!r}: {result}")


async def remove_scopes(
    update_many: UpdateMany,
    ids: OneOrMany,
    scopes: OneOrMany,
) -> None:
    """Delete every grant whose scope is in ``scopes``.

    Raises:
        MissingArgumentError: If any argument is missing or empty
    """
    require(update_many, "update_many")
    id_list = require_list(ids, "ids")
    scope_list = require_list(scopes, "scopes")
    logger.debug(f"Removing scopes {scope_list} from {len(id_list)} principal(s)")

    result = await update_many(
        _ids_filter(id_list),
        {"$pull": {ROLES_FIELD: {"scope": {"$in": scope_list}}}},
    )
    logger.debug(f"Removed scopes {scope_list}: {result}")


__all__ = [
    "UpdateMany",
    "add_permissions",
    "set_permissions",
    "remove_permissions",
    "remove_scopes",
]
