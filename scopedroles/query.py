"""Store-facing role queries."""

import inspect
import logging
from typing import Any, Callable, Iterable, List, Union

from scopedroles.models import ID_FIELD, ROLES_FIELD
from scopedroles.validation import require, require_list

logger = logging.getLogger(__name__)

Find = Callable[..., Any]


async def _collect(result: Any) -> List[Any]:
    """Materialize whatever a ``find`` callable returned.

    Motor cursors expose an async ``to_list``, pymongo cursors a synchronous
    one; plain coroutines and iterables are accepted as well.
    """
    if inspect.isawaitable(result):
        result = await result
    to_list = getattr(result, "to_list", None)
    if to_list is not None:
        documents = to_list(length=None)
        if inspect.isawaitable(documents):
            documents = await documents
        return list(documents)
    return list(result)


async def find_principals_with_permissions(
    find: Find,
    scope: str,
    permissions: Union[str, Iterable[str]],
) -> List[Any]:
    """Find principals holding every one of ``permissions`` in ``scope``.

    Only the literal scope is matched; global grants are not consulted.

    Args:
        find: Store query callable with the signature of
            ``AsyncIOMotorCollection.find(filter, projection)``
        scope: Scope to search
        permissions: Permission or permissions that must all be held

    Returns:
        Principal identifiers in store order

    Raises:
        MissingArgumentError: If any argument is missing or empty
    """
    require(find, "find")
    require(scope, "scope")
    permission_list = require_list(permissions, "permissions")

    query = {
        ROLES_FIELD: {
            "$elemMatch": {"scope": scope, "permissions": {"$all": permission_list}}
        }
    }
    documents = await _collect(find(query, {ID_FIELD: 1}))
    ids = [doc[ID_FIELD] for doc in documents]
    logger.debug(
        f"Found {len(ids)} principal(s) with {permission_list} in scope {scope!r}"
    )
    return ids


__all__ = ["Find", "find_principals_with_permissions"]
