"""Permission evaluation over already-loaded principal records.

Nothing in this module talks to a store. Principals may be given either as
:class:`~scopedroles.models.Principal` instances or as plain documents
straight from a store query.
"""

from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from scopedroles.exceptions import MissingArgumentError
from scopedroles.models import GLOBAL_SCOPE, ROLES_FIELD, Principal, RoleGrant
from scopedroles.validation import as_list

PrincipalLike = Union[Principal, dict]


def _iter_grants(principal: Any) -> Iterator[Tuple[Any, List[str]]]:
    """Yield ``(scope, permissions)`` pairs in record order."""
    if isinstance(principal, Principal):
        roles: Any = principal.roles
    elif isinstance(principal, dict):
        roles = principal.get(ROLES_FIELD)
    else:
        roles = getattr(principal, ROLES_FIELD, None)

    if not isinstance(roles, list):
        return

    for grant in roles:
        if isinstance(grant, RoleGrant):
            yield grant.scope, grant.permissions
        elif isinstance(grant, dict):
            yield grant.get("scope"), list(grant.get("permissions") or [])


def user_has_permission(
    principal: Optional[PrincipalLike],
    permissions: Union[str, Iterable[str]],
    scope: Optional[str] = None,
) -> bool:
    """Check whether a principal holds any of ``permissions`` in ``scope``.

    Grants under ``scope`` and under the global scope both count. Without a
    scope only the global grant is consulted.

    Args:
        principal: Principal record, or None
        permissions: A permission or several; any one is enough
        scope: Scope to evaluate in

    Returns:
        True if at least one requested permission is held
    """
    if not principal:
        return False

    wanted = set(as_list(permissions))
    if not wanted:
        return False

    if not scope:
        scope = GLOBAL_SCOPE

    for grant_scope, granted in _iter_grants(principal):
        if grant_scope == scope or grant_scope == GLOBAL_SCOPE:
            if wanted.intersection(granted):
                return True
    return False


def _grant_filter(scope: Optional[str], exclude_global: bool):
    if not scope:
        if exclude_global:
            return lambda grant_scope: grant_scope != GLOBAL_SCOPE
        return lambda grant_scope: True
    if exclude_global:
        return lambda grant_scope: grant_scope == scope
    return lambda grant_scope: grant_scope == scope or grant_scope == GLOBAL_SCOPE


def permissions_for_principal(
    principal: Optional[PrincipalLike],
    scope: Optional[str] = None,
    exclude_global: bool = False,
) -> List[str]:
    """List the permissions a principal holds.

    ============  ==============  ======================================
    scope         exclude_global  grants included
    ============  ==============  ======================================
    omitted       False           every grant
    omitted       True            every grant except the global one
    given         False           the scope's grant and the global one
    given         True            the scope's grant only
    ============  ==============  ======================================

    Permissions are concatenated in record order and are not de-duplicated
    across grants.

    Raises:
        MissingArgumentError: If ``principal`` is None
    """
    if principal is None:
        raise MissingArgumentError("principal")

    include = _grant_filter(scope, exclude_global)
    result: List[str] = []
    for grant_scope, granted in _iter_grants(principal):
        if include(grant_scope):
            result.extend(granted)
    return result


__all__ = ["user_has_permission", "permissions_for_principal", "PrincipalLike"]
