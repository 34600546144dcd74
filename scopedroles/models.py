"""Scoped permission model.

A principal record holds an ordered list of role grants, at most one per
scope. The grant stored under ``GLOBAL_SCOPE`` applies in every scope.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

GLOBAL_SCOPE = "__global_roles__"

ID_FIELD = "_id"
ROLES_FIELD = "roles"


class RoleGrant(BaseModel):
    """Permissions granted to a principal within one scope."""

    scope: str = Field(..., description="Opaque scope identifier")
    permissions: List[str] = Field(
        default_factory=list, description="Permissions held in this scope"
    )

    @field_validator("permissions")
    @classmethod
    def dedupe_permissions(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @property
    def is_global(self) -> bool:
        return self.scope == GLOBAL_SCOPE


class Principal(BaseModel):
    """A principal record as stored in the external store."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias=ID_FIELD, description="Principal identifier")
    roles: List[RoleGrant] = Field(default_factory=list)

    def grant_for(self, scope: str) -> Optional[RoleGrant]:
        """Return the grant held for ``scope``, if any."""
        for grant in self.roles:
            if grant.scope == scope:
                return grant
        return None

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the store's document shape."""
        return self.model_dump(by_alias=True)


__all__ = ["GLOBAL_SCOPE", "ID_FIELD", "ROLES_FIELD", "RoleGrant", "Principal"]
