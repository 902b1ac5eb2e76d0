"""
Permission resolver.

Computes the effective permission set of a user and answers the access
checks used by the API dependencies, the route guard and the menu filter.

Precedence (first non-empty wins):

1. permissions supplied by the server RBAC tables for the user's role
2. the user's explicit ``permissions`` list
3. the role defaults from the RBAC matrix
4. the minimal set (``dashboard.view``)
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Protocol, Sequence, TypeVar

from app.core.permissions import GLOBAL_WILDCARD
from app.core.rbac_matrix import (
    PermissionLike, RbacMatrix, get_rbac_matrix, normalize_permission,
    resource_wildcard, token_resource,
)

logger = logging.getLogger(__name__)

MenuItem = TypeVar("MenuItem")


class UserLike(Protocol):
    role: Optional[str]
    permissions: Optional[Sequence[Any]]


class PermissionSource(str, Enum):
    SERVER_SUPPLIED = "server_supplied"
    USER_OVERRIDE = "user_override"
    ROLE_DEFAULT = "role_default"
    MINIMAL = "minimal"


@dataclass(frozen=True)
class ResolvedPermissions:
    source: PermissionSource
    permissions: FrozenSet[str]


def normalize_permissions(tokens: Optional[Iterable[PermissionLike]]) -> FrozenSet[str]:
    if not tokens:
        return frozenset()
    normalized = (normalize_permission(token) for token in tokens)
    return frozenset(token for token in normalized if token)


def resolve_effective_permissions(
    user: Optional[UserLike],
    server_permissions: Optional[Iterable[PermissionLike]] = None,
    matrix: Optional[RbacMatrix] = None,
) -> ResolvedPermissions:
    """Applies the precedence chain and tags the result with the source that won."""
    matrix = matrix or get_rbac_matrix()

    from_server = normalize_permissions(server_permissions)
    if from_server:
        return ResolvedPermissions(PermissionSource.SERVER_SUPPLIED, from_server)

    from_user = normalize_permissions(getattr(user, "permissions", None))
    if from_user:
        return ResolvedPermissions(PermissionSource.USER_OVERRIDE, from_user)

    defaults = matrix.defaults_for(getattr(user, "role", None))
    if defaults:
        return ResolvedPermissions(PermissionSource.ROLE_DEFAULT, defaults)

    if user is not None and getattr(user, "role", None):
        logger.warning(f"Unknown role '{user.role}'; falling back to the minimal permission set.")
    return ResolvedPermissions(PermissionSource.MINIMAL, matrix.minimal_permissions)


def is_admin(user: Optional[UserLike], permissions: Iterable[str], matrix: Optional[RbacMatrix] = None) -> bool:
    matrix = matrix or get_rbac_matrix()
    return matrix.is_admin_role(getattr(user, "role", None)) or GLOBAL_WILDCARD in set(permissions)


class PermissionSet:
    """
    Effective permissions of one user plus the access-check API.
    """

    def __init__(
        self,
        permissions: Iterable[str],
        role: Optional[str] = None,
        source: PermissionSource = PermissionSource.MINIMAL,
        matrix: Optional[RbacMatrix] = None,
    ):
        self.matrix = matrix or get_rbac_matrix()
        self.permissions: FrozenSet[str] = normalize_permissions(permissions)
        self.role = role
        self.source = source
        self.is_admin = self.matrix.is_admin_role(role) or GLOBAL_WILDCARD in self.permissions

    @classmethod
    def for_user(
        cls,
        user: Optional[UserLike],
        server_permissions: Optional[Iterable[PermissionLike]] = None,
        matrix: Optional[RbacMatrix] = None,
    ) -> "PermissionSet":
        matrix = matrix or get_rbac_matrix()
        resolved = resolve_effective_permissions(user, server_permissions, matrix=matrix)
        return cls(resolved.permissions, role=getattr(user, "role", None), source=resolved.source, matrix=matrix)

    def _holds(self, token: str) -> bool:
        return token in self.permissions or resource_wildcard(token_resource(token)) in self.permissions

    def has_permission(self, permission: Optional[PermissionLike]) -> bool:
        token = normalize_permission(permission)
        if token is None:
            return True
        if self.is_admin:
            return True
        if token in self.matrix.always_allowed:
            return True
        if self._holds(token):
            return True
        return any(self._holds(alias) for alias in self.matrix.aliases_for(token))

    def has_any(self, permissions: Optional[Iterable[PermissionLike]]) -> bool:
        tokens = list(permissions or [])
        if not tokens or self.is_admin:
            return True
        return any(self.has_permission(token) for token in tokens)

    def has_all(self, permissions: Optional[Iterable[PermissionLike]]) -> bool:
        tokens = list(permissions or [])
        if not tokens or self.is_admin:
            return True
        return all(self.has_permission(token) for token in tokens)

    def can_access_resource(self, resource: Optional[str]) -> bool:
        if not resource:
            return True
        if self.is_admin:
            return True
        prefix = f"{resource}."
        return any(token.startswith(prefix) for token in self.permissions)

    def filter_menu_by_permission(self, items: Optional[Iterable[MenuItem]]) -> List[MenuItem]:
        """Keeps the items whose ``permission`` passes, or that declare none."""
        if not items:
            return []
        if self.is_admin:
            return list(items)
        return [item for item in items if self.has_permission(_item_permission(item))]

    def to_list(self) -> List[str]:
        return sorted(self.permissions)

    def __contains__(self, permission: PermissionLike) -> bool:
        return self.has_permission(permission)

    def __repr__(self) -> str:
        return f"<PermissionSet(role={self.role!r}, source={self.source.value}, admin={self.is_admin}, size={len(self.permissions)})>"


def _item_permission(item: Any) -> Optional[str]:
    if isinstance(item, Mapping):
        return item.get("permission")
    return getattr(item, "permission", None)
