"""
RBAC matrix: backend permission catalog, frontend aliases and role defaults.

The matrix is configuration data (``rbac_matrix.json``). It is parsed once,
validated for referential consistency and exposed as an immutable object.
Both the permission resolver and the RBAC seeding read from it, so the role
defaults and the backend role permissions come from the same document.
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from app.core.config import settings
from app.core.errors import RbacMatrixError
from app.core.permissions import ALL_ROLES, GLOBAL_WILDCARD

logger = logging.getLogger(__name__)

# Legacy backend actions that mean "view"
LEGACY_VIEW_ACTIONS = frozenset({"read", "read_all"})

PermissionLike = Union[str, Mapping[str, Any]]


def normalize_permission(permission: Optional[PermissionLike]) -> Optional[str]:
    """
    Returns the canonical form of a permission token.

    Accepts ``"resource.action"`` strings or ``{"resource": ..., "action": ...}``
    mappings (the shape some RBAC endpoints return). ``read`` and ``read_all``
    actions become ``view``; anything else is kept as is. Empty input gives None.
    """
    if permission is None:
        return None
    if isinstance(permission, Mapping):
        resource = permission.get("resource")
        action = permission.get("action")
        if not resource or not action:
            return None
        permission = f"{resource}.{action}"
    if not isinstance(permission, str):
        return None
    token = permission.strip()
    if not token:
        return None
    if token == GLOBAL_WILDCARD or "." not in token:
        return token
    resource, action = token.split(".", 1)
    if action in LEGACY_VIEW_ACTIONS:
        action = "view"
    return f"{resource}.{action}"


def token_resource(token: str) -> str:
    return token.split(".", 1)[0]


def resource_wildcard(resource: str) -> str:
    return f"{resource}.*"


# ===============================================================
# Document schema
# ===============================================================
class RbacMatrixDocument(BaseModel):
    """Raw shape of ``rbac_matrix.json``."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    version: int = 1
    admin_roles: Tuple[str, ...]
    minimal_permissions: Tuple[str, ...] = ("dashboard.view",)
    always_allowed: Tuple[str, ...] = ("dashboard.view",)
    backend_permissions: Dict[str, Tuple[str, ...]]
    aliases: Dict[str, Tuple[str, ...]]
    role_defaults: Dict[str, Tuple[str, ...]]

    @model_validator(mode="after")
    def check_references(self) -> "RbacMatrixDocument":
        errors: List[str] = []
        resources = set(self.backend_permissions)
        backend_tokens = {
            normalize_permission(f"{resource}.{action}")
            for resource, actions in self.backend_permissions.items()
            for action in actions
        }

        normalized_alias_keys = {normalize_permission(key) for key in self.aliases}

        def is_known(token: Optional[str], allow_alias_keys: bool) -> bool:
            if token is None:
                return False
            if token == GLOBAL_WILDCARD:
                return True
            if token.endswith(".*"):
                return token_resource(token) in resources
            if token in backend_tokens:
                return True
            return allow_alias_keys and token in normalized_alias_keys

        for alias, targets in self.aliases.items():
            if not targets:
                errors.append(f"alias '{alias}' has no targets")
            for target in targets:
                if not is_known(normalize_permission(target), allow_alias_keys=False):
                    errors.append(f"alias '{alias}' -> '{target}' is not a backend permission")

        for role, tokens in self.role_defaults.items():
            for token in tokens:
                if not is_known(normalize_permission(token), allow_alias_keys=True):
                    errors.append(f"role '{role}' default '{token}' is not a known permission")

        missing_roles = [role for role in ALL_ROLES if role not in self.role_defaults]
        if missing_roles:
            errors.append(f"roles without defaults: {missing_roles}")

        unknown_admins = [role for role in self.admin_roles if role not in self.role_defaults]
        if unknown_admins:
            errors.append(f"unknown admin roles: {unknown_admins}")

        for token in (*self.minimal_permissions, *self.always_allowed):
            if not is_known(normalize_permission(token), allow_alias_keys=True):
                errors.append(f"'{token}' is not a known permission")

        if errors:
            raise ValueError("; ".join(errors))
        return self


# ===============================================================
# Immutable runtime view
# ===============================================================
class RbacMatrix:
    """
    Read-only, normalized view over a validated ``RbacMatrixDocument``.
    """

    def __init__(self, document: RbacMatrixDocument):
        self.version = document.version
        self.admin_roles: FrozenSet[str] = frozenset(document.admin_roles)
        self.minimal_permissions: FrozenSet[str] = _normalize_all(document.minimal_permissions)
        self.always_allowed: FrozenSet[str] = _normalize_all(document.always_allowed)
        self.resources: FrozenSet[str] = frozenset(document.backend_permissions)
        # Names as stored in the backend Permission table
        self.backend_permission_names: Tuple[str, ...] = tuple(
            f"{resource}.{action}"
            for resource, actions in document.backend_permissions.items()
            for action in actions
        )
        self.backend_tokens: FrozenSet[str] = _normalize_all(self.backend_permission_names)
        spellings: Dict[str, List[str]] = {}
        for name in self.backend_permission_names:
            spellings.setdefault(normalize_permission(name), []).append(name)
        self._backend_spellings: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {token: tuple(names) for token, names in spellings.items()}
        )
        self.aliases: Mapping[str, Tuple[str, ...]] = MappingProxyType({
            normalize_permission(key): tuple(dict.fromkeys(_normalize_iter(targets)))
            for key, targets in document.aliases.items()
        })
        self.role_defaults: Mapping[str, FrozenSet[str]] = MappingProxyType({
            role: _normalize_all(tokens) for role, tokens in document.role_defaults.items()
        })
        self._document = document

    def aliases_for(self, token: str) -> Tuple[str, ...]:
        return self.aliases.get(token, ())

    def defaults_for(self, role: Optional[str]) -> Optional[FrozenSet[str]]:
        if not role:
            return None
        return self.role_defaults.get(role)

    def is_admin_role(self, role: Optional[str]) -> bool:
        return bool(role) and role in self.admin_roles

    def role_permission_names(self, tokens: Iterable[PermissionLike]) -> List[str]:
        """
        Permission names that store ``tokens`` on a backend role so the
        resolver reads the same set back. Wildcards are kept as wildcard rows.
        A concrete token becomes the backend names that normalize to it
        (``tickets.view`` -> ``tickets.read``, ``tickets.read_all``), or the
        token itself when the backend has no spelling for it.
        """
        names: Dict[str, None] = {}
        for raw in tokens:
            token = normalize_permission(raw)
            if token is None:
                continue
            if token == GLOBAL_WILDCARD or token.endswith(".*"):
                names[token] = None
                continue
            for name in self._backend_spellings.get(token) or (token,):
                names[name] = None
        return list(names)

    def as_dict(self) -> Dict[str, Any]:
        return self._document.model_dump(mode="json")


def _normalize_iter(tokens: Iterable[PermissionLike]) -> Iterable[str]:
    for token in tokens:
        normalized = normalize_permission(token)
        if normalized is not None:
            yield normalized


def _normalize_all(tokens: Iterable[PermissionLike]) -> FrozenSet[str]:
    return frozenset(_normalize_iter(tokens))


def load_rbac_matrix(path: Union[str, Path]) -> RbacMatrix:
    """Reads and validates the matrix document at ``path``."""
    matrix_path = Path(path)
    logger.info(f"Loading RBAC matrix from {matrix_path}")
    try:
        raw = json.loads(matrix_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.critical(f"Unable to read RBAC matrix {matrix_path}: {e}")
        raise RbacMatrixError(f"Unable to read RBAC matrix {matrix_path}: {e}") from e
    return build_rbac_matrix(raw)


def build_rbac_matrix(raw: Dict[str, Any]) -> RbacMatrix:
    try:
        document = RbacMatrixDocument.model_validate(raw)
    except ValidationError as e:
        logger.critical(f"Invalid RBAC matrix: {e}")
        raise RbacMatrixError(f"Invalid RBAC matrix: {e}") from e
    matrix = RbacMatrix(document)
    logger.info(
        f"RBAC matrix v{matrix.version} loaded: {len(matrix.backend_permission_names)} backend permissions, "
        f"{len(matrix.aliases)} aliases, {len(matrix.role_defaults)} roles."
    )
    return matrix


@lru_cache(maxsize=1)
def get_rbac_matrix() -> RbacMatrix:
    """Process-wide matrix, loaded on first use from ``settings.RBAC_MATRIX_PATH``."""
    return load_rbac_matrix(settings.RBAC_MATRIX_PATH)
