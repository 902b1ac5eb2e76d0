from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.route_guard import GuardState
from app.core.rbac import PermissionSource


class ResolvedPermissions(BaseModel):
    """Effective permission list of the caller, as consumed by the portals at login."""
    role: str
    source: PermissionSource
    is_admin: bool
    permissions: List[str]


class PermissionCheckRequest(BaseModel):
    permissions: List[str] = Field(default_factory=list)
    require_all: bool = False


class PermissionCheckResult(BaseModel):
    allowed: bool
    results: Dict[str, bool]


class MenuItem(BaseModel):
    key: str
    label: Optional[str] = None
    path: Optional[str] = None
    permission: Optional[str] = None
    children: List["MenuItem"] = []


class MenuFilterRequest(BaseModel):
    items: List[MenuItem]


class RouteGuardRequest(BaseModel):
    resource: Optional[str] = None
    permission: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    require_all: bool = False
    fallback: Optional[str] = None


class RouteGuardResponse(BaseModel):
    state: GuardState
    allowed: bool
    redirect_to: Optional[str] = None


class RbacMatrixRead(BaseModel):
    version: int
    admin_roles: List[str]
    minimal_permissions: List[str]
    always_allowed: List[str]
    backend_permissions: Dict[str, List[str]]
    aliases: Dict[str, List[str]]
    role_defaults: Dict[str, List[str]]
