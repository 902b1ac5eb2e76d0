from .common import Msg

# Token & Auth
from .token import Token, TokenPayload, RefreshToken

# Roles, permissions and the resolver payloads
from .role import Permission, Role, RoleCreate, RolePermissionsUpdate
from .rbac import (
    ResolvedPermissions,
    PermissionCheckRequest,
    PermissionCheckResult,
    MenuItem,
    MenuFilterRequest,
    RouteGuardRequest,
    RouteGuardResponse,
    RbacMatrixRead,
)

# Clients and users
from .client import Client, ClientCreate, ClientUpdate, ClientSimple
from .user import User, UserCreate, UserUpdate, UserSimple

# Organizational hierarchy
from .organization import (
    Direction, DirectionCreate, DirectionUpdate, DirectionSimple,
    Department, DepartmentCreate, DepartmentUpdate, DepartmentSimple,
    Section, SectionCreate, SectionUpdate,
)

# Hours banks
from .hours_bank import (
    HoursBank,
    HoursBankCreate,
    HoursBankUpdate,
    HoursAdd,
    HoursConsume,
    HoursAdjust,
    HoursBankTransaction,
    HoursBankReconciliation,
    HoursBankStatistics,
    ClientHoursSummary,
    HoursBankOperationResult,
)

# Inventory
from .asset import Asset, AssetCreate, AssetUpdate
from .license import License, LicenseCreate, LicenseUpdate

# Service catalog
from .catalog import (
    CatalogCategory,
    CatalogCategoryCreate,
    CatalogCategoryUpdate,
    CatalogCategoryTree,
    CatalogItem,
    CatalogItemCreate,
    CatalogItemUpdate,
    CatalogItemRouting,
)

# Notifications
from .notification import Notification, NotificationCreate, NotificationUpdate, NotificationCount

CatalogCategoryTree.model_rebuild()

__all__ = [
    "Msg", "Token", "TokenPayload", "RefreshToken",
    "Permission", "Role", "RoleCreate", "RolePermissionsUpdate",
    "ResolvedPermissions", "PermissionCheckRequest", "PermissionCheckResult",
    "MenuItem", "MenuFilterRequest", "RouteGuardRequest", "RouteGuardResponse", "RbacMatrixRead",
    "Client", "ClientCreate", "ClientUpdate", "ClientSimple",
    "User", "UserCreate", "UserUpdate", "UserSimple",
    "Direction", "DirectionCreate", "DirectionUpdate", "DirectionSimple",
    "Department", "DepartmentCreate", "DepartmentUpdate", "DepartmentSimple",
    "Section", "SectionCreate", "SectionUpdate",
    "HoursBank", "HoursBankCreate", "HoursBankUpdate", "HoursAdd", "HoursConsume", "HoursAdjust",
    "HoursBankTransaction", "HoursBankReconciliation", "HoursBankStatistics",
    "ClientHoursSummary", "HoursBankOperationResult",
    "Asset", "AssetCreate", "AssetUpdate",
    "License", "LicenseCreate", "LicenseUpdate",
    "CatalogCategory", "CatalogCategoryCreate", "CatalogCategoryUpdate", "CatalogCategoryTree",
    "CatalogItem", "CatalogItemCreate", "CatalogItemUpdate", "CatalogItemRouting",
    "Notification", "NotificationCreate", "NotificationUpdate", "NotificationCount",
]
