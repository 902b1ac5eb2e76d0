# from app.db.base import Base

from .asset import Asset
from .catalog_category import CatalogCategory
from .catalog_item import CatalogItem
from .client import Client
from .department import Department
from .direction import Direction
from .hours_bank import HoursBank
from .hours_bank_transaction import HoursBankTransaction
from .license import License
from .notification import Notification
from .permission import Permission
from .role import Role
from .role_permission import RolePermission
from .section import Section
from .user import User


__all__ = [
    # "Base",
    "Asset",
    "CatalogCategory",
    "CatalogItem",
    "Client",
    "Department",
    "Direction",
    "HoursBank",
    "HoursBankTransaction",
    "License",
    "Notification",
    "Permission",
    "Role",
    "RolePermission",
    "Section",
    "User",
]
