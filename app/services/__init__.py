"""
Services package.

Business logic and database access for every entity of the application.
Each module exposes a service instance that wraps the CRUD operations and
the specific operations of one ORM model. Services never commit.
"""

from .client import client_service
from .role import role_service, permission_service
from .user import user_service
from .organization import direction_service, department_service, section_service
from .hours_bank import hours_bank_service
from .notification import notification_service
from .asset import asset_service
from .license import license_service
from .catalog import catalog_category_service, catalog_item_service

__all__ = [
    "client_service",
    "role_service",
    "permission_service",
    "user_service",
    "direction_service",
    "department_service",
    "section_service",
    "hours_bank_service",
    "notification_service",
    "asset_service",
    "license_service",
    "catalog_category_service",
    "catalog_item_service",
]
