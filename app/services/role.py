from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session
from sqlalchemy import select
from fastapi import HTTPException, status

from app.core.errors import NotFoundError
from app.core.permissions import GLOBAL_WILDCARD
from app.core.rbac_matrix import RbacMatrix
from app.models.role import Role
from app.models.permission import Permission
from app.schemas.role import Permission as PermissionSchema, RoleCreate, RolePermissionsUpdate
from .base_service import BaseService

logger = logging.getLogger(__name__)


class PermissionService(BaseService[Permission, PermissionSchema, PermissionSchema]):

    def get_by_name(self, db: Session, *, name: str) -> Optional[Permission]:
        statement = select(self.model).where(self.model.name == name)
        return db.execute(statement).scalar_one_or_none()

    def get_multi_ordered(self, db: Session, *, resource: Optional[str] = None) -> List[Permission]:
        statement = select(self.model)
        if resource:
            statement = statement.where(self.model.resource == resource)
        statement = statement.order_by(self.model.resource, self.model.action)
        return list(db.execute(statement).scalars().all())

    def get_many(self, db: Session, *, ids: List[UUID]) -> List[Permission]:
        """Loads the permissions by id; any unknown id is a NotFoundError."""
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []
        found = {p.id: p for p in db.execute(select(self.model).where(self.model.id.in_(unique_ids))).scalars()}
        missing = [str(pid) for pid in unique_ids if pid not in found]
        if missing:
            logger.error(f"Permissions not found: {missing}")
            raise NotFoundError(f"Permissions not found: {', '.join(missing)}")
        return [found[pid] for pid in unique_ids]


class RoleService(BaseService[Role, RoleCreate, RolePermissionsUpdate]):
    """
    Backend RBAC roles and their permission sets.
    """

    def get_by_name(self, db: Session, *, name: str) -> Optional[Role]:
        statement = select(self.model).where(self.model.name == name)
        return db.execute(statement).scalar_one_or_none()

    def get_multi_ordered(self, db: Session) -> List[Role]:
        return list(db.execute(select(self.model).order_by(self.model.name)).scalars().all())

    def get_permission_names(self, db: Session, *, role_name: Optional[str]) -> List[str]:
        """
        Permission names attached to the role row named like `users.role`;
        this is the server-supplied list fed to the resolver.
        """
        if not role_name:
            return []
        statement = (
            select(Permission.name)
            .join(Permission.roles)
            .where(Role.name == role_name)
            .order_by(Permission.name)
        )
        return list(db.execute(statement).scalars().all())

    def create(self, db: Session, *, obj_in: RoleCreate) -> Role:
        """
        Creates a role with the given permissions.
        Does NOT call db.commit().
        """
        if self.get_by_name(db, name=obj_in.name):
            logger.warning(f"Attempt to create duplicate role: {obj_in.name}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A role named '{obj_in.name}' already exists.",
            )
        db_role = self.model(**obj_in.model_dump(exclude={"permission_ids"}))
        db_role.permissions = permission_service.get_many(db, ids=obj_in.permission_ids)
        db.add(db_role)
        logger.info(f"Role '{db_role.name}' prepared for creation with {len(db_role.permissions)} permission(s).")
        return db_role

    def set_permissions(self, db: Session, *, db_obj: Role, obj_in: RolePermissionsUpdate) -> Role:
        """Replaces the permission set of a role. Does NOT call db.commit()."""
        db_obj.permissions = permission_service.get_many(db, ids=obj_in.permission_ids)
        db.add(db_obj)
        logger.info(f"Permissions of role '{db_obj.name}' replaced ({len(db_obj.permissions)} permission(s)).")
        return db_obj

    def seed_from_matrix(self, db: Session, *, matrix: RbacMatrix) -> Dict[str, int]:
        """
        Creates the missing permission rows and one system role per role of
        the matrix. Each role stores its defaults through
        `matrix.role_permission_names`, wildcards included, so the resolver
        gives the same answers before and after seeding.
        Does NOT call db.commit().
        """
        existing = {p.name: p for p in db.execute(select(Permission)).scalars()}
        created_permissions = 0

        def permission_row(name: str) -> Permission:
            nonlocal created_permissions
            if name not in existing:
                if name == GLOBAL_WILDCARD:
                    resource, action = GLOBAL_WILDCARD, GLOBAL_WILDCARD
                else:
                    resource, action = name.split(".", 1)
                existing[name] = Permission(name=name, resource=resource, action=action)
                db.add(existing[name])
                created_permissions += 1
            return existing[name]

        for name in matrix.backend_permission_names:
            permission_row(name)

        created_roles = 0
        for role_name, defaults in matrix.role_defaults.items():
            role = self.get_by_name(db, name=role_name)
            if role is None:
                role = Role(name=role_name, is_system=True, description=f"System role {role_name}")
                db.add(role)
                created_roles += 1
            role.permissions = [permission_row(name) for name in matrix.role_permission_names(sorted(defaults))]

        db.flush()
        logger.info(
            f"RBAC seed prepared: {created_permissions} new permission(s), {created_roles} new role(s), "
            f"{len(matrix.role_defaults)} role(s) synchronised."
        )
        return {
            "permissions_created": created_permissions,
            "roles_created": created_roles,
            "roles_synchronised": len(matrix.role_defaults),
        }


permission_service = PermissionService(Permission)
role_service = RoleService(Role)
