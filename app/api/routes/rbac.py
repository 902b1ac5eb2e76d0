import logging
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.permissions import PERM_ROLES_VIEW, PERM_SETTINGS_MANAGE_ROLES
from app.core.rbac_matrix import get_rbac_matrix
from app.models.user import User as UserModel
from app.schemas.rbac import RbacMatrixRead
from app.schemas.role import Permission, Role, RoleCreate, RolePermissionsUpdate
from app.services.role import permission_service, role_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/matrix", response_model=RbacMatrixRead, summary="Loaded RBAC matrix")
def read_rbac_matrix(
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    """
    The permission matrix the server resolves with, so the portals apply
    the same aliases and role defaults. Any authenticated user may read it.
    """
    return RbacMatrixRead(**get_rbac_matrix().as_dict())


@router.get("/permissions",
            response_model=List[Permission],
            dependencies=[Depends(deps.PermissionChecker([PERM_ROLES_VIEW, PERM_SETTINGS_MANAGE_ROLES]))],
            summary="List backend permissions")
def read_permissions(
    db: Session = Depends(deps.get_db),
    resource: Optional[str] = Query(None, description="Only the permissions of this resource"),
) -> Any:
    return permission_service.get_multi_ordered(db, resource=resource)


@router.get("/roles",
            response_model=List[Role],
            dependencies=[Depends(deps.PermissionChecker([PERM_ROLES_VIEW, PERM_SETTINGS_MANAGE_ROLES]))],
            summary="List roles")
def read_roles(db: Session = Depends(deps.get_db)) -> Any:
    return role_service.get_multi_ordered(db)


@router.post("/roles",
             response_model=Role,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_SETTINGS_MANAGE_ROLES])), Depends(deps.require_staff)],
             summary="Create a role")
def create_role(
    *,
    db: Session = Depends(deps.get_db),
    role_in: RoleCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    """
    Creates a role with an initial permission set. Users get the role's
    permissions when their `role` equals the role name.
    """
    try:
        role = role_service.create(db=db, obj_in=role_in)
        db.commit()
        db.refresh(role)
        logger.info(f"Role '{role.name}' (ID: {role.id}) created by {current_user.username}.")
        return role
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error creating role '{role_in.name}': {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A role named '{role_in.name}' already exists.")
    except Exception:
        db.rollback()
        raise


@router.get("/roles/{role_id}",
            response_model=Role,
            dependencies=[Depends(deps.PermissionChecker([PERM_ROLES_VIEW, PERM_SETTINGS_MANAGE_ROLES]))],
            summary="Get a role by ID")
def read_role(role_id: PyUUID, db: Session = Depends(deps.get_db)) -> Any:
    return role_service.get_or_404(db, id=role_id)


@router.put("/roles/{role_id}/permissions",
            response_model=Role,
            dependencies=[Depends(deps.PermissionChecker([PERM_SETTINGS_MANAGE_ROLES])), Depends(deps.require_staff)],
            summary="Replace the permissions of a role")
def update_role_permissions(
    *,
    db: Session = Depends(deps.get_db),
    role_id: PyUUID,
    permissions_in: RolePermissionsUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    role = role_service.get_or_404(db, id=role_id)
    try:
        role = role_service.set_permissions(db=db, db_obj=role, obj_in=permissions_in)
        db.commit()
        db.refresh(role)
        logger.warning(
            f"Permissions of role '{role.name}' replaced by {current_user.username}: "
            f"{[p.name for p in role.permissions]}"
        )
        return role
    except Exception:
        db.rollback()
        raise
