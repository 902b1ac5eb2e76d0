import logging
from typing import Any, List, Optional
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.api import deps
from app.core.errors import AuthorizationError
from app.core.permissions import (
    CLIENT_ADMIN_ROLE, CLIENT_ROLES,
    PERM_USERS_VIEW, PERM_USERS_CREATE, PERM_USERS_UPDATE, PERM_USERS_DELETE,
    PERM_CLIENT_USERS_VIEW, PERM_CLIENT_USERS_CREATE, PERM_CLIENT_USERS_MANAGE,
)
from app.models.user import User as UserModel
from app.schemas.enums import UserRoleEnum
from app.schemas.user import User, UserCreate, UserUpdate
from app.services.user import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_assignable_role(current_user: UserModel, scope: Optional[PyUUID], role: Optional[UserRoleEnum]) -> None:
    """Client-scoped callers can only hand out client roles, and only a client-admin can create another one."""
    if scope is None or role is None:
        return
    if role.value not in CLIENT_ROLES:
        raise AuthorizationError(f"You cannot assign the role '{role.value}'.")
    if role.value == CLIENT_ADMIN_ROLE and current_user.role != CLIENT_ADMIN_ROLE:
        raise AuthorizationError(f"You cannot assign the role '{role.value}'.")


def _get_scoped_user(db: Session, user_id: PyUUID, scope: Optional[PyUUID]) -> UserModel:
    user = user_service.get_or_404(db, id=user_id)
    deps.ensure_in_scope(scope, user.client_id)
    return user


@router.post("/",
             response_model=User,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(deps.PermissionChecker([PERM_USERS_CREATE, PERM_CLIENT_USERS_CREATE]))],
             summary="Create a user")
def create_user(
    *,
    db: Session = Depends(deps.get_db),
    user_in: UserCreate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Creates a user. Client-scoped callers create users of their own client only.
    """
    logger.info(f"User creation '{user_in.username}' requested by {current_user.username}")
    if scope is not None:
        _check_assignable_role(current_user, scope, user_in.role)
        user_in = user_in.model_copy(update={"client_id": scope})
    try:
        user = user_service.create(db=db, obj_in=user_in)
        db.commit()
        db.refresh(user)
        logger.info(f"User '{user.username}' (ID: {user.id}) created by {current_user.username}.")
        return user
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error creating user '{user_in.username}': {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A user with those unique values already exists.")
    except Exception:
        db.rollback()
        raise


@router.get("/",
            response_model=List[User],
            dependencies=[Depends(deps.PermissionChecker([PERM_USERS_VIEW, PERM_CLIENT_USERS_VIEW]))],
            summary="List users")
def read_users(
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
    role: Optional[UserRoleEnum] = Query(None),
    client_id: Optional[PyUUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> Any:
    if scope is not None:
        client_id = scope
    return user_service.get_multi_filtered(
        db, role=role.value if role else None, client_id=client_id, is_active=is_active, skip=skip, limit=limit
    )


@router.get("/{user_id}",
            response_model=User,
            dependencies=[Depends(deps.PermissionChecker([PERM_USERS_VIEW, PERM_CLIENT_USERS_VIEW]))],
            summary="Get a user by ID")
def read_user_by_id(
    user_id: PyUUID,
    db: Session = Depends(deps.get_db),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    return _get_scoped_user(db, user_id, scope)


@router.put("/{user_id}",
            response_model=User,
            dependencies=[Depends(deps.PermissionChecker([PERM_USERS_UPDATE, PERM_CLIENT_USERS_MANAGE]))],
            summary="Update a user")
def update_user(
    *,
    db: Session = Depends(deps.get_db),
    user_id: PyUUID,
    user_in: UserUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Partial update of a user. Moving a user to another client is reserved
    to organization staff.
    """
    user = _get_scoped_user(db, user_id, scope)
    if scope is not None:
        _check_assignable_role(current_user, scope, user_in.role)
        if "client_id" in user_in.model_fields_set and user_in.client_id != scope:
            raise AuthorizationError("You cannot move a user to another client.")
    logger.info(f"Update of user ID {user_id} requested by {current_user.username}")
    try:
        user = user_service.update(db=db, db_obj=user, obj_in=user_in)
        db.commit()
        db.refresh(user)
        logger.info(f"User '{user.username}' (ID: {user_id}) updated by {current_user.username}.")
        return user
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error updating user ID {user_id}: {getattr(e, 'orig', e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conflict with an existing user.")
    except Exception:
        db.rollback()
        raise


@router.delete("/{user_id}",
               response_model=User,
               dependencies=[Depends(deps.PermissionChecker([PERM_USERS_DELETE, PERM_CLIENT_USERS_MANAGE]))],
               summary="Deactivate a user")
def delete_user(
    *,
    db: Session = Depends(deps.get_db),
    user_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
    scope: Optional[PyUUID] = Depends(deps.get_client_scope),
) -> Any:
    """
    Users are never removed: the account is deactivated and keeps its history.
    """
    user = _get_scoped_user(db, user_id, scope)
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account.")
    try:
        user = user_service.deactivate(db=db, db_obj=user)
        db.commit()
        db.refresh(user)
        logger.warning(f"User '{user.username}' (ID: {user_id}) deactivated by {current_user.username}.")
        return user
    except Exception:
        db.rollback()
        raise
