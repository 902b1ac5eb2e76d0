import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.api import deps
from app.core import security
from app.core.rbac import PermissionSet
from app.core.route_guard import RouteRequirement, evaluate_route
from app.core.session import SessionContext
from app.models.user import User as UserModel
from app.schemas.token import Token, RefreshToken as RefreshTokenSchema
from app.schemas.user import User
from app.schemas.rbac import (
    ResolvedPermissions, PermissionCheckRequest, PermissionCheckResult,
    MenuItem, MenuFilterRequest, RouteGuardRequest, RouteGuardResponse,
)
from app.services.user import user_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _issue_tokens(user: UserModel) -> Token:
    return Token(
        access_token=security.create_access_token(subject=user.id),
        refresh_token=security.create_refresh_token(subject=user.id),
        token_type="bearer",
    )


# --- Login routes ---
@router.post("/login/access-token", response_model=Token)
def login_access_token(
    db: Session = Depends(deps.get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Any:
    """
    OAuth2 password login. Returns an access token and a refresh token.
    """
    username_attempt = form_data.username
    logger.info(f"Login attempt for user '{username_attempt}'")

    user = user_service.authenticate(db, username=username_attempt, password=form_data.password)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password, or inactive user.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_service.handle_successful_login(db, user=user)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Could not record the login of {user.username}", exc_info=True)
        raise

    logger.info(f"Successful login for user '{username_attempt}'.")
    return _issue_tokens(user)


@router.post("/refresh-token", response_model=Token, summary="Refresh an access token")
def refresh_access_token(
    token_data: RefreshTokenSchema,
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Issues a new token pair from a valid refresh token.
    """
    payload = security.decode_refresh_token(token_data.refresh_token)
    if not payload or not payload.sub:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired refresh token")

    user_id = deps.subject_to_user_id(payload.sub)
    user = user_service.get(db, id=user_id) if user_id else None
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not found or inactive")

    logger.info(f"Tokens refreshed for user '{user.username}'.")
    return _issue_tokens(user)


# --- Current user ---
@router.get("/me", response_model=User, summary="Current user")
def read_users_me(current_user: UserModel = Depends(deps.get_current_active_user)) -> Any:
    return current_user


@router.get("/me/permissions", response_model=ResolvedPermissions, summary="Effective permissions of the current user")
def read_my_permissions(context: SessionContext = Depends(deps.get_session_context)) -> Any:
    """
    Effective permission list consumed by the portals at login, tagged with
    the source that produced it (server RBAC, user override, role default or minimal).
    """
    permissions = context.permissions
    return ResolvedPermissions(
        role=context.user.role,
        source=permissions.source,
        is_admin=permissions.is_admin,
        permissions=permissions.to_list(),
    )


@router.post("/me/permissions/check", response_model=PermissionCheckResult, summary="Check permissions")
def check_my_permissions(
    check_in: PermissionCheckRequest,
    context: SessionContext = Depends(deps.get_session_context),
) -> Any:
    permissions = context.permissions
    results = {token: permissions.has_permission(token) for token in check_in.permissions}
    if check_in.require_all:
        allowed = permissions.has_all(check_in.permissions)
    else:
        allowed = permissions.has_any(check_in.permissions)
    return PermissionCheckResult(allowed=allowed, results=results)


def _filter_menu(permissions: PermissionSet, items: List[MenuItem]) -> List[MenuItem]:
    visible = permissions.filter_menu_by_permission(items)
    return [item.model_copy(update={"children": _filter_menu(permissions, item.children)}) for item in visible]


@router.post("/me/menu", response_model=List[MenuItem], summary="Filter a menu by the current user's permissions")
def filter_my_menu(
    menu_in: MenuFilterRequest,
    context: SessionContext = Depends(deps.get_session_context),
) -> Any:
    return _filter_menu(context.permissions, menu_in.items)


@router.post("/route-guard", response_model=RouteGuardResponse, summary="Evaluate a screen's access requirement")
def route_guard(
    guard_in: RouteGuardRequest,
    context: SessionContext = Depends(deps.get_optional_session_context),
) -> Any:
    """
    Answers the route guard for the caller: unauthenticated callers are
    redirected to the login route, unauthorized ones to the fallback.
    """
    decision = evaluate_route(
        context,
        RouteRequirement(
            resource=guard_in.resource,
            permission=guard_in.permission,
            permissions=tuple(guard_in.permissions),
            require_all=guard_in.require_all,
            fallback=guard_in.fallback,
        ),
    )
    return RouteGuardResponse(state=decision.state, allowed=decision.allowed, redirect_to=decision.redirect_to)
