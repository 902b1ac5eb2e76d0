from typing import Generator, List, Optional, Set, Union
from uuid import UUID
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import logging

from app.core.config import settings
from app.core import security
from app.core.errors import AuthorizationError
from app.core.permissions import CLIENT_ROLES
from app.core.session import SessionContext
from app.db.session import SessionLocal

from app.models.user import User

from app.services.role import role_service
from app.services.user import user_service

logger = logging.getLogger(__name__)


# --- Database session dependency ---
def get_db() -> Generator[Session, None, None]:
    """Yields a database session and closes it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# --- Authentication dependencies ---
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login/access-token"
)

# Same scheme, but a missing header is not an error (route guard endpoint)
optional_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login/access-token",
    auto_error=False,
)


def subject_to_user_id(subject: Union[UUID, str, None]) -> Optional[UUID]:
    if not subject:
        return None
    try:
        return subject if isinstance(subject, UUID) else UUID(str(subject))
    except ValueError:
        logger.warning(f"Token subject is not a valid user id: {subject}")
        return None


def _user_from_token(db: Session, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    token_data = security.decode_access_token(token)
    user_id = subject_to_user_id(token_data.sub) if token_data else None
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_current_user(
    db: Session = Depends(get_db), token: str = Depends(reusable_oauth2)
) -> User:
    """Returns the user identified by the JWT access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    user = _user_from_token(db, token)
    if not user:
        logger.warning("Invalid token or unknown user in token.")
        raise credentials_exception
    return user

def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Returns the current user and checks that it is active."""
    if not current_user.is_active:
        logger.warning(f"Access denied: inactive user {current_user.username} (ID: {current_user.id}).")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The user is inactive.")
    return current_user


def build_session_context(db: Session, token: str, user: User) -> SessionContext:
    """
    Resolves the permission set of ``user``; the server-supplied list is the
    permission set of the role row named like ``user.role``.
    """
    context = SessionContext()
    server_permissions = role_service.get_permission_names(db, role_name=user.role)
    context.init_session(token, user, server_permissions)
    logger.debug(f"Session context for '{user.username}': {context.permissions!r}")
    return context


def get_session_context(
    db: Session = Depends(get_db),
    token: str = Depends(reusable_oauth2),
    current_user: User = Depends(get_current_active_user),
) -> SessionContext:
    return build_session_context(db, token, current_user)


def get_optional_session_context(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(optional_oauth2),
) -> SessionContext:
    """
    Anonymous callers get an empty context. An invalid token or an inactive
    user is treated as anonymous.
    """
    user = _user_from_token(db, token)
    if user is None or not user.is_active:
        return SessionContext()
    return build_session_context(db, token, user)


class PermissionChecker:
    """
    Dependency that checks the caller's effective permissions.
    By default AT LEAST ONE of the listed permissions is required (OR);
    with ``require_all=True`` all of them are (AND).
    """
    def __init__(self, required_permissions: Union[str, List[str], Set[str]], require_all: bool = False):
        if isinstance(required_permissions, str):
            self.required_permissions = [required_permissions]
        else:
            self.required_permissions = sorted(set(required_permissions))
        self.require_all = require_all

        if not self.required_permissions:
            logger.error("PermissionChecker initialised with an empty permission set.")
            raise ValueError("The required permission set cannot be empty.")

    def __call__(self, request: Request, context: SessionContext = Depends(get_session_context)) -> None:
        user = context.user
        logger.debug(
            f"PermissionChecker: checking '{user.username}' on '{request.url.path}'. "
            f"Required ({'AND' if self.require_all else 'OR'}): {self.required_permissions}"
        )
        permissions = context.permissions
        if self.require_all:
            allowed = permissions.has_all(self.required_permissions)
        else:
            allowed = permissions.has_any(self.required_permissions)

        if not allowed:
            logger.warning(
                f"Access denied to '{user.username}'. Role: '{user.role}'. "
                f"Required: {self.required_permissions}. Held ({permissions.source.value}): {permissions.to_list()}."
            )
            raise AuthorizationError()

        logger.debug(f"PermissionChecker: access granted to '{user.username}'.")


def get_client_scope(current_user: User = Depends(get_current_active_user)) -> Optional[UUID]:
    """
    Client the caller is confined to: its own client for client roles,
    None (no restriction) for organization staff.
    """
    if current_user.role in CLIENT_ROLES:
        if current_user.client_id is None:
            logger.error(f"Client-role user '{current_user.username}' has no client assigned.")
            raise AuthorizationError("Your account is not linked to a client.")
        return current_user.client_id
    return None


def ensure_in_scope(scope: Optional[UUID], client_id: Optional[UUID]) -> None:
    """Raises AuthorizationError when a scoped caller touches another client's data."""
    if scope is not None and client_id != scope:
        raise AuthorizationError("The resource belongs to another client.")


def require_staff(scope: Optional[UUID] = Depends(get_client_scope)) -> None:
    """Organization-wide operations are closed to client-scoped callers."""
    if scope is not None:
        raise AuthorizationError("This action is reserved to the organization staff.")
