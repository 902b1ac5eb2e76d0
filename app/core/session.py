"""
Explicit session context.

One ``SessionContext`` per request (or per portal session) carries the token,
the authenticated user and the resolved permission set. It is created empty,
filled by ``init_session`` after login and emptied by ``clear_session`` on
logout; there is no process-wide session state.
"""
import logging
from typing import Any, Iterable, Optional

from app.core.rbac import PermissionSet, PermissionSource, UserLike
from app.core.rbac_matrix import PermissionLike, RbacMatrix

logger = logging.getLogger(__name__)


class SessionContext:

    def __init__(self, matrix: Optional[RbacMatrix] = None):
        self.matrix = matrix
        self.token: Optional[str] = None
        self.user: Optional[UserLike] = None
        self.server_permissions: tuple = ()
        self.permissions: Optional[PermissionSet] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_loading(self) -> bool:
        """A token is present but the permission set is not resolved yet."""
        return self.is_authenticated and self.permissions is None

    @property
    def permission_source(self) -> Optional[PermissionSource]:
        return self.permissions.source if self.permissions else None

    def begin_session(self, token: str) -> "SessionContext":
        """Records the token before the user and permissions are loaded."""
        self.token = token
        self.user = None
        self.server_permissions = ()
        self.permissions = None
        return self

    def init_session(
        self,
        token: str,
        user: UserLike,
        server_permissions: Optional[Iterable[PermissionLike]] = None,
    ) -> PermissionSet:
        """Stores the authenticated user and resolves its permission set."""
        self.token = token
        self.user = user
        self.server_permissions = tuple(server_permissions or ())
        self.permissions = PermissionSet.for_user(user, self.server_permissions, matrix=self.matrix)
        logger.debug(
            f"Session initialised for role '{getattr(user, 'role', None)}' "
            f"(source: {self.permissions.source.value}, {len(self.permissions.permissions)} permissions)."
        )
        return self.permissions

    def clear_session(self) -> None:
        self.token = None
        self.user = None
        self.server_permissions = ()
        self.permissions = None

    def describe(self) -> dict[str, Any]:
        return {
            "authenticated": self.is_authenticated,
            "loading": self.is_loading,
            "role": getattr(self.user, "role", None),
            "source": self.permission_source.value if self.permission_source else None,
        }
