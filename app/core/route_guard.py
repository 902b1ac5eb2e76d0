"""
Route guard: decides whether a screen may be shown for a session.

States:

* ``UNAUTHENTICATED``: no token, redirect to the login route
* ``LOADING``: token present, permissions not resolved, render nothing
* ``AUTHORIZED`` / ``UNAUTHORIZED``: the requirement has been evaluated

The requirement is checked in order ``resource``, ``permission``,
``permissions`` (with ``require_all``); a route declaring none of them is open
to every authenticated user. Admins are always authorized.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from app.core.config import settings
from app.core.session import SessionContext

logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class RouteRequirement:
    resource: Optional[str] = None
    permission: Optional[str] = None
    permissions: Sequence[str] = field(default_factory=tuple)
    require_all: bool = False
    fallback: Optional[str] = None


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.state == GuardState.AUTHORIZED

    @property
    def render(self) -> bool:
        """Whether the protected children may be rendered."""
        return self.allowed


def evaluate_route(context: SessionContext, requirement: Optional[RouteRequirement] = None) -> GuardDecision:
    requirement = requirement or RouteRequirement()

    if not context.is_authenticated:
        return GuardDecision(GuardState.UNAUTHENTICATED, redirect_to=settings.LOGIN_ROUTE)

    if context.is_loading:
        return GuardDecision(GuardState.LOADING)

    permissions = context.permissions
    if permissions.is_admin:
        return GuardDecision(GuardState.AUTHORIZED)

    if requirement.resource:
        allowed = permissions.can_access_resource(requirement.resource)
    elif requirement.permission:
        allowed = permissions.has_permission(requirement.permission)
    elif requirement.permissions:
        if requirement.require_all:
            allowed = permissions.has_all(requirement.permissions)
        else:
            allowed = permissions.has_any(requirement.permissions)
    else:
        allowed = True

    if allowed:
        return GuardDecision(GuardState.AUTHORIZED)

    fallback = requirement.fallback or settings.DEFAULT_FALLBACK_ROUTE
    logger.info(
        f"Route guard denied role '{permissions.role}' "
        f"(resource={requirement.resource}, permission={requirement.permission}, "
        f"permissions={list(requirement.permissions)}, require_all={requirement.require_all}); redirecting to '{fallback}'."
    )
    return GuardDecision(GuardState.UNAUTHORIZED, redirect_to=fallback)
