from types import SimpleNamespace

from app.core.config import settings
from app.core.rbac import PermissionSource
from app.core.route_guard import GuardState, RouteRequirement, evaluate_route
from app.core.session import SessionContext


def session_for(role, permissions=None, server_permissions=None) -> SessionContext:
    context = SessionContext()
    context.init_session("token", SimpleNamespace(role=role, permissions=permissions), server_permissions)
    return context


# ===============================================================
# Session context
# ===============================================================
def test_session_lifecycle():
    context = SessionContext()
    assert not context.is_authenticated
    assert context.describe() == {"authenticated": False, "loading": False, "role": None, "source": None}

    context.begin_session("token")
    assert context.is_loading

    permissions = context.init_session("token", SimpleNamespace(role="agent", permissions=None))
    assert not context.is_loading
    assert context.permission_source == PermissionSource.ROLE_DEFAULT
    assert permissions.has_permission("hours_bank.consume")

    context.clear_session()
    assert not context.is_authenticated
    assert context.permissions is None


def test_sessions_do_not_share_state():
    first = session_for("client-user")
    second = session_for("org-admin")
    assert not first.permissions.is_admin
    assert second.permissions.is_admin


# ===============================================================
# Guard
# ===============================================================
def test_unauthenticated_redirects_to_login():
    decision = evaluate_route(SessionContext(), RouteRequirement(permission="tickets.view"))
    assert decision.state == GuardState.UNAUTHENTICATED
    assert decision.redirect_to == settings.LOGIN_ROUTE
    assert not decision.render


def test_loading_renders_nothing():
    context = SessionContext().begin_session("token")
    decision = evaluate_route(context, RouteRequirement(permission="tickets.view"))
    assert decision.state == GuardState.LOADING
    assert decision.redirect_to is None
    assert not decision.render


def test_open_route_for_authenticated_user():
    decision = evaluate_route(session_for("client-user"))
    assert decision.state == GuardState.AUTHORIZED


def test_single_permission():
    assert evaluate_route(session_for("agent"), RouteRequirement(permission="hours_bank.consume")).allowed
    decision = evaluate_route(session_for("agent"), RouteRequirement(permission="hours_bank.manage"))
    assert decision.state == GuardState.UNAUTHORIZED
    assert decision.redirect_to == settings.DEFAULT_FALLBACK_ROUTE


def test_custom_fallback():
    decision = evaluate_route(
        session_for("client-user"), RouteRequirement(permission="reports.view", fallback="/tickets")
    )
    assert decision.redirect_to == "/tickets"


def test_any_versus_all():
    context = session_for("client-user")
    any_of = RouteRequirement(permissions=("reports.view", "tickets.view"))
    all_of = RouteRequirement(permissions=("reports.view", "tickets.view"), require_all=True)
    assert evaluate_route(context, any_of).allowed
    assert not evaluate_route(context, all_of).allowed


def test_resource_takes_precedence_over_permission():
    context = session_for("client-user")
    requirement = RouteRequirement(resource="tickets", permission="reports.view")
    assert evaluate_route(context, requirement).allowed


def test_admin_always_authorized():
    requirement = RouteRequirement(permissions=("reports.export", "settings.manage_sla"), require_all=True)
    assert evaluate_route(session_for("super-admin"), requirement).allowed


def test_server_permissions_drive_the_guard():
    context = session_for("client-user", server_permissions=["reports.view"])
    assert evaluate_route(context, RouteRequirement(permission="reports.view")).allowed
    assert not evaluate_route(context, RouteRequirement(permission="tickets.view")).allowed
