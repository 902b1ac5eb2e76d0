from types import SimpleNamespace

import pytest

from app.core.rbac import (
    PermissionSet, PermissionSource, is_admin, resolve_effective_permissions,
)


def make_user(role=None, permissions=None):
    return SimpleNamespace(role=role, permissions=permissions)


# ===============================================================
# Precedence
# ===============================================================
def test_server_permissions_win():
    user = make_user("agent", ["tickets.view"])
    resolved = resolve_effective_permissions(user, server_permissions=["reports.export", {"resource": "users", "action": "read"}])
    assert resolved.source == PermissionSource.SERVER_SUPPLIED
    assert resolved.permissions == frozenset({"reports.export", "users.view"})


def test_user_override_beats_role_defaults():
    user = make_user("agent", ["tickets.read"])
    resolved = resolve_effective_permissions(user, server_permissions=[])
    assert resolved.source == PermissionSource.USER_OVERRIDE
    assert resolved.permissions == frozenset({"tickets.view"})


def test_role_defaults_when_nothing_explicit():
    resolved = resolve_effective_permissions(make_user("technician"))
    assert resolved.source == PermissionSource.ROLE_DEFAULT
    assert "assets.*" in resolved.permissions


@pytest.mark.parametrize("user", [None, make_user(), make_user("pilot")])
def test_minimal_fallback(user):
    resolved = resolve_effective_permissions(user)
    assert resolved.source == PermissionSource.MINIMAL
    assert resolved.permissions == frozenset({"dashboard.view"})


# ===============================================================
# Checks
# ===============================================================
def test_agent_permissions():
    perms = PermissionSet.for_user(make_user("agent"))
    assert not perms.is_admin
    assert perms.has_permission("hours_bank.consume")
    assert perms.has_permission("tickets.read")
    assert not perms.has_permission("hours_bank.manage")
    assert not perms.has_permission("assets.create")
    assert "clients.view" in perms


def test_resource_wildcard_covers_actions():
    perms = PermissionSet.for_user(make_user("technician"))
    assert perms.has_permission("assets.create")
    assert perms.has_permission("assets.delete")


def test_alias_resolves_to_backend_permission():
    perms = PermissionSet(["assets.view"], role="agent")
    assert perms.has_permission("licenses.view")
    assert perms.has_permission("inventory.view")
    assert not perms.has_permission("licenses.create")


def test_roles_view_alias():
    assert PermissionSet(["settings.manage_roles"]).has_permission("roles.view")
    assert not PermissionSet(["settings.view"]).has_permission("roles.view")


def test_dashboard_is_always_allowed():
    perms = PermissionSet([], role="client-user")
    assert perms.has_permission("dashboard.view")


def test_empty_requirement_is_allowed():
    perms = PermissionSet(["tickets.view"])
    assert perms.has_permission(None)
    assert perms.has_any([])
    assert perms.has_all(None)


def test_any_and_all():
    perms = PermissionSet(["tickets.view", "comments.create"])
    assert perms.has_any(["tickets.delete", "comments.create"])
    assert not perms.has_all(["tickets.delete", "comments.create"])
    assert perms.has_all(["tickets.read", "comments.create"])


def test_admin_role_bypasses_checks():
    perms = PermissionSet([], role="org-admin")
    assert perms.is_admin
    assert perms.has_permission("anything.at_all")
    assert perms.can_access_resource("projects")


def test_global_wildcard_is_admin():
    user = make_user("client-admin")
    perms = PermissionSet.for_user(user)
    assert perms.is_admin
    assert is_admin(user, perms.permissions)


def test_can_access_resource():
    perms = PermissionSet.for_user(make_user("client-user"))
    assert perms.can_access_resource("tickets")
    assert not perms.can_access_resource("reports")
    assert perms.can_access_resource(None)


def test_client_user_browses_but_cannot_approve_catalog():
    perms = PermissionSet.for_user(make_user("client-user"))
    assert perms.can_access_resource("catalog")
    assert not perms.has_permission("catalog.approve")


def test_filter_menu():
    perms = PermissionSet.for_user(make_user("client-user"))
    items = [
        {"key": "home"},
        {"key": "tickets", "permission": "tickets.view"},
        {"key": "reports", "permission": "reports.view"},
        SimpleNamespace(key="hours", permission="hours_bank.view"),
    ]
    visible = perms.filter_menu_by_permission(items)
    assert [getattr(item, "key", None) or item["key"] for item in visible] == ["home", "tickets", "hours"]


def test_filter_menu_admin_keeps_everything():
    items = [{"key": "reports", "permission": "reports.view"}]
    assert PermissionSet([], role="admin").filter_menu_by_permission(items) == items
    assert PermissionSet([]).filter_menu_by_permission(None) == []


def test_to_list_is_sorted():
    assert PermissionSet(["b.view", "a.view"]).to_list() == ["a.view", "b.view"]
