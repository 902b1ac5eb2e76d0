import copy
import json
from pathlib import Path

import pytest

from app.core.config import settings
from app.core.errors import RbacMatrixError
from app.core.permissions import ALL_ROLES
from app.core.rbac_matrix import (
    build_rbac_matrix, get_rbac_matrix, load_rbac_matrix, normalize_permission,
)


@pytest.fixture(scope="module")
def raw_matrix() -> dict:
    return json.loads(Path(settings.RBAC_MATRIX_PATH).read_text(encoding="utf-8"))


@pytest.mark.parametrize("raw, expected", [
    ("tickets.read", "tickets.view"),
    ("tickets.read_all", "tickets.view"),
    ("tickets.update_all", "tickets.update_all"),
    ("  assets.create ", "assets.create"),
    ({"resource": "users", "action": "read"}, "users.view"),
    ({"resource": "users"}, None),
    ("*", "*"),
    ("", None),
    (None, None),
])
def test_normalize_permission(raw, expected):
    assert normalize_permission(raw) == expected


def test_shipped_matrix_is_consistent():
    matrix = get_rbac_matrix()
    for role in ALL_ROLES:
        assert matrix.defaults_for(role), f"role {role} has no defaults"
    assert matrix.is_admin_role("org-admin")
    assert not matrix.is_admin_role("client-admin")
    assert "dashboard.view" in matrix.always_allowed
    assert matrix.minimal_permissions == frozenset({"dashboard.view"})


def test_backend_tokens_are_normalized():
    matrix = get_rbac_matrix()
    assert "tickets.read" in matrix.backend_permission_names
    assert "tickets.view" in matrix.backend_tokens
    assert "tickets.read" not in matrix.backend_tokens


def test_role_permission_names_use_backend_spellings():
    matrix = get_rbac_matrix()
    assert matrix.role_permission_names(["tickets.view"]) == ["tickets.read", "tickets.read_all"]
    assert matrix.role_permission_names(["hours_bank.consume"]) == ["hours_bank.consume"]


def test_role_permission_names_keep_wildcards_and_frontend_tokens():
    matrix = get_rbac_matrix()
    assert matrix.role_permission_names(["*", "hours_bank.*"]) == ["*", "hours_bank.*"]
    assert matrix.role_permission_names(["roles.view", "", None]) == ["roles.view"]


def test_unknown_alias_target_is_rejected(raw_matrix):
    broken = copy.deepcopy(raw_matrix)
    broken["aliases"]["licenses.view"] = ["licenses.read"]
    with pytest.raises(RbacMatrixError, match="licenses.read"):
        build_rbac_matrix(broken)


def test_unknown_role_default_is_rejected(raw_matrix):
    broken = copy.deepcopy(raw_matrix)
    broken["role_defaults"]["agent"] = ["dashboard.view", "spaceships.fly"]
    with pytest.raises(RbacMatrixError, match="spaceships.fly"):
        build_rbac_matrix(broken)


def test_role_without_defaults_is_rejected(raw_matrix):
    broken = copy.deepcopy(raw_matrix)
    del broken["role_defaults"]["technician"]
    with pytest.raises(RbacMatrixError, match="technician"):
        build_rbac_matrix(broken)


def test_unreadable_matrix_file(tmp_path):
    path = tmp_path / "matrix.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RbacMatrixError):
        load_rbac_matrix(path)
