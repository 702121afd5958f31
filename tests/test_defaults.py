import pytest

from permission_matrix.domain.matrix import PermissionFlags, PermissionMatrix, PermissionRecord
from permission_matrix.domain.roles import ROLE_CATALOG, Role
from permission_matrix.errors import UnknownRoleError
from permission_matrix.policy.defaults import (
    DefaultPolicyGenerator,
    generate,
    merge_missing,
)
from permission_matrix.policy.models import DEFAULT_MODULES, DefaultPolicySets

ALL = PermissionFlags.all()
NONE = PermissionFlags.none()
VIEW_ONLY = PermissionFlags(visible=True)
NO_DELETE = PermissionFlags(visible=True, add=True, change=True)


@pytest.fixture
def generator():
    return DefaultPolicyGenerator()


def test_generate_small_catalog_scenario():
    matrix = generate(["contacts", "users"], ROLE_CATALOG)
    assert len(matrix) == 10
    assert matrix.get("users", "admin").delete is False
    assert matrix.get("contacts", "standard_user").visible is True


def test_generate_full_catalog_is_complete_and_cascaded():
    matrix = generate(DEFAULT_MODULES)
    assert len(matrix) == len(DEFAULT_MODULES) * len(ROLE_CATALOG)
    assert matrix.missing_keys(DEFAULT_MODULES, ROLE_CATALOG) == []
    for record in matrix:
        if not record.visible:
            assert not (record.add or record.change or record.delete)


def test_generate_ignores_duplicate_modules():
    matrix = generate(["notes", "notes"], [Role.ADMIN])
    assert len(matrix) == 1


def test_generate_unknown_role():
    with pytest.raises(UnknownRoleError):
        generate(["notes"], ["director"])


def test_super_admin_defaults(generator):
    for module in DEFAULT_MODULES:
        assert generator.default_flags(module, Role.SUPER_ADMIN) == ALL


def test_admin_defaults(generator):
    assert generator.default_flags("users", "admin") == NO_DELETE
    assert generator.default_flags("contacts", "admin") == ALL
    assert generator.default_flags("settings", "admin") == ALL


def test_manager_defaults(generator):
    assert generator.default_flags("settings", "manager") == VIEW_ONLY
    assert generator.default_flags("users", "manager") == VIEW_ONLY
    assert generator.default_flags("marketing", "manager") == ALL
    assert generator.default_flags("contacts", "manager") == NO_DELETE


def test_marketing_defaults(generator):
    for hidden in ("users", "settings", "bids"):
        assert generator.default_flags(hidden, "marketing") == NONE
    assert generator.default_flags("marketing", "marketing") == ALL
    assert generator.default_flags("contacts", "marketing") == NO_DELETE
    assert generator.default_flags("email", "marketing") == NO_DELETE
    assert generator.default_flags("dashboard", "marketing") == VIEW_ONLY


def test_standard_user_defaults(generator):
    assert generator.default_flags("users", "standard_user") == NONE
    assert generator.default_flags("settings", "standard_user") == NONE
    for personal in ("contacts", "tasks", "notes"):
        assert generator.default_flags(personal, "standard_user") == NO_DELETE
    assert generator.default_flags("reports", "standard_user") == VIEW_ONLY


def test_custom_sets_extend_rules_without_code_changes():
    sets = DefaultPolicySets(standard_personal=["contacts", "tasks", "notes", "appointments"])
    generator = DefaultPolicyGenerator(sets)
    assert generator.default_flags("appointments", "standard_user") == NO_DELETE


def test_hidden_module_in_owned_set_stays_cascaded():
    sets = DefaultPolicySets(marketing_hidden=["email"])
    generator = DefaultPolicyGenerator(sets)
    assert generator.default_flags("email", "marketing") == NONE


def test_merge_missing_is_non_destructive():
    catalog = [m for m in DEFAULT_MODULES if m != "ai-suggestions"]
    persisted = generate(catalog)
    persisted.set("bids", Role.MANAGER, PermissionFlags(True, True, False, False))
    before = len(persisted)

    inserted = merge_missing(persisted, generate(DEFAULT_MODULES))

    assert inserted == len(ROLE_CATALOG)
    assert len(persisted) == before + len(ROLE_CATALOG)
    assert persisted.get("bids", "manager").flags == PermissionFlags(True, True, False, False)
    for role in ROLE_CATALOG:
        assert persisted.contains("ai-suggestions", role)


def test_merge_missing_nothing_to_add():
    matrix = PermissionMatrix([PermissionRecord("notes", Role.ADMIN)])
    assert merge_missing(matrix, PermissionMatrix([PermissionRecord("notes", Role.ADMIN)])) == 0
