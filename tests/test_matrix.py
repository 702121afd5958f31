import pytest

from permission_matrix.domain.matrix import (
    PermissionFlags,
    PermissionMatrix,
    PermissionRecord,
)
from permission_matrix.domain.roles import Role
from permission_matrix.errors import ProtectedRoleError, UnknownRoleError


def test_get_absent_pair_is_all_false():
    matrix = PermissionMatrix()
    record = matrix.get("contacts", "manager")
    assert record.flags == PermissionFlags.none()
    assert record.role is Role.MANAGER


def test_get_unknown_role():
    matrix = PermissionMatrix()
    with pytest.raises(UnknownRoleError):
        matrix.get("contacts", "director")


def test_get_protected_role_always_granted():
    matrix = PermissionMatrix()
    assert matrix.get("any-module", "super_admin").flags == PermissionFlags.all()


def test_set_applies_cascade():
    matrix = PermissionMatrix()
    record = matrix.set(
        "tasks",
        Role.STANDARD_USER,
        PermissionFlags(visible=False, add=True, change=True, delete=False),
    )
    assert record.flags == PermissionFlags.none()
    assert matrix.get("tasks", "standard_user").flags == PermissionFlags.none()


def test_set_rejects_protected_role():
    matrix = PermissionMatrix()
    with pytest.raises(ProtectedRoleError):
        matrix.set("contacts", "super_admin", PermissionFlags.none())
    assert len(matrix) == 0


def test_set_unknown_role():
    matrix = PermissionMatrix()
    with pytest.raises(UnknownRoleError):
        matrix.set("contacts", "director", PermissionFlags.all())


def test_duplicate_records_rejected():
    record = PermissionRecord("contacts", Role.ADMIN, True, True, True, True)
    with pytest.raises(ValueError, match="Duplicate"):
        PermissionMatrix([record, record])


def test_construction_normalizes_records():
    matrix = PermissionMatrix(
        [
            PermissionRecord("contacts", Role.MANAGER, visible=False, add=True),
            PermissionRecord("contacts", Role.SUPER_ADMIN),
        ]
    )
    assert matrix.get("contacts", Role.MANAGER).flags == PermissionFlags.none()
    stored = {record.key: record for record in matrix}
    assert stored[("contacts", Role.SUPER_ADMIN)].flags == PermissionFlags.all()


def test_fill_missing_keeps_existing_cells():
    matrix = PermissionMatrix([PermissionRecord("bids", Role.MANAGER, True, True, False, False)])
    defaults = PermissionMatrix(
        [
            PermissionRecord("bids", Role.MANAGER, True, True, True, True),
            PermissionRecord("notes", Role.MANAGER, True, False, False, False),
        ]
    )
    assert matrix.fill_missing(defaults) == 1
    assert matrix.get("bids", "manager").flags == PermissionFlags(True, True, False, False)
    assert matrix.get("notes", "manager").visible


def test_copy_is_independent():
    matrix = PermissionMatrix()
    clone = matrix.copy()
    clone.set("notes", Role.ADMIN, PermissionFlags.all())
    assert not matrix.contains("notes", Role.ADMIN)
    assert clone.contains("notes", Role.ADMIN)


def test_missing_keys():
    matrix = PermissionMatrix([PermissionRecord("notes", Role.ADMIN)])
    missing = matrix.missing_keys(["notes", "tasks"], [Role.ADMIN])
    assert missing == [("tasks", Role.ADMIN)]


def test_with_flag_hiding_clears_writes():
    flags = PermissionFlags.all().with_flag("visible", False)
    assert flags == PermissionFlags.none()


def test_with_flag_granting_write_makes_visible():
    flags = PermissionFlags.none().with_flag("delete", True)
    assert flags == PermissionFlags(visible=True, delete=True)


def test_with_flag_unknown_name():
    with pytest.raises(ValueError, match="Unknown permission flag"):
        PermissionFlags.none().with_flag("export", True)


def test_from_mapping():
    assert PermissionFlags.from_mapping({"visible": True, "add": True}) == PermissionFlags(
        visible=True, add=True
    )
    with pytest.raises(ValueError, match="Unknown permission flags"):
        PermissionFlags.from_mapping({"visible": True, "export": True})


def test_changes_from():
    before = PermissionFlags(visible=True)
    after = PermissionFlags(visible=True, add=True)
    assert after.changes_from(before) == [("add", False, True)]
    assert before.any()
    assert not PermissionFlags.none().any()


@pytest.mark.parametrize("value", ["false", "true", 1, 0, None])
def test_from_mapping_rejects_non_bool_values(value):
    with pytest.raises(ValueError, match="must be a bool"):
        PermissionFlags.from_mapping({"visible": value})


def test_with_flag_rejects_non_bool_value():
    with pytest.raises(ValueError, match="must be a bool"):
        PermissionFlags.none().with_flag("visible", "false")
