from catalog_app.utils.permissions import (
    coerce_enterprise_id,
    editable_enterprises_for,
    permission_by_id,
)


def test_admin_can_edit_every_enterprise(admin_user, owned_supplier, foreign_supplier, managed_hub):
    editable = editable_enterprises_for(admin_user)

    assert editable == {
        "City Hub": managed_hub.id,
        "Green Farm": owned_supplier.id,
        "Other Farm": foreign_supplier.id,
    }


def test_manager_edits_owned_and_role_enterprises_only(manager_user, owned_supplier, foreign_supplier, managed_hub):
    editable = editable_enterprises_for(manager_user)

    assert editable == {"City Hub": managed_hub.id, "Green Farm": owned_supplier.id}
    assert "Other Farm" not in editable


def test_no_user_edits_nothing(app):
    assert editable_enterprises_for(None) == {}


def test_permission_by_id_accepts_numeric_strings():
    editable = {"Green Farm": 7}

    assert permission_by_id(editable, 7)
    assert permission_by_id(editable, "7")
    assert not permission_by_id(editable, "8")
    assert not permission_by_id(editable, "seven")
    assert not permission_by_id(editable, None)


def test_coerce_enterprise_id():
    assert coerce_enterprise_id(" 12 ") == 12
    assert coerce_enterprise_id(3) == 3
    assert coerce_enterprise_id(True) is None
    assert coerce_enterprise_id("defaults") is None
