import pytest

from catalog_app.importer.pipeline.settings import ImportSettings, ImportSettingsError


def test_absent_inputs_are_distinct_from_empty_ones():
    absent = ImportSettings({})
    empty = ImportSettings({"settings": {}, "updated_ids": [], "enterprises_to_reset": []})

    assert absent.settings is None
    assert absent.updated_ids is None
    assert absent.enterprises_to_reset is None
    assert empty.settings == {}
    assert empty.updated_ids == []
    assert empty.enterprises_to_reset == []


def test_ledger_is_shared_by_reference():
    ledger = []
    settings = ImportSettings({"settings": {}, "updated_ids": ledger})

    settings.updated_ids.append(42)

    assert settings.updated_ids is ledger
    assert ledger == [42]


def test_mode_flags_follow_the_settings():
    settings = ImportSettings({"settings": {"import_into": "inventories", "reset_all_absent": "true"}})

    assert settings.importing_into_inventory
    assert settings.import_into == "inventories"
    assert settings.reset_all_absent
    assert not ImportSettings({"settings": {}}).reset_all_absent
    assert not ImportSettings({}).importing_into_inventory


def test_malformed_settings_are_rejected():
    with pytest.raises(ImportSettingsError):
        ImportSettings({"settings": ["not", "a", "mapping"]})
    with pytest.raises(ImportSettingsError):
        ImportSettings({"settings": {"import_into": "warehouse"}})
    with pytest.raises(ImportSettingsError):
        ImportSettings({"settings": {}, "updated_ids": "1,2"})


def test_active_default_with_unknown_mode_is_rejected():
    with pytest.raises(ImportSettingsError) as excinfo:
        ImportSettings({"settings": {"defaults": {"on_hand": {"active": True, "mode": "fill", "value": 5}}}})

    assert "unsupported mode" in str(excinfo.value)


def test_inactive_default_may_omit_mode():
    settings = ImportSettings({"settings": {"defaults": {"on_hand": {"active": False}}}})

    (rule,) = settings.defaults_rules
    assert rule.attribute == "on_hand"
    assert not rule.active


def test_enterprise_defaults_replace_global_rules_for_the_same_attribute():
    settings = ImportSettings(
        {
            "settings": {
                "defaults": {
                    "on_hand": {"active": True, "mode": "overwrite_empty", "value": 5},
                    "price": {"active": True, "mode": "overwrite_all", "value": "1.00"},
                },
                "7": {"defaults": {"on_hand": {"active": True, "mode": "overwrite_all", "value": 9}}},
            }
        }
    )

    rules = {rule.attribute: rule for rule in settings.defaults_for(7)}
    assert rules["on_hand"].mode == "overwrite_all"
    assert rules["on_hand"].value == 9
    assert rules["price"].value == "1.00"

    global_rules = {rule.attribute: rule for rule in settings.defaults_for(8)}
    assert global_rules["on_hand"].value == 5


def test_permission_by_id_uses_editable_enterprises():
    settings = ImportSettings({"settings": {}}, editable_enterprises={"Green Farm": 3})

    assert settings.permission_by_id(3)
    assert settings.permission_by_id("3")
    assert not settings.permission_by_id(4)
    assert settings.editable_enterprise_ids == [3]


def test_data_for_stock_reset_carries_the_ledger():
    ledger = [1, 2]
    settings = ImportSettings({"settings": {"reset_all_absent": True}, "updated_ids": ledger, "enterprises_to_reset": ["3"]})

    payload = settings.data_for_stock_reset()

    assert payload["updated_ids"] is ledger
    assert payload["enterprises_to_reset"] == ["3"]
    assert payload["settings"] == {"reset_all_absent": True}
