"""
Read-only view over the settings submitted with a product import.

The raw payload has the shape::

    {
        "settings": {
            "import_into": "product_list" | "inventories",
            "reset_all_absent": bool,
            "defaults": {attribute: {"active": bool, "mode": str, "value": ...}},
            "<enterprise_id>": {"defaults": {...}},
        },
        "updated_ids": [...],
        "enterprises_to_reset": [...],
    }

``settings``, ``updated_ids`` and ``enterprises_to_reset`` may each be absent;
absent is distinct from empty and the reset pass relies on the difference.
``updated_ids`` is handed out by reference so the entry processor and the reset
pass share one ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from catalog_app.utils.permissions import coerce_enterprise_id, permission_by_id as _permission_by_id

IMPORT_INTO_PRODUCT_LIST = "product_list"
IMPORT_INTO_INVENTORIES = "inventories"
DEFAULT_MODES = ("overwrite_all", "overwrite_empty")
_TRUE_STRINGS = {"1", "true", "yes", "on"}


class ImportSettingsError(ValueError):
    """Raised when the submitted settings do not have the expected shape."""


@dataclass(frozen=True)
class DefaultRule:
    """One ``attribute -> {active, mode, value}`` entry of the defaults table."""

    attribute: str
    active: bool
    mode: str
    value: Any

    @classmethod
    def from_mapping(cls, attribute: str, payload: Mapping[str, Any]) -> "DefaultRule":
        if not isinstance(payload, Mapping):
            raise ImportSettingsError(f"Default for '{attribute}' must be a mapping, got {type(payload).__name__}.")
        active = _coerce_flag(payload.get("active"))
        mode = payload.get("mode")
        if active and mode not in DEFAULT_MODES:
            raise ImportSettingsError(
                f"Default for '{attribute}' has unsupported mode {mode!r}; expected one of {', '.join(DEFAULT_MODES)}."
            )
        return cls(attribute=attribute, active=active, mode=mode, value=payload.get("value"))


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _parse_rules(payload: Any, *, context: str) -> tuple[DefaultRule, ...]:
    if payload is None:
        return ()
    if not isinstance(payload, Mapping):
        raise ImportSettingsError(f"{context} defaults must be a mapping, got {type(payload).__name__}.")
    return tuple(DefaultRule.from_mapping(str(attribute), rule) for attribute, rule in payload.items())


class ImportSettings:
    """Settings view for one import run."""

    def __init__(self, import_settings: Mapping[str, Any] | None, *, editable_enterprises: Mapping[str, int] | None = None):
        import_settings = import_settings or {}
        if not isinstance(import_settings, Mapping):
            raise ImportSettingsError("Import settings must be a mapping.")

        settings = import_settings.get("settings")
        if settings is not None and not isinstance(settings, Mapping):
            raise ImportSettingsError(f"'settings' must be a mapping, got {type(settings).__name__}.")

        updated_ids = import_settings.get("updated_ids")
        if updated_ids is not None and not isinstance(updated_ids, list):
            raise ImportSettingsError("'updated_ids' must be a list.")

        enterprises_to_reset = import_settings.get("enterprises_to_reset")
        if enterprises_to_reset is not None and not isinstance(enterprises_to_reset, (list, tuple)):
            raise ImportSettingsError("'enterprises_to_reset' must be a list.")

        import_into = (settings or {}).get("import_into", IMPORT_INTO_PRODUCT_LIST)
        if import_into not in (IMPORT_INTO_PRODUCT_LIST, IMPORT_INTO_INVENTORIES):
            raise ImportSettingsError(f"Unsupported import_into value {import_into!r}.")

        self._settings = settings
        self._updated_ids = updated_ids
        self._enterprises_to_reset = list(enterprises_to_reset) if enterprises_to_reset is not None else None
        self._editable_enterprises = dict(editable_enterprises or {})
        self._global_rules = _parse_rules((settings or {}).get("defaults"), context="Global")
        self._enterprise_rules: dict[int, tuple[DefaultRule, ...]] = {}
        for key, value in (settings or {}).items():
            enterprise_id = coerce_enterprise_id(key)
            if enterprise_id is None or not isinstance(value, Mapping):
                continue
            self._enterprise_rules[enterprise_id] = _parse_rules(value.get("defaults"), context=f"Enterprise {key}")

    @property
    def settings(self) -> Mapping[str, Any] | None:
        return self._settings

    @property
    def updated_ids(self) -> list | None:
        return self._updated_ids

    @property
    def enterprises_to_reset(self) -> list | None:
        return self._enterprises_to_reset

    @property
    def importing_into_inventory(self) -> bool:
        return bool(self._settings) and self._settings.get("import_into") == IMPORT_INTO_INVENTORIES

    @property
    def import_into(self) -> str:
        return IMPORT_INTO_INVENTORIES if self.importing_into_inventory else IMPORT_INTO_PRODUCT_LIST

    @property
    def reset_all_absent(self) -> bool:
        return bool(self._settings) and _coerce_flag(self._settings.get("reset_all_absent"))

    @property
    def defaults_rules(self) -> tuple[DefaultRule, ...]:
        return self._global_rules

    def defaults_for(self, enterprise_id: int | None) -> tuple[DefaultRule, ...]:
        """Rules for one enterprise; enterprise-specific rules replace global ones of the same attribute."""

        specific = self._enterprise_rules.get(coerce_enterprise_id(enterprise_id)) if enterprise_id is not None else None
        if not specific:
            return self._global_rules
        overridden = {rule.attribute for rule in specific}
        return tuple(rule for rule in self._global_rules if rule.attribute not in overridden) + specific

    @property
    def editable_enterprises(self) -> dict[str, int]:
        return dict(self._editable_enterprises)

    @property
    def editable_enterprise_ids(self) -> list[int]:
        return list(self._editable_enterprises.values())

    def permission_by_id(self, enterprise_id: Any) -> bool:
        return _permission_by_id(self._editable_enterprises, enterprise_id)

    def data_for_stock_reset(self) -> dict[str, Any]:
        """Payload the final reset pass needs, carried between staged passes."""

        return {
            "settings": dict(self._settings) if self._settings is not None else None,
            "updated_ids": self._updated_ids,
            "enterprises_to_reset": self._enterprises_to_reset,
        }
