"""
Spreadsheet entries: one classified row of a product import.

``EntryAttributes`` is the fixed schema of recognised columns with values
already coerced to their catalog types; anything else the row carried lives in
``extra``. ``Entry`` is immutable once classified. Reclassification (a second
``new_product`` row for a product created earlier in the same run) produces a
new instance.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from catalog_app.models import is_blank

_TRUE_VALUES = {"1", "true", "t", "yes", "y"}
_FALSE_VALUES = {"0", "false", "f", "no", "n"}

# Attributes that identify records or are owned by the store; stripped from previews.
NON_DISPLAY_ATTRIBUTES = frozenset(
    {"id", "product_id", "variant_id", "supplier_id", "producer_id", "primary_taxon_id", "hub_id"}
)


class Disposition(str, enum.Enum):
    """What saving an entry will do."""

    NEW_PRODUCT = "new_product"
    NEW_VARIANT = "new_variant"
    EXISTING_VARIANT = "existing_variant"
    NEW_INVENTORY_ITEM = "new_inventory_item"
    EXISTING_INVENTORY_ITEM = "existing_inventory_item"
    INVALID = "invalid"

    @property
    def creates_product(self) -> bool:
        return self is Disposition.NEW_PRODUCT

    @property
    def is_inventory(self) -> bool:
        return self in (Disposition.NEW_INVENTORY_ITEM, Disposition.EXISTING_INVENTORY_ITEM)


def _label(attribute: str) -> str:
    return attribute.replace("_", " ").capitalize()


def _to_float(attribute, value):
    try:
        return float(value), None
    except (TypeError, ValueError):
        return None, f"{_label(attribute)} is not a number"


def _to_decimal(attribute, value):
    try:
        return Decimal(str(value).strip()), None
    except (InvalidOperation, ValueError):
        return None, f"{_label(attribute)} is not a number"


def _to_int(attribute, value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None, f"{_label(attribute)} is not a number"
    if not number.is_integer():
        return None, f"{_label(attribute)} must be an integer"
    return int(number), None


def _to_bool(attribute, value):
    if isinstance(value, bool):
        return value, None
    token = str(value).strip().lower()
    if token in _TRUE_VALUES:
        return True, None
    if token in _FALSE_VALUES:
        return False, None
    return None, f"{_label(attribute)} must be true or false"


_COERCERS = {
    "unit_value": _to_float,
    "variant_unit_scale": _to_float,
    "price": _to_decimal,
    "on_hand": _to_int,
    "count_on_hand": _to_int,
    "default_stock": _to_int,
    "on_demand": _to_bool,
}


def coerce_value(attribute: str, value: Any) -> tuple[Any, str | None]:
    """Coerce a raw cell (or default) to the attribute's catalog type. Blank becomes None."""

    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "":
        return None, None
    coercer = _COERCERS.get(attribute)
    if coercer is None:
        return value, None
    return coercer(attribute, value)


@dataclass(frozen=True)
class EntryAttributes:
    """Recognised spreadsheet columns plus the ids resolved during classification."""

    supplier: str | None = None
    producer: str | None = None
    name: str | None = None
    category: str | None = None
    display_name: str | None = None
    unit_value: float | None = None
    unit_description: str | None = None
    variant_unit: str | None = None
    variant_unit_scale: float | None = None
    variant_unit_name: str | None = None
    price: Decimal | None = None
    on_hand: int | None = None
    on_demand: bool | None = None
    sku: str | None = None
    description: str | None = None
    shipping_category: str | None = None
    supplier_id: int | None = None
    producer_id: int | None = None
    primary_taxon_id: int | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def column_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name not in NON_DISPLAY_ATTRIBUTES and f.name != "extra")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> tuple["EntryAttributes", list[str]]:
        """Build attributes from a canonical row mapping, returning coercion errors alongside."""

        values: dict[str, Any] = {}
        errors: list[str] = []
        known = set(cls.column_names())
        extra = dict(row.get("extra") or {})
        for key, raw in row.items():
            if key == "extra":
                continue
            if key not in known:
                extra[key] = raw
                continue
            value, error = coerce_value(key, raw)
            if error:
                errors.append(error)
            values[key] = value
        return cls(extra=extra, **values), errors

    def with_ids(self, **ids: Any) -> "EntryAttributes":
        return replace(self, **ids)

    def as_dict(self, *, include_extra: bool = False) -> dict[str, Any]:
        payload = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        if include_extra:
            payload["extra"] = dict(self.extra)
        return payload

    def product_values(self) -> dict[str, Any]:
        return {
            "supplier_id": self.supplier_id,
            "primary_taxon_id": self.primary_taxon_id,
            "name": self.name,
            "description": self.description,
            "variant_unit": self.variant_unit,
            "variant_unit_scale": self.variant_unit_scale,
            "variant_unit_name": self.variant_unit_name,
        }

    def variant_values(self) -> dict[str, Any]:
        """Variant columns supplied by the row; blank cells are left out so they do not clear data."""

        candidates = {
            "display_name": self.display_name,
            "unit_value": self.unit_value,
            "unit_description": self.unit_description,
            "price": self.price,
            "on_hand": self.on_hand,
            "on_demand": self.on_demand,
            "sku": self.sku,
        }
        return {key: value for key, value in candidates.items() if value is not None}

    def override_values(self) -> dict[str, Any]:
        candidates = {
            "price": self.price,
            "count_on_hand": self.on_hand,
            "on_demand": self.on_demand,
            "sku": self.sku,
        }
        return {key: value for key, value in candidates.items() if value is not None}


@dataclass(frozen=True, eq=False)
class Entry:
    """
    A classified spreadsheet row.

    ``candidate_record`` is the unsaved record for creations, or the persistent
    record for updates, in which case ``changes`` holds the values the save
    step applies to it.
    """

    line_number: int
    attributes: EntryAttributes
    disposition: Disposition
    candidate_record: Any = None
    changes: Mapping[str, Any] = field(default_factory=dict)
    validation_errors: tuple[str, ...] = ()
    on_hand_was_defaulted: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.disposition, Disposition):
            object.__setattr__(self, "disposition", Disposition(self.disposition))
        object.__setattr__(self, "validation_errors", tuple(self.validation_errors))
        invalid = self.disposition is Disposition.INVALID
        if invalid != bool(self.validation_errors):
            raise ValueError(
                f"Line {self.line_number}: validation errors must be present exactly when the entry is invalid."
            )

    @classmethod
    def invalid(cls, line_number: int, attributes: EntryAttributes, errors, *, on_hand_was_defaulted=False) -> "Entry":
        return cls(
            line_number=line_number,
            attributes=attributes,
            disposition=Disposition.INVALID,
            validation_errors=tuple(errors),
            on_hand_was_defaulted=on_hand_was_defaulted,
        )

    @property
    def is_valid(self) -> bool:
        return self.disposition is not Disposition.INVALID

    @property
    def supplier_id(self) -> int | None:
        return self.attributes.supplier_id

    @property
    def name(self) -> str | None:
        return self.attributes.name

    def validates_as(self, disposition: Disposition | str) -> bool:
        return self.disposition is Disposition(disposition)

    def reclassify(self, disposition: Disposition, candidate_record: Any, *, changes=None) -> "Entry":
        return replace(
            self,
            disposition=disposition,
            candidate_record=candidate_record,
            changes=dict(changes or {}),
            validation_errors=(),
        )

    def display_attributes(self) -> dict[str, Any]:
        """Row values for previews, without ids and internal fields."""

        payload = {
            key: value
            for key, value in self.attributes.as_dict().items()
            if key not in NON_DISPLAY_ATTRIBUTES and value is not None
        }
        if isinstance(payload.get("price"), Decimal):
            payload["price"] = str(payload["price"])
        return payload

    def to_preview(self) -> dict[str, Any]:
        payload = {
            "line_number": self.line_number,
            "disposition": self.disposition.value,
            "attributes": self.display_attributes(),
        }
        if self.validation_errors:
            payload["errors"] = list(self.validation_errors)
        return payload
