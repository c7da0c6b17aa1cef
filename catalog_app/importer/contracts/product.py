"""Canonical product spreadsheet contract.

Single source of truth for the columns the product importer recognises, their
header aliases, and which of them every upload must carry. Columns outside the
contract are not rejected; the adapter keeps them aside as ``extra`` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence, Tuple

Normalizer = Callable[[object | None], object | None]


def _strip_string(value: object | None) -> object | None:
    if isinstance(value, str):
        return value.strip()
    return value


def _lower_string(value: object | None) -> object | None:
    value = _strip_string(value)
    if isinstance(value, str):
        return value.lower()
    return value


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical spreadsheet column."""

    name: str
    description: str
    required: bool = False
    aliases: Tuple[str, ...] = ()
    normalizer: Normalizer | None = _strip_string

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical header plus aliases for validation."""

        return (self.name, *self.aliases)


PRODUCT_CANONICAL_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="supplier",
        description="Name of the enterprise supplying the product (or the hub in inventory imports).",
        required=True,
        aliases=("supplier_name", "enterprise"),
    ),
    FieldSpec(
        name="producer",
        description="Owner of the product when importing into a hub inventory; defaults to the supplier.",
        aliases=("producer_name",),
    ),
    FieldSpec(
        name="name",
        description="Product name, unique per supplier.",
        required=True,
        aliases=("product", "product_name"),
    ),
    FieldSpec(
        name="category",
        description="Taxon name the product is filed under.",
        aliases=("taxon", "primary_taxon"),
    ),
    FieldSpec(
        name="display_name",
        description="Variant display name; together with unit_value identifies a variant.",
        aliases=("variant_name",),
    ),
    FieldSpec(
        name="unit_value",
        description="Variant size expressed in the product's base unit.",
        aliases=("units",),
    ),
    FieldSpec(
        name="unit_description",
        description="Free text describing the unit.",
    ),
    FieldSpec(
        name="variant_unit",
        description="One of weight, volume or items.",
        aliases=("unit_type",),
        normalizer=_lower_string,
    ),
    FieldSpec(
        name="variant_unit_scale",
        description="Scale factor for weight/volume units.",
    ),
    FieldSpec(
        name="variant_unit_name",
        description="Item name for items-based products.",
    ),
    FieldSpec(
        name="price",
        description="Variant price (or override price in inventory imports).",
    ),
    FieldSpec(
        name="on_hand",
        description="Stock level; blank is treated as zero.",
        aliases=("count_on_hand", "stock"),
    ),
    FieldSpec(
        name="on_demand",
        description="Whether the item can be sold without stock (true/false).",
    ),
    FieldSpec(
        name="sku",
        description="Stock keeping unit.",
    ),
    FieldSpec(
        name="description",
        description="Product description.",
    ),
    FieldSpec(
        name="shipping_category",
        description="Shipping category name.",
    ),
)


def get_product_field_specs() -> Tuple[FieldSpec, ...]:
    """Return the canonical product field definitions."""

    return PRODUCT_CANONICAL_FIELDS


def get_product_required_headers() -> Tuple[str, ...]:
    """Headers that must be present in every spreadsheet."""

    return tuple(field.name for field in PRODUCT_CANONICAL_FIELDS if field.required)


def get_product_supported_headers() -> Tuple[str, ...]:
    return tuple(field.name for field in PRODUCT_CANONICAL_FIELDS)


def get_product_alias_map() -> Mapping[str, str]:
    """Map normalized header tokens to canonical names (includes aliases)."""

    mapping: dict[str, str] = {}
    for field in PRODUCT_CANONICAL_FIELDS:
        for header in field.headers():
            mapping[normalize_header(header)] = field.name
    return mapping


def normalize_header(header: str) -> str:
    """Normalize a header for comparison (case/space/underscore agnostic)."""

    token = header.strip().lower()
    for char in (" ", "-", "."):
        token = token.replace(char, "_")
    return token


def required_headers_missing(headers: Iterable[str]) -> Tuple[str, ...]:
    """Return the subset of required headers that are missing from a spreadsheet."""

    alias_map = get_product_alias_map()
    present = {alias_map.get(normalize_header(header)) for header in headers}
    return tuple(required for required in get_product_required_headers() if required not in present)


def resolve_headers(headers: Sequence[str]) -> Tuple[str, ...]:
    """Resolve raw headers to canonical names; unknown headers are returned unchanged."""

    alias_map = get_product_alias_map()
    return tuple(alias_map.get(normalize_header(header), header) for header in headers)
