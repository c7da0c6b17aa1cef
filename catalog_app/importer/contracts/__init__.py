"""Canonical spreadsheet contract helpers for importer adapters."""

from __future__ import annotations

from .product import (
    PRODUCT_CANONICAL_FIELDS,
    FieldSpec,
    get_product_alias_map,
    get_product_field_specs,
    get_product_required_headers,
    get_product_supported_headers,
    normalize_header,
    required_headers_missing,
    resolve_headers,
)

__all__ = [
    "FieldSpec",
    "PRODUCT_CANONICAL_FIELDS",
    "get_product_field_specs",
    "get_product_required_headers",
    "get_product_supported_headers",
    "get_product_alias_map",
    "normalize_header",
    "required_headers_missing",
    "resolve_headers",
]
