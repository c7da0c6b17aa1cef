"""
Utility helpers for product importer configuration checks.
"""

from __future__ import annotations

from flask import current_app

DEFAULT_CHUNK_SIZE = 100


def _get_config(app=None):
    if app is not None:
        return app.config
    return current_app.config


def is_product_import_enabled(app=None) -> bool:
    """Return True when the product import feature flag is enabled."""
    config = _get_config(app)
    return bool(config.get("PRODUCT_IMPORT_ENABLED", False))


def is_metrics_enabled(app=None) -> bool:
    config = _get_config(app)
    return bool(config.get("PRODUCT_IMPORT_METRICS_ENABLED", False))


def get_chunk_size(app=None) -> int:
    """Rows handled per pass; non-positive values fall back to the default."""
    config = _get_config(app)
    try:
        size = int(config.get("PRODUCT_IMPORT_CHUNK_SIZE", DEFAULT_CHUNK_SIZE))
    except (TypeError, ValueError):
        return DEFAULT_CHUNK_SIZE
    return size if size > 0 else DEFAULT_CHUNK_SIZE


def get_fallback_taxon_id(app=None) -> int | None:
    config = _get_config(app)
    value = config.get("PRODUCT_IMPORT_FALLBACK_TAXON_ID")
    return int(value) if value not in (None, "") else None
