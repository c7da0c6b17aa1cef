"""
Product import feature package.

Registers the ``product-import`` CLI group and records the feature state in
``app.extensions['product_import']``.
"""

from __future__ import annotations

from flask import Flask

from catalog_app.utils.importer import get_chunk_size, is_metrics_enabled, is_product_import_enabled

from .cli import get_disabled_product_import_group, product_import_cli
from .errors import ImportErrors
from .product_importer import PassSummary, ProductImporter

PRODUCT_IMPORT_EXTENSION_KEY = "product_import"

__all__ = [
    "init_importer",
    "PRODUCT_IMPORT_EXTENSION_KEY",
    "ImportErrors",
    "PassSummary",
    "ProductImporter",
]


def _ensure_extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(
        PRODUCT_IMPORT_EXTENSION_KEY,
        {
            "enabled": False,
            "chunk_size": None,
            "metrics_enabled": False,
        },
    )


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Avoid duplicate registrations when running tests
    command_name = product_import_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(product_import_cli)
    else:
        app.cli.add_command(get_disabled_product_import_group())


def init_importer(app: Flask) -> None:
    """
    Register product import commands based on configuration.
    """
    enabled = is_product_import_enabled(app)
    state = _ensure_extension_state(app)
    state.update(
        {
            "enabled": enabled,
            "chunk_size": get_chunk_size(app),
            "metrics_enabled": is_metrics_enabled(app),
        }
    )
    _set_cli(app, enabled)
    if not enabled:
        app.logger.info("Product import disabled via PRODUCT_IMPORT_ENABLED flag; CLI commands report unavailable.")
