# catalog_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db, is_blank
from .catalog import Product, Taxon, Variant
from .enterprise import Enterprise, EnterpriseRole, User
from .importer import ImportRunStatus, ImportTargetKind, ProductImportRun
from .inventory import InventoryItem, VariantOverride

__all__ = [
    "db",
    "BaseModel",
    "is_blank",
    "User",
    "Enterprise",
    "EnterpriseRole",
    "Taxon",
    "Product",
    "Variant",
    "VariantOverride",
    "InventoryItem",
    # Importer models
    "ImportRunStatus",
    "ImportTargetKind",
    "ProductImportRun",
]
