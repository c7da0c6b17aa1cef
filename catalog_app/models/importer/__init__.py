"""
Importer-specific SQLAlchemy models.
"""

from .schema import ImportRunStatus, ImportTargetKind, ProductImportRun

__all__ = [
    "ImportRunStatus",
    "ImportTargetKind",
    "ProductImportRun",
]
