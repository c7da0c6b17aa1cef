"""Importer row sources."""

from __future__ import annotations

from .csv_products import (
    CSVAdapterError,
    CSVHeaderError,
    ProductCSVAdapter,
    ProductCSVRow,
    ProductCSVStatistics,
)

__all__ = [
    "CSVAdapterError",
    "CSVHeaderError",
    "ProductCSVAdapter",
    "ProductCSVRow",
    "ProductCSVStatistics",
]
