"""Product import pipeline: classification, persistence and the reset pass."""

from __future__ import annotations

from .defaults import assign_defaults
from .entry import Disposition, Entry, EntryAttributes
from .entry_processor import EntryProcessor
from .reset_absent import ResetAbsent
from .reset_strategies import InventoryResetStrategy, ProductsResetStrategy, ResetStrategyKind, reset_strategy_for
from .run_state import ImportRunState
from .settings import DefaultRule, ImportSettings, ImportSettingsError
from .spreadsheet_data import SpreadsheetData
from .store import CatalogStore, SaveOutcome
from .validator import EntryValidator

__all__ = [
    "assign_defaults",
    "CatalogStore",
    "DefaultRule",
    "Disposition",
    "Entry",
    "EntryAttributes",
    "EntryProcessor",
    "EntryValidator",
    "ImportRunState",
    "ImportSettings",
    "ImportSettingsError",
    "InventoryResetStrategy",
    "ProductsResetStrategy",
    "ResetAbsent",
    "ResetStrategyKind",
    "SaveOutcome",
    "SpreadsheetData",
    "reset_strategy_for",
]
