"""
Strategies that neutralise catalog records left out of an import.

Both strategies receive the run's ledger of touched ids at construction and
reset only records of the enterprises they are handed that are not in it.
"""

from __future__ import annotations

import enum
from typing import Sequence

from .settings import ImportSettings
from .store import CatalogStore


class ResetStrategyKind(str, enum.Enum):
    PRODUCTS = "products"
    INVENTORY = "inventory"


class ProductsResetStrategy:
    """Zero the stock of supplier variants that were not in the spreadsheet."""

    kind = ResetStrategyKind.PRODUCTS

    def __init__(self, excluded_ids: Sequence[int] | None, *, store: CatalogStore | None = None):
        self.excluded_ids = excluded_ids
        self.store = store or CatalogStore()

    def reset(self, supplier_ids: Sequence[int]) -> int:
        variants = self.store.absent_variants(supplier_ids, self.excluded_ids)
        for variant in variants:
            variant.on_hand = 0
            variant.on_demand = False
        if variants:
            self.store.flush()
        return len(variants)


class InventoryResetStrategy:
    """Zero the stock of hub overrides that were not in the spreadsheet."""

    kind = ResetStrategyKind.INVENTORY

    def __init__(self, excluded_ids: Sequence[int] | None, *, store: CatalogStore | None = None):
        self.excluded_ids = excluded_ids
        self.store = store or CatalogStore()

    def reset(self, hub_ids: Sequence[int]) -> int:
        overrides = self.store.absent_overrides(hub_ids, self.excluded_ids)
        for override in overrides:
            override.count_on_hand = 0
            if override.on_demand is not None:
                override.on_demand = False
        if overrides:
            self.store.flush()
        return len(overrides)


STRATEGIES = {
    ResetStrategyKind.PRODUCTS: ProductsResetStrategy,
    ResetStrategyKind.INVENTORY: InventoryResetStrategy,
}


def strategy_kind_for(settings: ImportSettings) -> ResetStrategyKind:
    return ResetStrategyKind.INVENTORY if settings.importing_into_inventory else ResetStrategyKind.PRODUCTS


def reset_strategy_for(settings: ImportSettings, store: CatalogStore | None = None):
    """Strategy matching the run's import mode, bound to the run's ledger."""

    return STRATEGIES[strategy_kind_for(settings)](settings.updated_ids, store=store)
