"""
Reset of catalog items the uploader controls but the spreadsheet left out.

``ResetAbsent.call`` returns ``None`` without touching anything when the
general settings, the ledger or the list of enterprises to reset was not
provided at all. Provided-but-empty inputs run normally and reset nothing.
"""

from __future__ import annotations

from flask import current_app, has_app_context

from catalog_app.importer.metrics import record_reset
from catalog_app.utils.permissions import coerce_enterprise_id

from .reset_strategies import reset_strategy_for
from .settings import ImportSettings


class ResetAbsent:
    """Buckets the enterprises to reset and runs the mode's strategy over them."""

    def __init__(self, settings: ImportSettings, strategy=None, *, store=None):
        self.settings = settings
        self.strategy = strategy if strategy is not None else reset_strategy_for(settings, store)
        self.suppliers_to_reset_products: list[int] = []
        self.suppliers_to_reset_inventories: list[int] = []
        self.products_reset_count: int | None = None

    def call(self) -> int | None:
        if (
            self.settings.settings is None
            or self.settings.updated_ids is None
            or self.settings.enterprises_to_reset is None
        ):
            return None

        self.suppliers_to_reset_products = []
        self.suppliers_to_reset_inventories = []
        for enterprise_id in self.settings.enterprises_to_reset:
            self._bucket(enterprise_id)

        bucket = (
            self.suppliers_to_reset_inventories
            if self.settings.importing_into_inventory
            else self.suppliers_to_reset_products
        )
        self.products_reset_count = self.strategy.reset(bucket) if bucket else 0

        record_reset(self.strategy.kind.value, self.products_reset_count)
        if has_app_context():
            current_app.logger.info(
                "Product import reset %s %s record(s) for enterprises %s",
                self.products_reset_count,
                self.strategy.kind.value,
                bucket,
            )
        return self.products_reset_count

    def _bucket(self, enterprise_id) -> None:
        if not self.settings.reset_all_absent:
            return
        if not self.settings.permission_by_id(enterprise_id):
            return

        enterprise_id = coerce_enterprise_id(enterprise_id)
        if self.settings.importing_into_inventory:
            if enterprise_id not in self.suppliers_to_reset_inventories:
                self.suppliers_to_reset_inventories.append(enterprise_id)
        elif enterprise_id not in self.suppliers_to_reset_products:
            self.suppliers_to_reset_products.append(enterprise_id)
