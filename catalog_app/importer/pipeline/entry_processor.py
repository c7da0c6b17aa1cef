"""
Persistence of classified entries.

Saves each valid entry according to its disposition, keeps the per-pass
counters, appends every saved id to the shared ledger and records failures
under the entry's line number. Row failures never raise; a pass that saves
nothing adds one run-level error.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app, has_app_context

from catalog_app.importer.errors import ImportErrors
from catalog_app.importer.metrics import record_conflict_retry, record_save

from .defaults import assign_defaults
from .entry import Disposition, Entry
from .reset_absent import ResetAbsent
from .reset_strategies import reset_strategy_for
from .run_state import ImportRunState
from .settings import ImportSettings
from .spreadsheet_data import SpreadsheetData
from .store import CatalogStore, SaveOutcome
from .validator import EntryValidator

NOTHING_SAVED_MESSAGE = "Nothing was saved. Check the line errors and try again."


def _log(level: str, message: str, *args) -> None:
    if has_app_context():
        getattr(current_app.logger, level)(message, *args)


class EntryProcessor:
    """Writes one pass of classified entries to the catalog."""

    def __init__(
        self,
        settings: ImportSettings,
        *,
        validator: EntryValidator,
        spreadsheet_data: SpreadsheetData,
        errors: ImportErrors | None = None,
        store: CatalogStore | None = None,
        state: ImportRunState | None = None,
        import_time: datetime | None = None,
    ):
        self.settings = settings
        self.validator = validator
        self.spreadsheet_data = spreadsheet_data
        self.errors = errors if errors is not None else ImportErrors()
        self.store = store or CatalogStore()
        self.state = state or ImportRunState()
        self.import_time = import_time or datetime.now(timezone.utc)
        self.updated_ids = settings.updated_ids if settings.updated_ids is not None else self.state.updated_ids

        self.products_created = 0
        self.variants_created = 0
        self.variants_updated = 0
        self.inventory_created = 0
        self.inventory_updated = 0
        self.products_reset_count = 0
        self.supplier_products: dict[int, int] = {}
        self.total_supplier_products = 0
        self.processed_entries: list[Entry] = []
        self._reset_absent: ResetAbsent | None = None

    # --- public API --------------------------------------------------------

    def save_all(self, entries) -> None:
        for entry in entries:
            if not entry.is_valid:
                self.errors.add_line(entry.line_number, entry.validation_errors)
                self.processed_entries.append(entry)
                continue
            if self.settings.importing_into_inventory and entry.supplier_id is not None:
                self._save_to_inventory(entry)
            else:
                self._save_to_product_list(entry)

        if self.total_saved_count == 0:
            self.errors.add("importer", NOTHING_SAVED_MESSAGE)
            _log("warning", "Product import pass saved no records (%s entries)", len(self.processed_entries))

    @property
    def total_saved_count(self) -> int:
        return (
            self.products_created
            + self.variants_created
            + self.variants_updated
            + self.inventory_created
            + self.inventory_updated
        )

    def counts(self) -> dict[str, int]:
        return {
            "products_created": self.products_created,
            "variants_created": self.variants_created,
            "variants_updated": self.variants_updated,
            "inventory_created": self.inventory_created,
            "inventory_updated": self.inventory_updated,
            "products_reset_count": self.products_reset_count,
        }

    def count_existing_items(self) -> None:
        """Existing item counts per permitted supplier in the spreadsheet."""

        self.supplier_products = {}
        self.total_supplier_products = 0
        for supplier_id in self.spreadsheet_data.permitted_supplier_ids():
            if not self.permission_by_id(supplier_id):
                continue
            if self.settings.importing_into_inventory:
                count = self.store.count_overrides_for_hub(supplier_id)
            else:
                count = self.store.count_variants_for_supplier(supplier_id)
            self.supplier_products[supplier_id] = count
            self.total_supplier_products += count

    def permission_by_id(self, supplier_id) -> bool:
        return self.settings.permission_by_id(supplier_id)

    @property
    def reset_absent(self) -> ResetAbsent:
        if self._reset_absent is None:
            self._reset_absent = ResetAbsent(self.settings, reset_strategy_for(self.settings, self.store))
        return self._reset_absent

    def reset_absent_items(self) -> int | None:
        if not self.settings.reset_all_absent:
            return None
        result = self.reset_absent.call()
        if result is not None:
            self.products_reset_count = result
        return result

    # --- routing -----------------------------------------------------------

    def _save_to_product_list(self, entry: Entry) -> None:
        if entry.validates_as(Disposition.NEW_PRODUCT):
            entry = self._save_new_product(entry)

        if entry.validates_as(Disposition.NEW_VARIANT):
            if self._save_variant(entry, kind="variant"):
                self.variants_created += 1
        elif entry.validates_as(Disposition.EXISTING_VARIANT):
            if self._save_variant(entry, kind="variant", retry_on_conflict=True):
                self.variants_updated += 1

        self.processed_entries.append(entry)

    def _save_to_inventory(self, entry: Entry) -> None:
        if entry.validates_as(Disposition.NEW_INVENTORY_ITEM):
            if self._save_inventory_item(entry, is_new=True):
                self.inventory_created += 1
        elif entry.validates_as(Disposition.EXISTING_INVENTORY_ITEM):
            if self._save_inventory_item(entry, is_new=False):
                self.inventory_updated += 1
        self.processed_entries.append(entry)

    # --- savers ------------------------------------------------------------

    def _rules_for(self, entry: Entry):
        return self.settings.defaults_for(entry.supplier_id)

    def _prepare(self, record, entry: Entry) -> None:
        if entry.changes:
            record.assign_attributes(entry.changes)
        assign_defaults(record, entry, self._rules_for(entry))
        record.write_attribute("import_date", self.import_time)

    def _save_new_product(self, entry: Entry) -> Entry:
        """Save a new product, or reclassify a repeat of one created earlier in this run."""

        created_id = self.state.created_product_id(entry.supplier_id, entry.name)
        if created_id is not None:
            return self.validator.mark_as_new_variant(entry, created_id)

        product = entry.candidate_record
        rules = self._rules_for(entry)
        outcome = self.store.save(product, apply=lambda record: assign_defaults(record, entry, rules))
        record_save("product", outcome.status)
        if not outcome.is_ok:
            self._record_failure(entry, outcome)
            return entry

        self._ensure_variant_updated(product, entry)
        self.products_created += 1
        self.updated_ids.append(product.first_variant.id)
        self.state.remember_created_product(entry.supplier_id, entry.name, product.id)
        _log("debug", "Product import line %s created product %s", entry.line_number, product.id)
        return entry

    def _ensure_variant_updated(self, product, entry: Entry) -> None:
        variant = product.first_variant
        if entry.attributes.display_name:
            variant.display_name = entry.attributes.display_name
        if entry.attributes.on_demand:
            variant.on_demand = entry.attributes.on_demand
        variant.import_date = self.import_time
        self.store.flush()

    def _save_record(self, record, entry: Entry, *, kind: str, product=None, retry_on_conflict: bool = False) -> bool:
        """Apply the entry to ``record`` and save it, reloading and retrying once on a stale lock."""

        def apply(target) -> None:
            self._prepare(target, entry)

        outcome = self.store.save(record, product=product, apply=apply)

        if outcome.is_conflict and retry_on_conflict:
            record_conflict_retry(kind)
            _log("info", "Product import line %s hit a stale %s %s, retrying once", entry.line_number, kind, record.id)
            self.store.reload(record)
            outcome = self.store.save(record, product=product, apply=apply)

        record_save(kind, outcome.status)
        if not outcome.is_ok:
            self._record_failure(entry, outcome)
            return False
        self.updated_ids.append(record.id)
        return True

    def _save_variant(self, entry: Entry, *, kind: str, retry_on_conflict: bool = False) -> bool:
        variant = entry.candidate_record
        product = self.store.get_product(variant.product_id) if variant.product_id is not None else None
        return self._save_record(variant, entry, kind=kind, product=product, retry_on_conflict=retry_on_conflict)

    def _save_inventory_item(self, entry: Entry, *, is_new: bool) -> bool:
        override = entry.candidate_record
        if not self._save_record(override, entry, kind="inventory", retry_on_conflict=not is_new):
            return False
        self.store.ensure_visible_in_inventory(override.variant_id, override.hub_id)
        return True

    def _record_failure(self, entry: Entry, outcome: SaveOutcome) -> None:
        self.errors.add_line(entry.line_number, outcome.messages)
        if outcome.record is not None and outcome.status != "conflict":
            self.store.discard_changes(outcome.record)
        _log("warning", "Product import line %s not saved (%s): %s", entry.line_number, outcome.status, "; ".join(outcome.messages))
