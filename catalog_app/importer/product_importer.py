"""
Orchestration of a product spreadsheet import.

A spreadsheet is processed in passes over windows of rows. Each pass first
classifies its rows (which is all a preview or dry run does) and then saves
them; the ledger, the created-product index and the counters are carried
from pass to pass in ``ImportRunState``. Once every pass is done, the reset
pass zeroes whatever the uploader controls that the spreadsheet left out.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from flask import current_app, has_app_context

from catalog_app.importer.errors import ImportErrors
from catalog_app.importer.metrics import observe_pass_duration
from catalog_app.importer.pipeline.entry import Disposition, Entry
from catalog_app.importer.pipeline.entry_processor import EntryProcessor
from catalog_app.importer.pipeline.run_state import ImportRunState
from catalog_app.importer.pipeline.settings import ImportSettings
from catalog_app.importer.pipeline.spreadsheet_data import SpreadsheetData
from catalog_app.importer.pipeline.store import CatalogStore
from catalog_app.importer.pipeline.validator import EntryValidator
from catalog_app.utils.permissions import editable_enterprises_for

CREATE_DISPOSITIONS = (Disposition.NEW_PRODUCT, Disposition.NEW_VARIANT, Disposition.NEW_INVENTORY_ITEM)
UPDATE_DISPOSITIONS = (Disposition.EXISTING_VARIANT, Disposition.EXISTING_INVENTORY_ITEM)


@dataclass
class PassSummary:
    """Outcome of one pass over a window of rows."""

    start_line: int | None
    end_line: int | None
    item_count: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    products_create_count: int = 0
    products_update_count: int = 0
    counts: dict[str, int] = field(default_factory=dict)
    invalid_entries: list[dict[str, Any]] = field(default_factory=list)
    products_to_create: list[dict[str, Any]] = field(default_factory=list)
    products_to_update: list[dict[str, Any]] = field(default_factory=list)
    supplier_products: dict[int, int] = field(default_factory=dict)
    total_supplier_products: int = 0
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_line": self.start_line,
            "end_line": self.end_line,
            "item_count": self.item_count,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "products_create_count": self.products_create_count,
            "products_update_count": self.products_update_count,
            "counts": dict(self.counts),
            "supplier_products": {str(key): value for key, value in self.supplier_products.items()},
            "total_supplier_products": self.total_supplier_products,
            "dry_run": self.dry_run,
        }


def _normalize_rows(rows: Iterable[Any]) -> list[tuple[int, Mapping[str, Any]]]:
    normalized: list[tuple[int, Mapping[str, Any]]] = []
    for row in rows:
        if hasattr(row, "line_number") and hasattr(row, "as_mapping"):
            normalized.append((row.line_number, row.as_mapping()))
        else:
            line_number, mapping = row
            normalized.append((int(line_number), mapping))
    return normalized


class ProductImporter:
    """Runs validation, save and reset passes for one spreadsheet and one user."""

    def __init__(
        self,
        rows: Iterable[Any],
        user,
        import_settings: Mapping[str, Any] | None = None,
        *,
        state: ImportRunState | None = None,
        store: CatalogStore | None = None,
        import_run=None,
        fallback_taxon_id: int | None = None,
        import_time: datetime | None = None,
    ):
        self.rows = _normalize_rows(rows)
        self.user = user
        self.state = state or ImportRunState()
        self.store = store or CatalogStore()
        self.import_run = import_run
        self.import_time = import_time or datetime.now(timezone.utc)
        self.errors = ImportErrors()
        self.editable_enterprises = editable_enterprises_for(user)

        payload = dict(import_settings or {})
        for existing_id in payload.get("updated_ids") or []:
            if existing_id not in self.state.updated_ids:
                self.state.updated_ids.append(existing_id)
        payload["updated_ids"] = self.state.updated_ids
        self.settings = ImportSettings(payload, editable_enterprises=self.editable_enterprises)

        self.spreadsheet_data = SpreadsheetData.build(
            (mapping for _, mapping in self.rows),
            editable_enterprises=self.editable_enterprises,
            store=self.store,
            fallback_taxon_id=fallback_taxon_id,
        )
        self.validator = EntryValidator(self.spreadsheet_data, self.settings, store=self.store, state=self.state)
        self._last_processor: EntryProcessor | None = None

    # --- queries -----------------------------------------------------------

    @property
    def item_count(self) -> int:
        return len(self.rows)

    @property
    def importing_into_inventory(self) -> bool:
        return self.settings.importing_into_inventory

    def permission_by_id(self, enterprise_id) -> bool:
        return self.settings.permission_by_id(enterprise_id)

    def rows_in_window(self, start_line: int | None = None, end_line: int | None = None):
        return [
            (line_number, mapping)
            for line_number, mapping in self.rows
            if (start_line is None or line_number >= start_line) and (end_line is None or line_number <= end_line)
        ]

    def line_windows(self, chunk_size: int) -> list[tuple[int, int]]:
        """Inclusive ``(start_line, end_line)`` windows covering every row, ``chunk_size`` rows each."""

        lines = [line_number for line_number, _ in self.rows]
        return [
            (lines[index], lines[min(index + chunk_size, len(lines)) - 1]) for index in range(0, len(lines), chunk_size)
        ]

    def entries_for(self, start_line: int | None = None, end_line: int | None = None) -> list[Entry]:
        return self.validator.classify_all(self.rows_in_window(start_line, end_line))

    # --- passes ------------------------------------------------------------

    def validate_entries(self, start_line: int | None = None, end_line: int | None = None) -> PassSummary:
        """Preview pass: classify rows and report what saving them would do."""

        started = time.perf_counter()
        entries = self.entries_for(start_line, end_line)
        summary = self._summarize(entries, start_line, end_line, dry_run=True)
        processor = self._processor()
        processor.count_existing_items()
        summary.supplier_products = dict(processor.supplier_products)
        summary.total_supplier_products = processor.total_supplier_products
        for entry in entries:
            if not entry.is_valid:
                self.errors.add_line(entry.line_number, entry.validation_errors)
        observe_pass_duration("validate", time.perf_counter() - started)
        return summary

    def save_entries(
        self,
        start_line: int | None = None,
        end_line: int | None = None,
        *,
        dry_run: bool = False,
    ) -> PassSummary:
        """Classify and save one window of rows, committing the pass unless ``dry_run``."""

        if dry_run:
            summary = self.validate_entries(start_line, end_line)
            self.store.session.rollback()
            self._update_run(summary)
            return summary

        started = time.perf_counter()
        entries = self.entries_for(start_line, end_line)
        summary = self._summarize(entries, start_line, end_line, dry_run=False)

        processor = self._processor()
        processor.save_all(entries)
        processor.count_existing_items()
        self.store.session.commit()

        summary.counts = processor.counts()
        summary.supplier_products = dict(processor.supplier_products)
        summary.total_supplier_products = processor.total_supplier_products
        self.state.add_counts(summary.counts)
        self._update_run(summary)
        observe_pass_duration("save", time.perf_counter() - started)

        if has_app_context():
            current_app.logger.info(
                (
                    "Product import lines %s-%s saved %s records "
                    "(products_created=%s variants_created=%s variants_updated=%s "
                    "inventory_created=%s inventory_updated=%s invalid=%s)"
                ),
                start_line or "start",
                end_line or "end",
                processor.total_saved_count,
                processor.products_created,
                processor.variants_created,
                processor.variants_updated,
                processor.inventory_created,
                processor.inventory_updated,
                summary.invalid_count,
            )
        return summary

    def save_all(self, *, chunk_size: int | None = None, dry_run: bool = False) -> list[PassSummary]:
        """Run a save pass for every window of ``chunk_size`` rows (one pass when not given)."""

        if not chunk_size or chunk_size >= len(self.rows):
            return [self.save_entries(dry_run=dry_run)]
        return [self.save_entries(start, end, dry_run=dry_run) for start, end in self.line_windows(chunk_size)]

    def reset_absent_items(self) -> int | None:
        """Final pass; returns ``None`` when the reset was not configured."""

        started = time.perf_counter()
        processor = self._processor()
        result = processor.reset_absent_items()
        self.store.session.commit()
        if result is not None:
            self.state.counts["products_reset_count"] = self.state.counts.get("products_reset_count", 0) + result
            self._update_run(None)
        observe_pass_duration("reset", time.perf_counter() - started)
        return result

    # --- helpers -----------------------------------------------------------

    def _processor(self) -> EntryProcessor:
        self._last_processor = EntryProcessor(
            self.settings,
            validator=self.validator,
            spreadsheet_data=self.spreadsheet_data,
            errors=self.errors,
            store=self.store,
            state=self.state,
            import_time=self.import_time,
        )
        return self._last_processor

    def _summarize(self, entries: Sequence[Entry], start_line, end_line, *, dry_run: bool) -> PassSummary:
        summary = PassSummary(start_line=start_line, end_line=end_line, dry_run=dry_run)
        summary.item_count = len(entries)
        for entry in entries:
            if not entry.is_valid:
                summary.invalid_count += 1
                summary.invalid_entries.append(entry.to_preview())
                continue
            summary.valid_count += 1
            if entry.disposition in CREATE_DISPOSITIONS:
                summary.products_create_count += 1
                summary.products_to_create.append(entry.to_preview())
            elif entry.disposition in UPDATE_DISPOSITIONS:
                summary.products_update_count += 1
                summary.products_to_update.append(entry.to_preview())
        return summary

    def _update_run(self, summary: PassSummary | None) -> None:
        import_run = self.import_run
        if import_run is None:
            return
        counts = dict(import_run.counts_json or {})
        if summary is not None:
            passes = list(counts.get("passes", []))
            passes.append(summary.to_dict())
            counts["passes"] = passes
        counts["totals"] = dict(self.state.counts)
        import_run.counts_json = counts
        import_run.errors_json = self.errors.to_dict()
        import_run.state_json = self.state.to_dict()
        self.store.session.commit()
