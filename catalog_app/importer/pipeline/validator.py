"""
Classification of spreadsheet rows into catalog operations.

Each row is resolved against the lookup tables and the catalog, then given a
disposition (new product, new variant, existing variant, new or existing
inventory item) and an unsaved candidate record, which is validated with the
run's defaults applied. Persistent records are never modified here: updates
are validated on a detached copy and the values to write travel on the entry.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from flask import current_app, has_app_context

from catalog_app.importer.metrics import record_entry_classified
from catalog_app.models import Product, is_blank

from .defaults import assign_defaults
from .entry import Disposition, Entry, EntryAttributes
from .run_state import ImportRunState
from .settings import ImportSettings
from .spreadsheet_data import SpreadsheetData
from .store import CatalogStore


class EntryValidator:
    """Turns canonical row mappings into classified entries."""

    def __init__(
        self,
        spreadsheet_data: SpreadsheetData,
        settings: ImportSettings,
        *,
        store: CatalogStore | None = None,
        state: ImportRunState | None = None,
    ):
        self.spreadsheet_data = spreadsheet_data
        self.settings = settings
        self.store = store or CatalogStore()
        self.state = state or ImportRunState()

    def classify(self, row: Mapping[str, Any], line_number: int) -> Entry:
        attributes, coercion_errors = EntryAttributes.from_row(row)
        errors: list[str] = []
        on_hand_was_defaulted = False
        if attributes.on_hand is None and not any(error.startswith("On hand") for error in coercion_errors):
            attributes = replace(attributes, on_hand=0)
            on_hand_was_defaulted = True

        hard_failure = bool(coercion_errors)
        errors.extend(coercion_errors)

        supplier_id, supplier_errors = self._resolve_supplier(attributes.supplier)
        if supplier_errors:
            errors.extend(supplier_errors)
            hard_failure = True
        attributes = attributes.with_ids(supplier_id=supplier_id)

        if self.settings.importing_into_inventory:
            producer_id, producer_errors = self._resolve_producer(attributes, supplier_id)
            if producer_errors:
                errors.extend(producer_errors)
                hard_failure = True
            attributes = attributes.with_ids(producer_id=producer_id)
        else:
            taxon_id, category_errors, category_hard = self._resolve_category(attributes.category)
            errors.extend(category_errors)
            hard_failure = hard_failure or category_hard
            attributes = attributes.with_ids(primary_taxon_id=taxon_id)

        if hard_failure:
            return self._finish(Entry.invalid(line_number, attributes, errors, on_hand_was_defaulted=on_hand_was_defaulted))

        if self.settings.importing_into_inventory:
            entry, messages = self._classify_inventory(line_number, attributes, on_hand_was_defaulted)
        else:
            entry, messages = self._classify_product(line_number, attributes, on_hand_was_defaulted)

        errors.extend(message for message in messages if message not in errors)
        if errors:
            entry = Entry.invalid(line_number, attributes, errors, on_hand_was_defaulted=on_hand_was_defaulted)
        return self._finish(entry)

    def classify_all(self, rows) -> list[Entry]:
        """Classify ``(line_number, mapping)`` pairs in order."""

        return [self.classify(row, line_number) for line_number, row in rows]

    def mark_as_new_variant(self, entry: Entry, product_id: int) -> Entry:
        """Reclassify a repeated new-product row as a variant of the product created for it earlier."""

        variant = self.store.build_variant(product_id, entry.attributes.variant_values())
        return entry.reclassify(Disposition.NEW_VARIANT, variant)

    # --- resolution --------------------------------------------------------

    def _resolve_supplier(self, supplier_name: str | None) -> tuple[int | None, list[str]]:
        if is_blank(supplier_name):
            return None, ["Supplier name field is empty"]
        lookup = self.spreadsheet_data.supplier(supplier_name)
        if not lookup.found:
            return None, [f'Supplier "{supplier_name}" not found in database']
        if not lookup.permission:
            return lookup.id, [f'You do not have permission to manage products for "{supplier_name}"']
        return lookup.id, []

    def _resolve_producer(self, attributes: EntryAttributes, supplier_id: int | None) -> tuple[int | None, list[str]]:
        if is_blank(attributes.producer):
            return supplier_id, []
        producer_id = self.spreadsheet_data.producer_id(attributes.producer)
        if producer_id is None:
            return None, [f'Producer "{attributes.producer}" not found in database']
        return producer_id, []

    def _resolve_category(self, category_name: str | None) -> tuple[int | None, list[str], bool]:
        if is_blank(category_name):
            return self.spreadsheet_data.fallback_taxon_id, ["Category field is empty"], False
        taxon_id = self.spreadsheet_data.category_id(category_name)
        if taxon_id is None:
            return None, [f'Category "{category_name}" not found in database'], True
        return taxon_id, [], False

    def _find_product(self, supplier_id: int | None, name: str | None) -> Product | None:
        if supplier_id is None or is_blank(name):
            return None
        created_id = self.state.created_product_id(supplier_id, name)
        if created_id is not None:
            product = self.store.get_product(created_id)
            if product is not None:
                return product
        return self.store.find_product(supplier_id, name)

    # --- dispositions ------------------------------------------------------

    def _classify_product(self, line_number, attributes: EntryAttributes, defaulted: bool):
        product = self._find_product(attributes.supplier_id, attributes.name)
        rules = self.settings.defaults_for(attributes.supplier_id)

        if product is None:
            candidate = self.store.build_product(attributes.product_values(), attributes.variant_values())
            entry = Entry(line_number, attributes, Disposition.NEW_PRODUCT, candidate, on_hand_was_defaulted=defaulted)
            assign_defaults(candidate, entry, rules)
            return entry, self.store.validate(candidate)

        changes = attributes.variant_values()
        variant = self.store.find_variant(product, attributes.display_name, attributes.unit_value)
        if variant is None:
            candidate = self.store.build_variant(product.id, changes)
            entry = Entry(line_number, attributes, Disposition.NEW_VARIANT, candidate, on_hand_was_defaulted=defaulted)
            assign_defaults(candidate, entry, rules)
            return entry, self.store.validate(candidate, product)

        entry = Entry(
            line_number,
            attributes,
            Disposition.EXISTING_VARIANT,
            variant,
            changes=changes,
            on_hand_was_defaulted=defaulted,
        )
        trial = variant.detached_copy()
        trial.assign_attributes(changes)
        assign_defaults(trial, entry, rules)
        return entry, self.store.validate(trial, product)

    def _classify_inventory(self, line_number, attributes: EntryAttributes, defaulted: bool):
        product = self._find_product(attributes.producer_id, attributes.name)
        if product is None:
            return None, [f'Product "{attributes.name or ""}" not found in database']

        variant = self.store.find_variant(product, attributes.display_name, attributes.unit_value)
        if variant is None:
            label = attributes.display_name or attributes.name
            return None, [f'Variant "{label}" with unit value {attributes.unit_value} not found in database']

        rules = self.settings.defaults_for(attributes.supplier_id)
        changes = attributes.override_values()
        override = self.store.find_override(variant.id, attributes.supplier_id)
        if override is None:
            candidate = self.store.build_override(variant.id, attributes.supplier_id, changes)
            entry = Entry(
                line_number, attributes, Disposition.NEW_INVENTORY_ITEM, candidate, on_hand_was_defaulted=defaulted
            )
            assign_defaults(candidate, entry, rules)
            return entry, self.store.validate(candidate)

        entry = Entry(
            line_number,
            attributes,
            Disposition.EXISTING_INVENTORY_ITEM,
            override,
            changes=changes,
            on_hand_was_defaulted=defaulted,
        )
        trial = override.detached_copy()
        trial.assign_attributes(changes)
        assign_defaults(trial, entry, rules)
        return entry, self.store.validate(trial)

    def _finish(self, entry: Entry) -> Entry:
        record_entry_classified(entry.disposition.value)
        if not entry.is_valid and has_app_context():
            current_app.logger.debug(
                "Product import line %s invalid: %s", entry.line_number, "; ".join(entry.validation_errors)
            )
        return entry
