"""
Lookup tables built once per spreadsheet.

Every distinct supplier, producer and category name in the rows is resolved
with one query per table, so classifying a row never hits the database for
name lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from catalog_app.utils.permissions import permission_by_id

from .store import CatalogStore


@dataclass(frozen=True)
class SupplierLookup:
    """Resolution of one enterprise name."""

    name: str
    id: int | None
    permission: bool

    @property
    def found(self) -> bool:
        return self.id is not None


@dataclass
class SpreadsheetData:
    """Name-to-id indexes for one spreadsheet."""

    suppliers_index: dict[str, SupplierLookup] = field(default_factory=dict)
    producers_index: dict[str, int | None] = field(default_factory=dict)
    categories_index: dict[str, int | None] = field(default_factory=dict)
    fallback_taxon_id: int | None = None

    @classmethod
    def build(
        cls,
        rows: Iterable[Mapping[str, Any]],
        *,
        editable_enterprises: Mapping[str, int],
        store: CatalogStore,
        fallback_taxon_id: int | None = None,
    ) -> "SpreadsheetData":
        supplier_names: set[str] = set()
        producer_names: set[str] = set()
        category_names: set[str] = set()
        for row in rows:
            for key, bucket in (("supplier", supplier_names), ("producer", producer_names), ("category", category_names)):
                value = row.get(key)
                if isinstance(value, str) and value.strip():
                    bucket.add(value.strip())

        enterprise_ids = store.enterprise_ids_by_name(supplier_names | producer_names)
        taxon_ids = store.taxon_ids_by_name(category_names)

        suppliers_index = {
            name: SupplierLookup(
                name=name,
                id=enterprise_ids.get(name),
                permission=permission_by_id(editable_enterprises, enterprise_ids.get(name)),
            )
            for name in sorted(supplier_names)
        }
        return cls(
            suppliers_index=suppliers_index,
            producers_index={name: enterprise_ids.get(name) for name in sorted(producer_names)},
            categories_index={name: taxon_ids.get(name) for name in sorted(category_names)},
            fallback_taxon_id=fallback_taxon_id if fallback_taxon_id is not None else store.first_taxon_id(),
        )

    def supplier(self, name: str) -> SupplierLookup:
        return self.suppliers_index.get(name) or SupplierLookup(name=name, id=None, permission=False)

    def producer_id(self, name: str) -> int | None:
        if name in self.producers_index:
            return self.producers_index[name]
        lookup = self.suppliers_index.get(name)
        return lookup.id if lookup else None

    def category_id(self, name: str) -> int | None:
        return self.categories_index.get(name)

    def permitted_supplier_ids(self) -> list[int]:
        return [lookup.id for lookup in self.suppliers_index.values() if lookup.found and lookup.permission]
