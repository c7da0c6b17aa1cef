"""
State threaded between the passes of one import run.

A large spreadsheet is imported in several passes over windows of rows. The
ledger of touched record ids, the index of products created so far, and the
counters must survive from one pass to the next (and, for staged runs, be
persisted on the run row), so they live here rather than on any service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

COUNTER_KEYS = (
    "products_created",
    "variants_created",
    "variants_updated",
    "inventory_created",
    "inventory_updated",
    "products_reset_count",
)


def _empty_counts() -> dict[str, int]:
    return {key: 0 for key in COUNTER_KEYS}


@dataclass
class ImportRunState:
    """Mutable cross-pass state for one import run."""

    updated_ids: list[int] = field(default_factory=list)
    created_products: dict[tuple[int, str], int] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=_empty_counts)

    def created_product_id(self, supplier_id: int | None, name: str | None) -> int | None:
        if supplier_id is None or name is None:
            return None
        return self.created_products.get((supplier_id, name))

    def remember_created_product(self, supplier_id: int, name: str, product_id: int) -> None:
        self.created_products[(supplier_id, name)] = product_id

    def record_ids(self, ids) -> None:
        self.updated_ids.extend(ids)

    def add_counts(self, counts: dict[str, int]) -> None:
        for key, value in counts.items():
            self.counts[key] = self.counts.get(key, 0) + int(value or 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_ids": list(self.updated_ids),
            "created_products": [
                [supplier_id, name, product_id] for (supplier_id, name), product_id in self.created_products.items()
            ],
            "counts": dict(self.counts),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "ImportRunState":
        payload = payload or {}
        counts = _empty_counts()
        counts.update({key: int(value) for key, value in (payload.get("counts") or {}).items()})
        return cls(
            updated_ids=list(payload.get("updated_ids") or []),
            created_products={
                (int(supplier_id), str(name)): int(product_id)
                for supplier_id, name, product_id in payload.get("created_products") or []
            },
            counts=counts,
        )
