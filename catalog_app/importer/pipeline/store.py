"""
Catalog persistence used by the product import pipeline.

All reads and writes of the import go through ``CatalogStore`` so the
classification and save logic never builds queries itself. Writes happen in
savepoints; a lost optimistic-lock race surfaces as a ``conflict`` outcome
rather than an exception, and the caller decides whether to retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from catalog_app.models import Enterprise, InventoryItem, Product, Taxon, Variant, VariantOverride, db


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a store write."""

    status: Literal["ok", "invalid", "conflict"]
    record: Any = None
    messages: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, record) -> "SaveOutcome":
        return cls(status="ok", record=record)

    @classmethod
    def invalid(cls, record, messages: Iterable[str]) -> "SaveOutcome":
        return cls(status="invalid", record=record, messages=tuple(messages))

    @classmethod
    def conflict(cls, record, message: str) -> "SaveOutcome":
        return cls(status="conflict", record=record, messages=(message,))

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_conflict(self) -> bool:
        return self.status == "conflict"


class _RejectedRecord(Exception):
    """Validation failure raised inside a savepoint so it rolls back."""

    def __init__(self, messages: Iterable[str]):
        messages = tuple(messages)
        super().__init__("; ".join(messages))
        self.messages = messages


def _unique_names(names: Iterable[str | None]) -> list[str]:
    return sorted({name for name in names if name})


def _ledger_ids(ids: Sequence[Any] | None) -> list[int]:
    # NOT IN with a NULL member matches nothing, so drop blanks.
    return [int(value) for value in (ids or ()) if value is not None]


class CatalogStore:
    """Reads and writes of catalog records on one session."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    # --- lookups -----------------------------------------------------------

    def enterprise_ids_by_name(self, names: Iterable[str | None]) -> dict[str, int]:
        unique = _unique_names(names)
        if not unique:
            return {}
        rows = self.session.execute(select(Enterprise.name, Enterprise.id).where(Enterprise.name.in_(unique)))
        return {name: enterprise_id for name, enterprise_id in rows}

    def taxon_ids_by_name(self, names: Iterable[str | None]) -> dict[str, int]:
        unique = _unique_names(names)
        if not unique:
            return {}
        rows = self.session.execute(
            select(Taxon.name, func.min(Taxon.id)).where(Taxon.name.in_(unique)).group_by(Taxon.name)
        )
        return {name: taxon_id for name, taxon_id in rows}

    def first_taxon_id(self) -> int | None:
        return self.session.execute(select(Taxon.id).order_by(Taxon.id).limit(1)).scalar_one_or_none()

    def get_product(self, product_id: int) -> Product | None:
        product = self.session.get(Product, product_id)
        if product is None or product.deleted_at is not None:
            return None
        return product

    def find_product(self, supplier_id: int, name: str) -> Product | None:
        return (
            self.session.execute(
                select(Product)
                .where(Product.supplier_id == supplier_id, Product.name == name, Product.deleted_at.is_(None))
                .order_by(Product.id)
                .limit(1)
            )
            .scalars()
            .first()
        )

    @staticmethod
    def find_variant(product: Product, display_name: str | None, unit_value: float | None) -> Variant | None:
        """Standard variant with the same display name and numerically equal unit value."""

        for variant in product.standard_variants:
            if variant.display_name != display_name:
                continue
            if variant.unit_value is None and unit_value is None:
                return variant
            if variant.unit_value is not None and unit_value is not None and float(variant.unit_value) == float(unit_value):
                return variant
        return None

    def find_override(self, variant_id: int, hub_id: int) -> VariantOverride | None:
        return (
            self.session.execute(
                select(VariantOverride).where(VariantOverride.variant_id == variant_id, VariantOverride.hub_id == hub_id)
            )
            .scalars()
            .first()
        )

    # --- builders ----------------------------------------------------------

    @staticmethod
    def build_product(product_values: dict[str, Any], variant_values: dict[str, Any]) -> Product:
        """Unsaved product with its master and first standard variant."""

        product = Product(**product_values)
        master = Variant(
            is_master=True,
            price=variant_values.get("price"),
            unit_value=variant_values.get("unit_value"),
            sku=variant_values.get("sku"),
            on_demand=False,
        )
        standard = Variant(is_master=False, on_demand=False)
        standard.assign_attributes(variant_values)
        product.variants = [master, standard]
        return product

    @staticmethod
    def build_variant(product_id: int, variant_values: dict[str, Any]) -> Variant:
        variant = Variant(product_id=product_id, is_master=False, on_demand=False)
        variant.assign_attributes(variant_values)
        return variant

    @staticmethod
    def build_override(variant_id: int, hub_id: int, override_values: dict[str, Any]) -> VariantOverride:
        override = VariantOverride(variant_id=variant_id, hub_id=hub_id)
        override.assign_attributes(override_values)
        return override

    # --- writes ------------------------------------------------------------

    def validate(self, record, product: Product | None = None) -> list[str]:
        with self.session.no_autoflush:
            if product is not None:
                return record.validate(product=product)
            return record.validate()

    def save(
        self,
        record,
        *,
        product: Product | None = None,
        apply: Callable[[Any], None] | None = None,
    ) -> SaveOutcome:
        """
        Validate and flush ``record`` inside a savepoint.

        ``apply`` writes the row's changes onto the record after the savepoint
        opens, so a failed flush rolls back only those changes and the session
        stays usable for a reload. ``product`` gives variants their validation
        context.
        """

        try:
            with self.session.begin_nested():
                if apply is not None:
                    apply(record)
                messages = self.validate(record, product)
                if messages:
                    raise _RejectedRecord(messages)
                self.session.add(record)
                self.session.flush()
        except _RejectedRecord as exc:
            self.discard_changes(record)
            return SaveOutcome.invalid(record, exc.messages)
        except StaleDataError as exc:
            return SaveOutcome.conflict(record, str(exc))
        except IntegrityError as exc:
            return SaveOutcome.invalid(record, [f"Could not be saved: {exc.orig}"])
        return SaveOutcome.ok(record)

    def reload(self, record) -> None:
        self.session.refresh(record)

    def discard_changes(self, record) -> None:
        """Throw away unsaved attribute changes of a persistent record."""

        if record in self.session and record.id is not None:
            self.session.expire(record)
        elif record in self.session:
            self.session.expunge(record)

    def ensure_visible_in_inventory(self, variant_id: int, hub_id: int) -> InventoryItem:
        item = (
            self.session.execute(
                select(InventoryItem).where(InventoryItem.variant_id == variant_id, InventoryItem.enterprise_id == hub_id)
            )
            .scalars()
            .first()
        )
        if item is None:
            item = InventoryItem(variant_id=variant_id, enterprise_id=hub_id, visible=True)
            self.session.add(item)
        else:
            item.visible = True
        self.session.flush()
        return item

    # --- reset support -----------------------------------------------------

    def absent_variants(self, supplier_ids: Sequence[int], excluded_ids: Sequence[Any]) -> list[Variant]:
        """Live standard variants of live products of ``supplier_ids`` whose id is not in ``excluded_ids``."""

        if not supplier_ids:
            return []
        query = (
            select(Variant)
            .join(Product, Variant.product_id == Product.id)
            .where(
                Product.supplier_id.in_(list(supplier_ids)),
                Product.deleted_at.is_(None),
                Variant.deleted_at.is_(None),
                Variant.is_master.is_(False),
            )
            .order_by(Variant.id)
        )
        excluded = _ledger_ids(excluded_ids)
        if excluded:
            query = query.where(Variant.id.notin_(excluded))
        return list(self.session.execute(query).scalars())

    def absent_overrides(self, hub_ids: Sequence[int], excluded_ids: Sequence[Any]) -> list[VariantOverride]:
        if not hub_ids:
            return []
        query = select(VariantOverride).where(VariantOverride.hub_id.in_(list(hub_ids))).order_by(VariantOverride.id)
        excluded = _ledger_ids(excluded_ids)
        if excluded:
            query = query.where(VariantOverride.id.notin_(excluded))
        return list(self.session.execute(query).scalars())

    def count_variants_for_supplier(self, supplier_id: int) -> int:
        return self.session.execute(
            select(func.count(Variant.id))
            .join(Product, Variant.product_id == Product.id)
            .where(
                Product.supplier_id == supplier_id,
                Product.deleted_at.is_(None),
                Variant.deleted_at.is_(None),
                Variant.is_master.is_(False),
            )
        ).scalar_one()

    def count_overrides_for_hub(self, hub_id: int) -> int:
        return self.session.execute(
            select(func.count(VariantOverride.id)).where(VariantOverride.hub_id == hub_id)
        ).scalar_one()

    def flush(self) -> None:
        self.session.flush()
