from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from catalog_app.importer.pipeline import CatalogStore, EntryValidator, ImportSettings, SpreadsheetData
from catalog_app.models import Product, Variant, VariantOverride, db
from catalog_app.utils.permissions import editable_enterprises_for


@pytest.fixture
def product_factory(vegetables):
    def _factory(
        supplier,
        *,
        name: str = "Carrots",
        variant_unit: str = "weight",
        variant_unit_scale: float | None = 1000.0,
        variants=(("Bunch", 500.0),),
        price: str = "2.50",
        on_hand: int = 10,
    ) -> Product:
        product = Product(
            supplier_id=supplier.id,
            primary_taxon_id=vegetables.id,
            name=name,
            variant_unit=variant_unit,
            variant_unit_scale=variant_unit_scale,
            variant_unit_name="bunch" if variant_unit == "items" else None,
        )
        product.variants = [Variant(is_master=True, price=Decimal(price), unit_value=variants[0][1] if variants else None)]
        for display_name, unit_value in variants:
            product.variants.append(
                Variant(
                    is_master=False,
                    display_name=display_name,
                    unit_value=unit_value,
                    price=Decimal(price),
                    on_hand=on_hand,
                    on_demand=False,
                )
            )
        db.session.add(product)
        db.session.commit()
        return product

    return _factory


@pytest.fixture
def override_factory():
    def _factory(variant, hub, *, price: str | None = "3.00", count_on_hand: int | None = 4) -> VariantOverride:
        override = VariantOverride(
            variant_id=variant.id,
            hub_id=hub.id,
            price=Decimal(price) if price is not None else None,
            count_on_hand=count_on_hand,
        )
        db.session.add(override)
        db.session.commit()
        return override

    return _factory


@pytest.fixture
def make_row():
    """Build canonical spreadsheet rows for the default supplier and product."""

    def _make_row(**overrides) -> dict:
        row = {
            "supplier": "Green Farm",
            "name": "Carrots",
            "category": "Vegetables",
            "display_name": "Bunch",
            "unit_value": "500",
            "variant_unit": "weight",
            "variant_unit_scale": "1000",
            "price": "2.50",
            "on_hand": "7",
        }
        row.update(overrides)
        return {key: value for key, value in row.items() if value is not None}

    return _make_row


@pytest.fixture
def build_pipeline():
    """Wire settings, lookup tables and a validator the way ``ProductImporter`` does."""

    def _build(user, rows, payload=None, *, state=None):
        editable = editable_enterprises_for(user)
        settings = ImportSettings(
            payload if payload is not None else {"settings": {}, "updated_ids": []},
            editable_enterprises=editable,
        )
        store = CatalogStore()
        data = SpreadsheetData.build(rows, editable_enterprises=editable, store=store)
        validator = EntryValidator(data, settings, store=store, state=state)
        return SimpleNamespace(settings=settings, store=store, data=data, validator=validator)

    return _build
