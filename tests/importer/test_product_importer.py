from sqlalchemy import func, select

from catalog_app.importer.pipeline import ImportRunState
from catalog_app.importer.product_importer import ProductImporter
from catalog_app.models import ImportRunStatus, ImportTargetKind, Product, ProductImportRun, Variant, db


def _rows(*mappings):
    return [(line_number, mapping) for line_number, mapping in enumerate(mappings, start=2)]


def _product_count():
    return db.session.execute(select(func.count(Product.id))).scalar_one()


def _standard_variant_count():
    return db.session.execute(select(func.count(Variant.id)).where(Variant.is_master.is_(False))).scalar_one()


def test_reimporting_the_same_sheet_updates_instead_of_creating(manager_user, owned_supplier, vegetables, make_row):
    rows = _rows(make_row(), make_row(name="Beets", display_name="Bag", unit_value="1000"))

    first = ProductImporter(rows, manager_user, {"settings": {}})
    first.save_entries()
    second = ProductImporter(rows, manager_user, {"settings": {}})
    summary = second.save_entries()

    assert first.state.counts["products_created"] == 2
    assert summary.counts["products_created"] == 0
    assert summary.counts["variants_updated"] == 2
    assert summary.products_update_count == 2
    assert _product_count() == 2
    assert _standard_variant_count() == 2


def test_validate_entries_previews_without_saving(manager_user, owned_supplier, product_factory, make_row):
    product_factory(owned_supplier)
    rows = _rows(make_row(), make_row(name="Beets"), make_row(name="Leeks", supplier="Unknown Farm"))
    importer = ProductImporter(rows, manager_user, {"settings": {}})

    summary = importer.validate_entries()

    assert summary.item_count == 3
    assert summary.valid_count == 2
    assert summary.products_update_count == 1
    assert summary.products_create_count == 1
    assert summary.products_to_create[0]["attributes"]["name"] == "Beets"
    assert summary.invalid_entries[0]["line_number"] == 4
    assert summary.supplier_products == {owned_supplier.id: 1}
    assert summary.total_supplier_products == 1
    assert importer.errors["Line 4:"] == ['Supplier "Unknown Farm" not found in database']
    assert _product_count() == 1


def test_dry_run_saves_nothing(manager_user, owned_supplier, vegetables, make_row):
    importer = ProductImporter(_rows(make_row(), make_row(name="Beets")), manager_user, {"settings": {}})

    (summary,) = importer.save_all(dry_run=True)

    assert summary.dry_run
    assert summary.products_create_count == 2
    assert importer.state.updated_ids == []
    assert _product_count() == 0


def test_staged_passes_share_the_run_state(manager_user, owned_supplier, vegetables, make_row):
    rows = _rows(
        make_row(),
        make_row(display_name="Large Bunch", unit_value="1000"),
        make_row(name="Beets", display_name="Bag"),
    )
    importer = ProductImporter(rows, manager_user, {"settings": {}})

    assert importer.line_windows(2) == [(2, 3), (4, 4)]
    passes = importer.save_all(chunk_size=1)

    assert [(summary.start_line, summary.end_line) for summary in passes] == [(2, 2), (3, 3), (4, 4)]
    assert importer.state.counts["products_created"] == 2
    assert importer.state.counts["variants_created"] == 1
    assert len(importer.state.updated_ids) == 3
    assert importer.settings.updated_ids is importer.state.updated_ids
    assert _product_count() == 2
    assert _standard_variant_count() == 3


def test_state_can_resume_a_run_in_a_new_importer(manager_user, owned_supplier, vegetables, make_row):
    rows = _rows(make_row(), make_row(display_name="Large Bunch", unit_value="1000"))
    first = ProductImporter(rows, manager_user, {"settings": {}})
    first.save_entries(2, 2)

    resumed_state = ImportRunState.from_dict(first.state.to_dict())
    second = ProductImporter(rows, manager_user, {"settings": {}}, state=resumed_state)
    summary = second.save_entries(3, 3)

    assert resumed_state.created_product_id(owned_supplier.id, "Carrots") is not None
    assert summary.counts["variants_created"] == 1
    assert resumed_state.counts["products_created"] == 1
    assert _product_count() == 1


def test_reset_after_import_zeroes_only_absent_variants(manager_user, owned_supplier, product_factory, make_row):
    product = product_factory(owned_supplier, variants=(("Bunch", 500.0), ("Box", 5000.0)))
    bunch_id, box_id = (variant.id for variant in product.standard_variants)
    payload = {"settings": {"reset_all_absent": True}, "enterprises_to_reset": [str(owned_supplier.id)]}
    importer = ProductImporter(_rows(make_row(on_hand="7")), manager_user, payload)

    importer.save_all()
    result = importer.reset_absent_items()
    db.session.expire_all()

    assert result == 1
    assert importer.state.counts["products_reset_count"] == 1
    assert db.session.get(Variant, bunch_id).on_hand == 7
    assert db.session.get(Variant, box_id).on_hand == 0


def test_reset_is_not_run_without_the_setting(manager_user, owned_supplier, product_factory, make_row):
    product_factory(owned_supplier)
    importer = ProductImporter(_rows(make_row()), manager_user, {"settings": {}})
    importer.save_all()

    assert importer.reset_absent_items() is None


def test_passes_are_recorded_on_the_import_run(manager_user, owned_supplier, vegetables, make_row):
    run = ProductImportRun(
        source_filename="products.csv",
        status=ImportRunStatus.RUNNING,
        import_into=ImportTargetKind.PRODUCT_LIST,
        dry_run=False,
        triggered_by_user_id=manager_user.id,
    )
    db.session.add(run)
    db.session.commit()

    rows = _rows(make_row(), make_row(name="Beets", price="abc"))
    importer = ProductImporter(rows, manager_user, {"settings": {}}, import_run=run)
    importer.save_all(chunk_size=1)

    stored = db.session.get(ProductImportRun, run.id)
    assert len(stored.counts_json["passes"]) == 2
    assert stored.counts_json["totals"]["products_created"] == 1
    assert stored.errors_json["Line 3:"] == ["Price is not a number"]
    assert stored.state_json["created_products"][0][1] == "Carrots"
