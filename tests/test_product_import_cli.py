import json
from pathlib import Path

from catalog_app.importer import PRODUCT_IMPORT_EXTENSION_KEY, init_importer
from catalog_app.models import ImportRunStatus, Product, ProductImportRun, Variant, db

HEADER = "supplier,name,category,display_name,unit_value,variant_unit,variant_unit_scale,price,on_hand\n"


def _write_csv(tmp_path: Path, body: str, header: str = HEADER) -> Path:
    csv_file = tmp_path / "products.csv"
    csv_file.write_text(header + body, encoding="utf-8")
    return csv_file


def test_run_imports_a_spreadsheet(app, runner, manager_user, owned_supplier, vegetables, tmp_path):
    csv_path = _write_csv(
        tmp_path,
        "Green Farm,Carrots,Vegetables,Bunch,500,weight,1000,2.50,7\n"
        "Green Farm,Beets,Vegetables,Bag,1000,weight,1000,3.00,4\n",
    )

    result = runner.invoke(args=["product-import", "run", str(csv_path), "--user", manager_user.email])

    assert result.exit_code == 0, result.output
    assert "status succeeded" in result.output
    assert "products_created  : 2" in result.output
    assert "products_reset    : not run" in result.output
    run = ProductImportRun.query.one()
    assert run.status == ImportRunStatus.SUCCEEDED
    assert run.source_filename == "products.csv"
    assert run.counts_json["totals"]["products_created"] == 2
    assert Product.query.count() == 2


def test_run_reports_invalid_rows_as_partial_failure(app, runner, manager_user, owned_supplier, vegetables, tmp_path):
    csv_path = _write_csv(
        tmp_path,
        "Green Farm,Carrots,Vegetables,Bunch,500,weight,1000,2.50,7\n"
        "Nowhere Farm,Beets,Vegetables,Bag,1000,weight,1000,3.00,4\n",
    )

    result = runner.invoke(args=["product-import", "run", str(csv_path), "--user", manager_user.email])

    assert result.exit_code == 0, result.output
    assert 'Line 3: Supplier "Nowhere Farm" not found in database' in result.output
    run = ProductImportRun.query.one()
    assert run.status == ImportRunStatus.PARTIALLY_FAILED
    assert run.errors_json["Line 3:"] == ['Supplier "Nowhere Farm" not found in database']


def test_run_with_reset_and_defaults(app, runner, manager_user, owned_supplier, vegetables, tmp_path):
    leeks = Product(
        supplier_id=owned_supplier.id,
        primary_taxon_id=vegetables.id,
        name="Leeks",
        variant_unit="items",
        variant_unit_name="leek",
    )
    leeks.variants = [
        Variant(is_master=True, price=1),
        Variant(is_master=False, display_name="Single", price=1, on_hand=9, on_demand=False),
    ]
    db.session.add(leeks)
    db.session.commit()
    leek_id = leeks.standard_variants[0].id

    csv_path = _write_csv(tmp_path, "Green Farm,Carrots,Vegetables,Bunch,500,weight,1000,2.50,\n")
    defaults = json.dumps({"on_hand": {"active": True, "mode": "overwrite_empty", "value": 5}})

    result = runner.invoke(
        args=[
            "product-import",
            "run",
            str(csv_path),
            "--user",
            manager_user.email,
            "--reset-absent",
            "--defaults",
            defaults,
        ]
    )

    assert result.exit_code == 0, result.output
    assert "products_reset    : 1" in result.output
    db.session.expire_all()
    assert db.session.get(Variant, leek_id).on_hand == 0
    new_variant = Product.query.filter_by(name="Carrots").one().first_variant
    assert new_variant.on_hand == 5


def _stocked_product(supplier, taxon, name, on_hand):
    product = Product(
        supplier_id=supplier.id,
        primary_taxon_id=taxon.id,
        name=name,
        variant_unit="items",
        variant_unit_name="bunch",
    )
    product.variants = [
        Variant(is_master=True, price=1),
        Variant(is_master=False, display_name="Bunch", price=1, on_hand=on_hand, on_demand=False),
    ]
    db.session.add(product)
    db.session.commit()
    return product.standard_variants[0].id


def test_reset_defaults_to_suppliers_in_the_spreadsheet(
    app, runner, admin_user, owned_supplier, foreign_supplier, vegetables, tmp_path
):
    leek_id = _stocked_product(owned_supplier, vegetables, "Leeks", 9)
    kale_id = _stocked_product(foreign_supplier, vegetables, "Kale", 10)
    csv_path = _write_csv(tmp_path, "Green Farm,Carrots,Vegetables,Bunch,500,weight,1000,2.50,7\n")

    result = runner.invoke(
        args=["product-import", "run", str(csv_path), "--user", admin_user.email, "--reset-absent"]
    )

    assert result.exit_code == 0, result.output
    assert "products_reset    : 1" in result.output
    db.session.expire_all()
    assert db.session.get(Variant, leek_id).on_hand == 0
    assert db.session.get(Variant, kale_id).on_hand == 10
    run = ProductImportRun.query.one()
    assert run.settings_json["enterprises_to_reset"] == [str(owned_supplier.id)]


def test_dry_run_saves_nothing(app, runner, manager_user, owned_supplier, vegetables, tmp_path):
    csv_path = _write_csv(tmp_path, "Green Farm,Carrots,Vegetables,Bunch,500,weight,1000,2.50,7\n")

    result = runner.invoke(
        args=["product-import", "run", str(csv_path), "--user", manager_user.email, "--dry-run"]
    )

    assert result.exit_code == 0, result.output
    assert "would_create      : 1" in result.output
    assert Product.query.count() == 0
    assert ProductImportRun.query.one().dry_run is True


def test_run_rejects_missing_columns(app, runner, manager_user, tmp_path):
    csv_path = _write_csv(tmp_path, "Green Farm,2.50\n", header="supplier,price\n")

    result = runner.invoke(args=["product-import", "run", str(csv_path), "--user", manager_user.email])

    assert result.exit_code != 0
    assert "Missing required columns: name." in result.output
    run = ProductImportRun.query.one()
    assert run.status == ImportRunStatus.FAILED
    assert "Missing required columns" in run.error_summary


def test_run_rejects_unknown_user_and_bad_defaults(app, runner, manager_user, tmp_path):
    csv_path = _write_csv(tmp_path, "Green Farm,Carrots,Vegetables,Bunch,500,weight,1000,2.50,7\n")

    unknown = runner.invoke(args=["product-import", "run", str(csv_path), "--user", "nobody@example.com"])
    bad_defaults = runner.invoke(
        args=["product-import", "run", str(csv_path), "--user", manager_user.email, "--defaults", "[1]"]
    )

    assert unknown.exit_code != 0
    assert "No user found with email nobody@example.com." in unknown.output
    assert bad_defaults.exit_code != 0
    assert "--defaults must be a JSON object" in bad_defaults.output
    assert ProductImportRun.query.count() == 0


def test_enterprises_lists_what_a_user_can_manage(app, runner, manager_user, owned_supplier, managed_hub):
    result = runner.invoke(args=["product-import", "enterprises", "--user", manager_user.email])

    assert result.exit_code == 0, result.output
    assert f"{owned_supplier.id}: Green Farm" in result.output
    assert f"{managed_hub.id}: City Hub" in result.output


def test_disabled_flag_registers_a_stub_group(app, runner):
    app.config["PRODUCT_IMPORT_ENABLED"] = False
    try:
        init_importer(app)
        result = runner.invoke(args=["product-import"])

        assert result.exit_code != 0
        assert "PRODUCT_IMPORT_ENABLED=false" in result.output
        assert app.extensions[PRODUCT_IMPORT_EXTENSION_KEY]["enabled"] is False
    finally:
        app.config["PRODUCT_IMPORT_ENABLED"] = True
        init_importer(app)
