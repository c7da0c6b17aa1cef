from prometheus_client import REGISTRY

from catalog_app.importer.metrics import record_reset, record_save


def _sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_metrics_are_recorded_only_when_enabled(app):
    labels = {"kind": "variant", "outcome": "conflict"}
    before = _sample("product_import_records_saved_total", labels)

    record_save("variant", "conflict")
    assert _sample("product_import_records_saved_total", labels) == before

    app.config["PRODUCT_IMPORT_METRICS_ENABLED"] = True
    record_save("variant", "conflict")
    record_reset("products", 3)

    assert _sample("product_import_records_saved_total", labels) == before + 1
    assert _sample("product_import_records_reset_total", {"mode": "products"}) >= 3
