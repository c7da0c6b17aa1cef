import io

import pytest

from catalog_app.importer.adapters.csv_products import CSVHeaderError, ProductCSVAdapter
from catalog_app.importer.contracts import required_headers_missing, resolve_headers


def _make_csv(contents: str) -> io.StringIO:
    stream = io.StringIO(contents)
    stream.seek(0)
    return stream


def test_adapter_accepts_alias_headers_and_normalizes():
    csv_stream = _make_csv(
        "Supplier,Product,Category,Variant Name,Units,Unit Type,Price,Stock\n"
        " Green Farm ,Carrots ,Vegetables,Bunch,500, WEIGHT ,2.50,7\n"
    )

    adapter = ProductCSVAdapter(csv_stream)
    rows = list(adapter.iter_rows())

    assert adapter.header is not None
    assert adapter.header.canonical_headers == (
        "supplier",
        "name",
        "category",
        "display_name",
        "unit_value",
        "variant_unit",
        "price",
        "on_hand",
    )
    assert len(rows) == 1
    row = rows[0]
    assert row.line_number == 2
    assert row.raw["supplier"] == " Green Farm "
    assert row.normalized["supplier"] == "Green Farm"
    assert row.normalized["variant_unit"] == "weight"
    assert row.normalized["on_hand"] == "7"
    assert adapter.statistics.rows_processed == 1


def test_adapter_rejects_missing_required_headers():
    csv_stream = _make_csv("supplier,price\n" "Green Farm,2.50\n")
    adapter = ProductCSVAdapter(csv_stream)

    with pytest.raises(CSVHeaderError) as excinfo:
        list(adapter.iter_rows())

    error = excinfo.value
    assert "Missing required columns" in str(error)
    assert error.missing == ("name",)


def test_adapter_rejects_duplicate_canonical_headers():
    csv_stream = _make_csv("supplier,name,stock,on_hand\n" "Green Farm,Carrots,1,2\n")
    adapter = ProductCSVAdapter(csv_stream)

    with pytest.raises(CSVHeaderError) as excinfo:
        list(adapter.iter_rows())

    assert excinfo.value.duplicates == ("on_hand",)


def test_adapter_keeps_unknown_columns_as_extra():
    csv_stream = _make_csv("supplier,name,Colour\n" "Green Farm,Carrots,orange\n")

    adapter = ProductCSVAdapter(csv_stream)
    row = next(adapter.iter_rows())

    assert adapter.header.extra_headers == ("Colour",)
    assert row.extra == {"Colour": "orange"}
    assert "Colour" not in row.normalized
    assert row.as_mapping()["extra"] == {"Colour": "orange"}


def test_adapter_strips_byte_order_mark_from_first_header():
    csv_stream = _make_csv("\ufeffsupplier,name\n" "Green Farm,Carrots\n")

    adapter = ProductCSVAdapter(csv_stream)
    row = next(adapter.iter_rows())

    assert row.normalized["supplier"] == "Green Farm"


def test_adapter_skips_blank_rows_but_keeps_line_numbers():
    csv_stream = _make_csv("supplier,name\n" "Green Farm,Carrots\n" ",\n" "Green Farm,Beets\n")

    adapter = ProductCSVAdapter(csv_stream)
    rows = list(adapter.iter_rows())

    assert [row.line_number for row in rows] == [2, 4]
    assert adapter.statistics.rows_processed == 2
    assert adapter.statistics.rows_skipped_blank == 1
    assert adapter.count_rows() == 2


def test_adapter_iterates_a_window_of_lines():
    csv_stream = _make_csv(
        "supplier,name\n" "Green Farm,Carrots\n" "Green Farm,Beets\n" "Green Farm,Leeks\n" "Green Farm,Kale\n"
    )

    adapter = ProductCSVAdapter(csv_stream)
    rows = list(adapter.iter_rows(start_line=3, end_line=4))

    assert [row.normalized["name"] for row in rows] == ["Beets", "Leeks"]
    assert [row.line_number for row in rows] == [3, 4]


def test_contract_helpers_resolve_aliases():
    assert resolve_headers(["Product Name", "count-on-hand", "Notes"]) == ("name", "on_hand", "Notes")
    assert required_headers_missing(["Product", "Price"]) == ("supplier",)
