"""CSV adapter for product spreadsheet uploads.

Validates the header row against the canonical product contract, streams rows
as ``(line_number, mapping)`` pairs and applies lightweight normalization.
Line numbers follow the spreadsheet: the header is line 1, so the first data
row is line 2.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from typing import IO, Iterator, Sequence

from catalog_app.importer.contracts import (
    FieldSpec,
    get_product_alias_map,
    get_product_field_specs,
    get_product_required_headers,
    normalize_header,
)

FIRST_DATA_LINE = 2


class CSVAdapterError(Exception):
    """Base exception for CSV adapter failures."""


class CSVHeaderError(CSVAdapterError):
    """Raised when the CSV header row does not meet contract requirements."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(
                "Duplicate canonical columns detected: "
                + ", ".join(sorted(duplicates))
                + ". Ensure each column appears only once."
            )

        message = "CSV header validation failed. " + " ".join(details) if details else "CSV header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


@dataclass(frozen=True)
class HeaderValidationResult:
    raw_headers: tuple[str, ...]
    canonical_headers: tuple[str, ...]
    extra_headers: tuple[str, ...]


@dataclass(frozen=True)
class ProductCSVRow:
    """A parsed spreadsheet row keyed by canonical column names."""

    line_number: int
    raw: dict[str, object | None]
    normalized: dict[str, object | None]
    extra: dict[str, object | None] = field(default_factory=dict)

    def as_mapping(self) -> dict[str, object | None]:
        return {**self.normalized, "extra": dict(self.extra)}


@dataclass
class ProductCSVStatistics:
    """Accumulated statistics from CSV parsing."""

    rows_processed: int = 0
    rows_skipped_blank: int = 0
    rows_outside_window: int = 0


def _sanitize_header(header: str | None) -> str:
    token = (header or "").strip()
    return token.lstrip("\ufeff")


def _validate_headers(raw_headers: Sequence[str]) -> HeaderValidationResult:
    sanitized_headers = tuple(_sanitize_header(header) for header in raw_headers)
    alias_map = get_product_alias_map()
    required_headers = set(get_product_required_headers())
    duplicates: list[str] = []
    extra: list[str] = []
    seen: set[str] = set()
    resolved: list[str] = []

    for header in sanitized_headers:
        canonical = alias_map.get(normalize_header(header))
        if canonical is None:
            extra.append(header)
            resolved.append(header)
            continue
        if canonical in seen:
            duplicates.append(canonical)
        else:
            seen.add(canonical)
        resolved.append(canonical)

    missing = sorted(required_headers - seen)
    if missing or duplicates:
        raise CSVHeaderError(missing=missing, duplicates=duplicates)

    return HeaderValidationResult(
        raw_headers=sanitized_headers,
        canonical_headers=tuple(resolved),
        extra_headers=tuple(extra),
    )


def _row_is_blank(row: dict[str, object | None]) -> bool:
    return all((value is None or (isinstance(value, str) and value.strip() == "")) for value in row.values())


class ProductCSVAdapter:
    """CSV reader that enforces the product spreadsheet contract."""

    def __init__(self, file_obj: IO[str], *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.skip_blank_rows = skip_blank_rows
        self._header_result: HeaderValidationResult | None = None
        self.statistics = ProductCSVStatistics()
        self._field_specs = {spec.name: spec for spec in get_product_field_specs()}

    @property
    def header(self) -> HeaderValidationResult | None:
        return self._header_result

    def _prepare_reader(self) -> csv.DictReader:
        self._file_obj.seek(0)
        reader = csv.DictReader(self._file_obj)
        if reader.fieldnames is None:
            raise CSVHeaderError(missing=get_product_required_headers())

        header_result = _validate_headers(reader.fieldnames)
        reader.fieldnames = list(header_result.canonical_headers)
        self._header_result = header_result
        return reader

    def count_rows(self) -> int:
        """Number of non-blank data rows, used to plan staged passes."""

        reader = self._prepare_reader()
        return sum(1 for raw_row in reader if not (self.skip_blank_rows and _row_is_blank(raw_row)))

    def iter_rows(self, *, start_line: int | None = None, end_line: int | None = None) -> Iterator[ProductCSVRow]:
        """Yield rows whose line number falls inside the inclusive ``[start_line, end_line]`` window."""

        reader = self._prepare_reader()
        extra_headers = set(self._header_result.extra_headers)
        for line_number, raw_row in enumerate(reader, start=FIRST_DATA_LINE):
            if start_line is not None and line_number < start_line:
                self.statistics.rows_outside_window += 1
                continue
            if end_line is not None and line_number > end_line:
                self.statistics.rows_outside_window += 1
                break

            # DictReader collects surplus cells under the None key.
            row_copy = {key: value for key, value in raw_row.items() if key is not None}
            if self.skip_blank_rows and _row_is_blank(row_copy):
                self.statistics.rows_skipped_blank += 1
                continue

            normalized = self._apply_normalizers({k: v for k, v in row_copy.items() if k not in extra_headers})
            extra = {k: v for k, v in row_copy.items() if k in extra_headers}
            self.statistics.rows_processed += 1

            yield ProductCSVRow(line_number=line_number, raw=row_copy, normalized=normalized, extra=extra)

    def _apply_normalizers(self, row: dict[str, object | None]) -> dict[str, object | None]:
        normalized: dict[str, object | None] = {}
        for key, value in row.items():
            spec: FieldSpec | None = self._field_specs.get(key)
            if spec is None or spec.normalizer is None:
                normalized[key] = value
            else:
                normalized[key] = spec.normalizer(value)
        return normalized
