"""Prometheus metrics helpers for the product importer."""

from __future__ import annotations

from typing import Literal

from flask import current_app, has_app_context
from prometheus_client import Counter, Histogram

_entries_classified = Counter(
    "product_import_entries_classified_total",
    "Spreadsheet entries classified, by disposition.",
    ["disposition"],
)
_records_saved = Counter(
    "product_import_records_saved_total",
    "Catalog records written by the importer, by kind and outcome.",
    ["kind", "outcome"],
)
_conflict_retries = Counter(
    "product_import_conflict_retries_total",
    "Saves retried after an optimistic-lock conflict.",
    ["kind"],
)
_records_reset = Counter(
    "product_import_records_reset_total",
    "Records zeroed by the reset-absent pass, by mode.",
    ["mode"],
)
_pass_duration = Histogram(
    "product_import_pass_duration_seconds",
    "Duration of a single import pass in seconds.",
    ["stage"],
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)


def _enabled() -> bool:
    if not has_app_context():
        return False
    return bool(current_app.config.get("PRODUCT_IMPORT_METRICS_ENABLED", False))


def record_entry_classified(disposition: str) -> None:
    if _enabled():
        _entries_classified.labels(disposition=disposition).inc()


def record_save(kind: str, outcome: Literal["ok", "invalid", "conflict"]) -> None:
    """Count one store write for ``kind`` (product, variant, inventory)."""

    if _enabled():
        _records_saved.labels(kind=kind, outcome=outcome).inc()


def record_conflict_retry(kind: str) -> None:
    if _enabled():
        _conflict_retries.labels(kind=kind).inc()


def record_reset(mode: str, count: int) -> None:
    if _enabled() and count:
        _records_reset.labels(mode=mode).inc(count)


def observe_pass_duration(stage: Literal["validate", "save", "reset"], duration_seconds: float) -> None:
    if _enabled():
        _pass_duration.labels(stage=stage).observe(duration_seconds)
