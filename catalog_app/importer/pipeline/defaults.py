"""
Default-value merge applied to records before they are saved.

A rule either overwrites the attribute on every record (``overwrite_all``) or
only fills it in when the spreadsheet left it blank (``overwrite_empty``).
Stock is special: a blank stock cell is stored as 0 during classification,
so ``on_hand``/``count_on_hand`` also count as empty when the entry says the
zero was defaulted. A zero typed into the sheet is a value and is kept.
"""

from __future__ import annotations

from typing import Iterable

from catalog_app.models import is_blank

from .entry import Entry, coerce_value
from .settings import DefaultRule

STOCK_ATTRIBUTES = ("on_hand", "count_on_hand")


def _is_empty(record, attribute: str, entry: Entry) -> bool:
    if is_blank(record.read_attribute(attribute)):
        return True
    return attribute in STOCK_ATTRIBUTES and entry.on_hand_was_defaulted


def assign_defaults(record, entry: Entry, rules: Iterable[DefaultRule]) -> list[str]:
    """Apply active rules in order, returning the attributes that were written."""

    written: list[str] = []
    for rule in rules:
        if not rule.active or not record.has_import_attribute(rule.attribute):
            continue
        if rule.mode == "overwrite_empty" and not _is_empty(record, rule.attribute, entry):
            continue
        value, error = coerce_value(rule.attribute, rule.value)
        record.write_attribute(rule.attribute, rule.value if error else value)
        written.append(rule.attribute)
    return written
