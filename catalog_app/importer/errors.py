"""
Error collection shared by every stage of a product import.

Row failures are recorded under ``"Line N:"`` keys and never raised; run-level
failures use a free-form key such as ``"importer"``.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Iterator


class ImportErrors:
    """Ordered multimap of error key to messages."""

    def __init__(self) -> None:
        self._messages: "OrderedDict[str, list[str]]" = OrderedDict()

    @staticmethod
    def line_key(line_number: int) -> str:
        return f"Line {line_number}:"

    def add(self, key: str, message: str) -> None:
        bucket = self._messages.setdefault(key, [])
        if message not in bucket:
            bucket.append(message)

    def add_line(self, line_number: int, messages: Iterable[str]) -> None:
        for message in messages:
            self.add(self.line_key(line_number), message)

    def extend(self, other: "ImportErrors") -> None:
        for key, messages in other.items():
            for message in messages:
                self.add(key, message)

    def items(self) -> Iterator[tuple[str, list[str]]]:
        return iter(self._messages.items())

    def __getitem__(self, key: str) -> list[str]:
        return list(self._messages.get(key, []))

    def __contains__(self, key: object) -> bool:
        return key in self._messages

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._messages.values())

    def __bool__(self) -> bool:
        return bool(self._messages)

    def full_messages(self) -> list[str]:
        return [f"{key} {message}" for key, messages in self._messages.items() for message in messages]

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(messages) for key, messages in self._messages.items()}

    @classmethod
    def from_dict(cls, payload: dict | None) -> "ImportErrors":
        errors = cls()
        for key, messages in (payload or {}).items():
            for message in messages:
                errors.add(key, message)
        return errors
