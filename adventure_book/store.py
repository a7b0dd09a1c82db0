"""Live record and name values for one playthrough."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .errors import UndefinedName, UndefinedRecord
from .models import Adventure, HIDDEN_CATEGORY

TEXT_KEYWORD_PATTERN = re.compile(r"\[([^\[\]]+)\]")


@dataclass(frozen=True)
class StoreSnapshot:
    records: Tuple[Tuple[str, int], ...]
    names: Tuple[Tuple[str, str], ...]


class Store:
    """Mutable record/name values, seeded from an adventure's definitions.

    Records only change by signed addition and are never clamped; names are
    replaced wholesale. Categories are kept so callers can decide what to
    show, the store itself never hides anything. ``version`` goes up on every
    change.
    """

    def __init__(
        self,
        records: Optional[Dict[str, int]] = None,
        names: Optional[Dict[str, str]] = None,
        categories: Optional[Dict[str, Optional[str]]] = None,
    ) -> None:
        self._records: Dict[str, int] = dict(records or {})
        self._names: Dict[str, str] = dict(names or {})
        self._categories: Dict[str, Optional[str]] = dict(categories or {})
        self.version = 0

    @classmethod
    def from_adventure(cls, adventure: Adventure) -> "Store":
        return cls(
            records={r.keyword: r.value for r in adventure.records},
            names={n.keyword: n.value for n in adventure.names},
            categories={r.keyword: r.category for r in adventure.records},
        )

    # ---------- Records ----------
    def has_record(self, keyword: str) -> bool:
        return keyword in self._records

    def get_record(self, keyword: str) -> int:
        try:
            return self._records[keyword]
        except KeyError:
            raise UndefinedRecord(keyword) from None

    def apply_record_delta(self, keyword: str, delta: int) -> int:
        value = self.get_record(keyword) + delta
        self._records[keyword] = value
        self.version += 1
        return value

    def record_category(self, keyword: str) -> Optional[str]:
        self.get_record(keyword)
        return self._categories.get(keyword)

    def is_hidden(self, keyword: str) -> bool:
        category = self.record_category(keyword)
        return category is not None and category.lower() == HIDDEN_CATEGORY

    def records(self) -> Dict[str, int]:
        return dict(self._records)

    def visible_records(self) -> List[Tuple[str, Optional[str], int]]:
        """``(keyword, category, value)`` for every record not in the hidden category."""
        return [
            (keyword, self._categories.get(keyword), value)
            for keyword, value in self._records.items()
            if not self.is_hidden(keyword)
        ]

    # ---------- Names ----------
    def has_name(self, keyword: str) -> bool:
        return keyword in self._names

    def get_name(self, keyword: str) -> str:
        try:
            return self._names[keyword]
        except KeyError:
            raise UndefinedName(keyword) from None

    def set_name(self, keyword: str, value: str) -> None:
        if keyword not in self._names:
            raise UndefinedName(keyword)
        self._names[keyword] = value
        self.version += 1

    def names(self) -> Dict[str, str]:
        return dict(self._names)

    # ---------- Text ----------
    def substitute_text(self, text: str) -> str:
        """Replace ``[keyword]`` tokens with name values, falling back to records."""

        def replace(match: re.Match[str]) -> str:
            keyword = match.group(1).strip()
            if keyword in self._names:
                return self._names[keyword]
            return str(self.get_record(keyword))

        return TEXT_KEYWORD_PATTERN.sub(replace, text)

    # ---------- Snapshots ----------
    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            records=tuple(self._records.items()),
            names=tuple(self._names.items()),
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        self._records = dict(snapshot.records)
        self._names = dict(snapshot.names)
        self.version += 1
