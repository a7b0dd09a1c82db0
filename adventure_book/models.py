"""Parsed adventure entities."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

GAME_OVER = "game over"
HIDDEN_CATEGORY = "hidden"

_PAGE_ID_SEPARATORS = re.compile(r"[\s\-_]+")


def normalize_page_id(page_id: str) -> str:
    """Canonical lookup key for a page id.

    Page ids double as file names, so ``Troll Fight``, ``troll-fight`` and
    ``troll_fight.txt`` all name the same page.
    """
    key = page_id.strip().lower()
    if key.endswith(".txt"):
        key = key[: -len(".txt")]
    return _PAGE_ID_SEPARATORS.sub("_", key).strip("_")


def is_game_over(destination: str) -> bool:
    """Only the literal ``game over`` ends a playthrough; ``game-over`` is a page id."""
    return " ".join(destination.split()).lower() == GAME_OVER


class Tag(str, Enum):
    TITLE = "title"
    DESCRIPTION = "description"
    START = "start"
    RECORD = "record"
    NAME = "name"
    STORY = "story"
    CHOICE = "choice"
    CONDITION = "condition"
    TEST = "test"
    RESULT = "result"


METADATA_TAGS = frozenset({Tag.TITLE, Tag.DESCRIPTION, Tag.START, Tag.RECORD, Tag.NAME})
PAGE_TAGS = frozenset({Tag.TITLE, Tag.STORY, Tag.CHOICE, Tag.CONDITION, Tag.TEST, Tag.RESULT})
SINGLE_TAGS = frozenset({Tag.TITLE, Tag.DESCRIPTION, Tag.START, Tag.STORY})


class Comparison(Enum):
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="
    EQUAL = "="
    NOT_EQUAL = "!"

    def compare(self, left: int, right: int) -> bool:
        if self is Comparison.GREATER:
            return left > right
        if self is Comparison.GREATER_EQUAL:
            return left >= right
        if self is Comparison.LESS:
            return left < right
        if self is Comparison.LESS_EQUAL:
            return left <= right
        if self is Comparison.EQUAL:
            return left == right
        return left != right


@dataclass(frozen=True)
class RecordDefinition:
    keyword: str
    category: Optional[str] = None
    value: int = 0

    @property
    def hidden(self) -> bool:
        return self.category is not None and self.category.lower() == HIDDEN_CATEGORY


@dataclass(frozen=True)
class NameDefinition:
    keyword: str
    value: str = ""


@dataclass(frozen=True)
class Adventure:
    start: str
    title: str = ""
    description: str = ""
    records: Tuple[RecordDefinition, ...] = ()
    names: Tuple[NameDefinition, ...] = ()


@dataclass(frozen=True)
class Choice:
    text: str
    condition: Optional[str] = None
    test: Optional[str] = None
    result: Optional[str] = None


@dataclass(frozen=True)
class Condition:
    name: str
    left: str
    comparison: Comparison
    right: str


@dataclass(frozen=True)
class Test:
    __test__ = False  # keep pytest from collecting this as a test class

    name: str
    left: str
    comparison: Comparison
    right: str
    success: str
    failure: str


@dataclass(frozen=True)
class Mutation:
    keyword: str
    expression: str


@dataclass(frozen=True)
class Result:
    name: str
    destination: str
    mutations: Tuple[Mutation, ...] = ()

    @property
    def ends_game(self) -> bool:
        return is_game_over(self.destination)


@dataclass(frozen=True)
class Page:
    id: str
    story: str = ""
    title: str = ""
    choices: Tuple[Choice, ...] = ()
    conditions: Dict[str, Condition] = field(default_factory=dict)
    tests: Dict[str, Test] = field(default_factory=dict)
    results: Dict[str, Result] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return normalize_page_id(self.id)
