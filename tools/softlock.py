"""Dead-end analysis helpers for adventure validation."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from adventure_book.errors import MalformedExpression
from adventure_book.expression import check_syntax, referenced_keywords
from adventure_book.loader import Book
from adventure_book.models import Page
from adventure_book.schema import path
from tools.list_unreachable import find_unreachable


def _iter_expressions(page: Page) -> Iterable[Tuple[str, str]]:
    for cond in page.conditions.values():
        yield path("pages", page.id, "conditions", cond.name, "left"), cond.left
        yield path("pages", page.id, "conditions", cond.name, "right"), cond.right
    for test in page.tests.values():
        yield path("pages", page.id, "tests", test.name, "left"), test.left
        yield path("pages", page.id, "tests", test.name, "right"), test.right


def _iter_mutations(page: Page) -> Iterable[Tuple[str, str, str]]:
    for result in page.results.values():
        for index, mutation in enumerate(result.mutations):
            yield (
                path("pages", page.id, "results", result.name, "mutations", index),
                mutation.keyword,
                mutation.expression,
            )


def analyze_dead_ends(book: Book) -> List[str]:
    records = {record.keyword for record in book.adventure.records}
    names = {name.keyword for name in book.adventure.names}
    warnings: List[str] = []

    for page in book.pages.values():
        if page.choices and all(choice.condition for choice in page.choices):
            warnings.append(
                f"{path('pages', page.id)}: all choices are gated, the page can become a dead end."
            )

        expressions = list(_iter_expressions(page))
        for path_str, keyword, expression in _iter_mutations(page):
            if keyword in records:
                expressions.append((path_str, expression))
            elif keyword not in names:
                warnings.append(f"{path_str}: mutation targets undeclared keyword '{keyword}'.")

        for path_str, expression in expressions:
            for keyword in referenced_keywords(expression):
                if keyword not in records:
                    warnings.append(f"{path_str}: expression uses undeclared record '{keyword}'.")
            try:
                check_syntax(expression)
            except MalformedExpression as exc:
                warnings.append(f"{path_str}: {exc.reason}.")

    for page_id in find_unreachable(book):
        warnings.append(f"{path('pages', page_id)}: page is unreachable from the start page.")

    return warnings
