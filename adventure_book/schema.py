"""Cross-reference validation for parsed adventures."""

from __future__ import annotations

import json
from typing import List, Mapping, Optional

from .errors import AdventureError, DanglingReference, MissingDestination
from .models import Adventure, Page, normalize_page_id


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f"{path_str}[{json.dumps(part)}]"
    return path_str


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[AdventureError] = []

    def dangling(self, path_str: str, message: str) -> None:
        self.errors.append(DanglingReference(message, path=path_str))

    def missing(self, path_str: str, message: str) -> None:
        self.errors.append(MissingDestination(message, path=path_str))

    def ok(self) -> bool:
        return not self.errors


def resolve_page(pages: Mapping[str, Page], page_id: str) -> Optional[Page]:
    return pages.get(normalize_page_id(page_id))


def validate_page(page: Page, pages: Mapping[str, Page], ctx: ValidationContext) -> None:
    for index, choice in enumerate(page.choices):
        context = f"Choice {index + 1} in page '{page.id}'"
        choice_path = ("pages", page.id, "choices", index)
        if choice.condition is not None and choice.condition not in page.conditions:
            ctx.dangling(
                path(*choice_path, "condition"),
                f"{context} references undeclared condition '{choice.condition}'.",
            )
        if choice.test is not None and choice.test not in page.tests:
            ctx.dangling(
                path(*choice_path, "test"),
                f"{context} references undeclared test '{choice.test}'.",
            )
        if choice.result is not None and choice.result not in page.results:
            ctx.dangling(
                path(*choice_path, "result"),
                f"{context} references undeclared result '{choice.result}'.",
            )

    for test in page.tests.values():
        for outcome, result_name in (("success", test.success), ("failure", test.failure)):
            if result_name not in page.results:
                ctx.dangling(
                    path("pages", page.id, "tests", test.name, outcome),
                    f"Test '{test.name}' in page '{page.id}' names undeclared {outcome} "
                    f"result '{result_name}'.",
                )

    for result in page.results.values():
        if result.ends_game or resolve_page(pages, result.destination) is not None:
            continue
        ctx.missing(
            path("pages", page.id, "results", result.name, "destination"),
            f"Result '{result.name}' in page '{page.id}' leads to unknown page "
            f"'{result.destination}'.",
        )


def validate_adventure(adventure: Adventure, pages: Mapping[str, Page]) -> List[AdventureError]:
    """Check every cross reference of ``adventure`` and return all defects.

    ``pages`` is keyed by normalized page id.
    """
    ctx = ValidationContext()
    if resolve_page(pages, adventure.start) is None:
        ctx.missing(path("start"), f"start page '{adventure.start}' was not found.")
    for page in pages.values():
        validate_page(page, pages, ctx)
    return ctx.errors
