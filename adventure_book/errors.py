"""Exception hierarchy for the adventure book engine."""

from __future__ import annotations

from typing import Iterable, List, Optional


class AdventureError(Exception):
    """Base class for every failure raised by the engine."""


class ParseError(AdventureError):
    """Raised when adventure or page text does not follow the format."""

    def __init__(self, message: str, *, line: Optional[int] = None, source: Optional[str] = None) -> None:
        self.message = message
        self.line = line
        self.source = source
        super().__init__(self._format())

    def _format(self) -> str:
        prefix = ""
        if self.source:
            prefix = f"{self.source}"
        if self.line is not None:
            prefix = f"{prefix}:{self.line}" if prefix else f"line {self.line}"
        return f"{prefix}: {self.message}" if prefix else self.message

    def with_source(self, source: str) -> "ParseError":
        """Return a copy of this error attributed to ``source``."""
        return type(self)(self.message, line=self.line, source=source)


class UnknownTag(ParseError):
    """A line or choice group uses a tag that is not valid here."""


class MissingRequiredTag(ParseError):
    """A required tag or choice link is absent, or mutually exclusive links are both set."""


class RepeatedTag(ParseError):
    """A tag that may appear at most once was given again."""


class DuplicateDeclarationName(ParseError):
    """Two declarations in the same scope share a name."""


class MalformedFieldList(ParseError):
    """A semicolon field list has the wrong shape."""


class UnknownComparator(ParseError):
    """A condition or test uses a comparator outside the supported set."""


class StoryReferenceError(AdventureError):
    """A parsed adventure refers to something that does not exist."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class DanglingReference(StoryReferenceError):
    """A choice or test names a condition, test or result its page never declares."""


class MissingDestination(StoryReferenceError):
    """A result or the start entry points at a page that was not loaded."""


class EvaluationError(AdventureError):
    """Raised while evaluating expressions against live story state."""


class UndefinedRecord(EvaluationError):
    def __init__(self, keyword: str) -> None:
        self.keyword = keyword
        super().__init__(f"undefined record '{keyword}'")


class UndefinedName(EvaluationError):
    def __init__(self, keyword: str) -> None:
        self.keyword = keyword
        super().__init__(f"undefined name '{keyword}'")


class MalformedExpression(EvaluationError):
    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"malformed expression '{expression}': {reason}")


class DivisionByZero(EvaluationError):
    def __init__(self, expression: str) -> None:
        self.expression = expression
        super().__init__(f"division by zero in '{expression}'")


class NavigationError(AdventureError):
    """The caller picked a choice that cannot be taken right now."""


class AdventureLoadError(ValueError):
    """Raised when an adventure fails parsing or validation.

    ``errors`` holds every collected defect, not just the first one.
    """

    def __init__(self, errors: Iterable[AdventureError], *, source: Optional[str] = None) -> None:
        self.errors: List[AdventureError] = list(errors)
        self.source = source
        label = f"Invalid adventure {source}" if source else "Invalid adventure"
        super().__init__(f"{label}:\n- " + "\n- ".join(str(err) for err in self.errors))
