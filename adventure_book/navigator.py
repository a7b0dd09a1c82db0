"""Page-to-page navigation for one playthrough."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional, Tuple

from .errors import (
    DanglingReference,
    EvaluationError,
    MissingDestination,
    NavigationError,
    UndefinedRecord,
)
from .expression import RandomSource, evaluate_comparison, evaluate_expression
from .models import Adventure, Choice, Page, Result, normalize_page_id
from .settings import EngineSettings
from .store import Store

logger = logging.getLogger(__name__)


class SessionState(Enum):
    ADVENTURE_START = "adventure_start"
    PAGE_DISPLAYED = "page_displayed"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class Transition:
    origin: str
    choice: str
    result: str
    destination: str
    test: Optional[str] = None
    test_passed: Optional[bool] = None


class Session:
    """The live state of one playthrough: store, current page and history.

    A session starts on the adventure's start page and only moves when
    ``choose`` is called. Once a result leads to ``game over`` no further
    choices are accepted.
    """

    def __init__(
        self,
        adventure: Adventure,
        pages: Mapping[str, Page],
        *,
        rng: Optional[RandomSource] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.adventure = adventure
        self.pages = {page.key: page for page in pages.values()}
        self.settings = settings.copy() if settings is not None else EngineSettings()
        self.rng = rng if rng is not None else random.Random(self.settings.seed)
        self.store = Store.from_adventure(adventure)
        self.history: List[Transition] = []
        self.state = SessionState.ADVENTURE_START
        self.current_page_id: Optional[str] = None
        self._enabled: Optional[Tuple[int, List[Tuple[int, Choice]]]] = None

        start = self._lookup_page(adventure.start)
        if start is None:
            raise MissingDestination(f"start page '{adventure.start}' was not found.", path="start")
        self.current_page_id = start.id
        self.state = SessionState.PAGE_DISPLAYED
        logger.debug("Session started on page %s", start.id)

    # ---------- Queries ----------
    def _lookup_page(self, page_id: str) -> Optional[Page]:
        return self.pages.get(normalize_page_id(page_id))

    @property
    def current_page(self) -> Optional[Page]:
        if self.current_page_id is None:
            return None
        return self._lookup_page(self.current_page_id)

    @property
    def is_over(self) -> bool:
        return self.state is SessionState.GAME_OVER

    def page_text(self) -> str:
        page = self.current_page
        if page is None:
            return ""
        return self.store.substitute_text(page.story)

    def choice_text(self, choice: Choice) -> str:
        return self.store.substitute_text(choice.text)

    def _evaluate(self, expression: str) -> int:
        return evaluate_expression(
            expression, self.store.get_record, self.rng, explode_cap=self.settings.explode_cap
        )

    def _is_enabled(self, page: Page, choice: Choice) -> bool:
        if choice.condition is None:
            return True
        condition = page.conditions.get(choice.condition)
        if condition is None:
            raise DanglingReference(
                f"page '{page.id}' has no condition '{choice.condition}'.", path=page.id
            )
        return evaluate_comparison(
            condition.left,
            condition.comparison,
            condition.right,
            self.store.get_record,
            self.rng,
            explode_cap=self.settings.explode_cap,
        )

    def enabled_choices(self) -> List[Tuple[int, Choice]]:
        """``(index, choice)`` pairs whose condition currently holds.

        ``index`` is the choice's position on the page and is what ``choose``
        expects. Conditions are evaluated once per page visit and store state,
        so dice in a condition are not re-rolled by repeated calls.
        """
        page = self.current_page
        if self.state is not SessionState.PAGE_DISPLAYED or page is None:
            return []
        if self._enabled is None or self._enabled[0] != self.store.version:
            enabled = [
                (index, choice)
                for index, choice in enumerate(page.choices)
                if self._is_enabled(page, choice)
            ]
            self._enabled = (self.store.version, enabled)
        return list(self._enabled[1])

    # ---------- Transitions ----------
    def _page_result(self, page: Page, name: str) -> Result:
        result = page.results.get(name)
        if result is None:
            raise DanglingReference(f"page '{page.id}' has no result '{name}'.", path=page.id)
        return result

    def _resolve(self, page: Page, choice: Choice) -> Tuple[Result, Optional[bool]]:
        if choice.test is None:
            return self._page_result(page, choice.result or ""), None
        test = page.tests.get(choice.test)
        if test is None:
            raise DanglingReference(f"page '{page.id}' has no test '{choice.test}'.", path=page.id)
        passed = evaluate_comparison(
            test.left,
            test.comparison,
            test.right,
            self.store.get_record,
            self.rng,
            explode_cap=self.settings.explode_cap,
        )
        return self._page_result(page, test.success if passed else test.failure), passed

    def _apply_mutations(self, result: Result) -> None:
        for mutation in result.mutations:
            if self.store.has_record(mutation.keyword):
                self.store.apply_record_delta(mutation.keyword, self._evaluate(mutation.expression))
            elif self.store.has_name(mutation.keyword):
                self.store.set_name(mutation.keyword, self.store.substitute_text(mutation.expression))
            else:
                raise UndefinedRecord(mutation.keyword)

    def choose(self, index: int) -> Transition:
        """Take the choice at ``index`` on the current page.

        Raises ``NavigationError`` for a finished session, an index outside the
        page or a choice whose condition does not hold; state is untouched in
        that case. ``EvaluationError`` rolls back every mutation of the result
        before propagating.
        """
        page = self.current_page
        if self.state is not SessionState.PAGE_DISPLAYED or page is None:
            raise NavigationError("the adventure is over, there is no page to choose from")
        if not 0 <= index < len(page.choices):
            raise NavigationError(f"page '{page.id}' has no choice {index}")
        choice = page.choices[index]
        if index not in dict(self.enabled_choices()):
            raise NavigationError(f"choice '{choice.text}' is not available")

        result, passed = self._resolve(page, choice)
        destination = None
        if not result.ends_game:
            destination = self._lookup_page(result.destination)
            if destination is None:
                raise MissingDestination(
                    f"result '{result.name}' leads to unknown page '{result.destination}'.",
                    path=page.id,
                )

        snapshot = self.store.snapshot()
        try:
            self._apply_mutations(result)
        except EvaluationError:
            self.store.restore(snapshot)
            if self._enabled is not None:
                # restored values are the ones the cached conditions saw
                self._enabled = (self.store.version, self._enabled[1])
            logger.warning("Rolled back result '%s' on page %s", result.name, page.id)
            raise

        transition = Transition(
            origin=page.id,
            choice=choice.text,
            result=result.name,
            destination=result.destination,
            test=choice.test,
            test_passed=passed,
        )
        self.history.append(transition)
        self._enabled = None
        if destination is None:
            self.state = SessionState.GAME_OVER
            self.current_page_id = None
            logger.debug("Game over after result '%s' on page %s", result.name, page.id)
        else:
            self.current_page_id = destination.id
            logger.debug("Moved from %s to %s via '%s'", page.id, destination.id, result.name)
        return transition
