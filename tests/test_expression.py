import random

import pytest

from adventure_book.errors import DivisionByZero, MalformedExpression, UndefinedRecord
from adventure_book.expression import (
    check_syntax,
    evaluate_comparison,
    evaluate_expression,
    referenced_keywords,
    roll_exploding,
)
from adventure_book.models import Comparison


class AlwaysMax:
    def randint(self, a: int, b: int) -> int:
        return b


def evaluate(expression: str, records=None, rng=None, **kwargs) -> int:
    return evaluate_expression(expression, records or {}, rng or random.Random(0), **kwargs)


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("2 + 3 * 4", 14),
        ("(2 + 3) * 4", 20),
        ("10 - 2 - 3", 5),
        ("-3 + 5", 2),
        ("2 * -3", -6),
        ("2 * 3 h 4", 8),
        ("3 l 1 + 1", 2),
        ("7 / 2", 3),
        ("-7 / 2", -3),
        ("7 / -2", -3),
        ("-(4 - 6)", 2),
        ("42", 42),
    ],
)
def test_arithmetic(expression: str, expected: int) -> None:
    assert evaluate(expression) == expected


def test_keywords_are_substituted_before_evaluation() -> None:
    records = {"strength": 3, "debt": -3, "sides": 4}
    assert evaluate("[strength] * 2", records) == 6
    assert evaluate("5 - [debt]", records) == 8
    assert evaluate("[debt] * 2", records) == -6
    assert evaluate("1d[sides]", records, rng=AlwaysMax()) == 4


def test_lookup_may_be_a_callable() -> None:
    assert evaluate_expression("[a] + 1", lambda keyword: 10, random.Random(0)) == 11


def test_scripted_dice(scripted) -> None:
    assert evaluate("2d6 + 1", rng=scripted([3, 4])) == 8
    assert evaluate("3d6p5", rng=scripted([6, 2, 5])) == 2
    assert evaluate("3d6q2", rng=scripted([1, 3, 2])) == 2
    assert evaluate("1d6 h 1d6", rng=scripted([2, 5])) == 5
    assert evaluate("1d6 l 1d6", rng=scripted([2, 5])) == 2


def test_dice_roll_left_to_right(scripted) -> None:
    rng = scripted([4, 7])
    assert evaluate("1d6 - 1d8", rng=rng) == -3
    assert rng.calls == [(1, 6), (1, 8)]


def test_exploding_dice_chain_per_die(scripted) -> None:
    assert evaluate("2x6", rng=scripted([6, 6, 1, 4])) == 17


def test_exploding_dice_respect_cap(scripted) -> None:
    assert evaluate("2x6", rng=scripted([6, 6, 4]), explode_cap=1) == 16
    assert roll_exploding(AlwaysMax(), 1, 6, cap=2) == 18
    assert evaluate("3x4", rng=AlwaysMax(), explode_cap=5) == (3 + 5) * 4


@pytest.mark.parametrize(
    ("expression", "low", "high"),
    [
        ("3d6", 3, 18),
        ("4d6p4", 0, 4),
        ("4d6q2", 0, 4),
        ("2x6", 2, (2 + 3) * 6),
        ("1d20 + 5", 6, 25),
    ],
)
def test_dice_stay_within_bounds(expression: str, low: int, high: int) -> None:
    rng = random.Random(1234)
    for _ in range(300):
        assert low <= evaluate(expression, rng=rng, explode_cap=3) <= high


@pytest.mark.parametrize("expression", ["5 / 0", "5 / (2 - 2)", "1d6 / 0"])
def test_division_by_zero(expression: str) -> None:
    with pytest.raises(DivisionByZero):
        evaluate(expression)


@pytest.mark.parametrize(
    "expression",
    ["", "   ", "2 +", "(2", "2 2", "abc", "d6", "0d6", "2d0", "2x6p3", "[]", "3d6p0", "h 2"],
)
def test_malformed_expressions(expression: str) -> None:
    with pytest.raises(MalformedExpression):
        evaluate(expression)


def test_malformed_expression_keeps_original_text() -> None:
    with pytest.raises(MalformedExpression) as excinfo:
        evaluate("[gold] +", {"gold": 2})
    assert excinfo.value.expression == "[gold] +"


def test_undefined_record() -> None:
    with pytest.raises(UndefinedRecord) as excinfo:
        evaluate("[gold] + 1", {"silver": 1})
    assert excinfo.value.keyword == "gold"


def test_comparison_evaluates_left_side_first(scripted) -> None:
    rng = scripted([2, 5])
    assert evaluate_comparison("1d6", Comparison.LESS, "1d8", {}, rng)
    assert rng.calls == [(1, 6), (1, 8)]


@pytest.mark.parametrize(
    ("comparison", "left", "right", "expected"),
    [
        (Comparison.GREATER, 3, 2, True),
        (Comparison.GREATER_EQUAL, 2, 2, True),
        (Comparison.LESS, 2, 2, False),
        (Comparison.LESS_EQUAL, 2, 3, True),
        (Comparison.EQUAL, 2, 3, False),
        (Comparison.NOT_EQUAL, 2, 3, True),
    ],
)
def test_comparison_operators(comparison, left, right, expected) -> None:
    assert evaluate_comparison(str(left), comparison, str(right), {}, random.Random(0)) is expected


def test_referenced_keywords() -> None:
    assert referenced_keywords("[a] + 1d[ b ] - 3") == ["a", "b"]


def test_check_syntax() -> None:
    check_syntax("1d[Weapon Power] + 2")
    check_syntax("[gold] / 0")
    with pytest.raises(MalformedExpression):
        check_syntax("2 + * 3")
