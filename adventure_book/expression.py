"""Dice and arithmetic expressions.

An expression is evaluated in three passes:

1. ``[keyword]`` tokens are replaced by record values.
2. Dice terms are rolled left to right:
   ``NdS`` sums N rolls of an S-sided die, ``NdSpT`` counts rolls >= T,
   ``NdSqT`` counts rolls <= T and ``NxS`` explodes on the maximum face.
3. The remaining numbers are combined with ``h``/``l`` (keep higher/lower),
   ``*``, ``/``, ``+``, ``-`` and parentheses, in that order of precedence.

Exploding dice roll at most ``explode_cap`` additional dice per term, so
``NxS`` never exceeds ``(N + explode_cap) * S``.
"""

from __future__ import annotations

import re
from typing import Callable, List, Mapping, Optional, Protocol, Tuple, Union

from .errors import DivisionByZero, MalformedExpression, UndefinedRecord
from .models import Comparison

DEFAULT_EXPLODE_CAP = 100

KEYWORD_PATTERN = re.compile(r"\[([^\[\]]*)\]")
TOKEN_PATTERN = re.compile(
    r"""\s*(?:
        (?P<dice>(?P<count>\d+)\s*(?P<kind>[dx])\s*(?P<sides>\d+)
            (?:\s*(?P<pool>[pq])\s*(?P<threshold>\d+))?)
      | (?P<number>\d+)
      | (?P<op>[-+*/hl()])
    )""",
    re.VERBOSE,
)


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


Lookup = Union[Callable[[str], int], Mapping[str, int]]
Token = Tuple[str, object]


def _as_lookup(lookup: Lookup) -> Callable[[str], int]:
    if isinstance(lookup, Mapping):
        def from_mapping(keyword: str) -> int:
            try:
                return lookup[keyword]
            except KeyError:
                raise UndefinedRecord(keyword) from None

        return from_mapping
    return lookup


# ---------- Dice ----------
def roll_dice(rng: RandomSource, count: int, sides: int) -> int:
    return sum(rng.randint(1, sides) for _ in range(count))


def roll_pool(rng: RandomSource, count: int, sides: int, threshold: int, *, at_most: bool = False) -> int:
    hits = 0
    for _ in range(count):
        roll = rng.randint(1, sides)
        if (roll <= threshold) if at_most else (roll >= threshold):
            hits += 1
    return hits


def roll_exploding(rng: RandomSource, count: int, sides: int, *, cap: int = DEFAULT_EXPLODE_CAP) -> int:
    total = 0
    extra = 0
    for _ in range(count):
        while True:
            roll = rng.randint(1, sides)
            total += roll
            if roll != sides or extra >= cap:
                break
            extra += 1
    return total


# ---------- Passes ----------
def referenced_keywords(expression: str) -> List[str]:
    return [match.strip() for match in KEYWORD_PATTERN.findall(expression)]


def substitute_keywords(expression: str, lookup: Lookup) -> str:
    resolve = _as_lookup(lookup)

    def replace(match: re.Match[str]) -> str:
        keyword = match.group(1).strip()
        if not keyword:
            raise MalformedExpression(expression, "empty keyword brackets")
        value = resolve(keyword)
        return f"({value})" if value < 0 else str(value)

    return KEYWORD_PATTERN.sub(replace, expression)


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(expression):
        if not expression[pos:].strip():
            break
        match = TOKEN_PATTERN.match(expression, pos)
        if not match or match.end() == pos:
            raise MalformedExpression(expression, f"unexpected text '{expression[pos:].strip()}'")
        pos = match.end()
        if match.group("dice"):
            threshold = match.group("threshold")
            tokens.append(
                (
                    "dice",
                    (
                        int(match.group("count")),
                        match.group("kind"),
                        int(match.group("sides")),
                        match.group("pool"),
                        int(threshold) if threshold is not None else None,
                    ),
                )
            )
        elif match.group("number"):
            tokens.append(("number", int(match.group("number"))))
        else:
            tokens.append(("op", match.group("op")))
    if not tokens:
        raise MalformedExpression(expression, "expression is empty")
    return tokens


def resolve_dice(tokens: List[Token], rng: RandomSource, expression: str, *, explode_cap: int) -> List[Token]:
    resolved: List[Token] = []
    for kind, value in tokens:
        if kind != "dice":
            resolved.append((kind, value))
            continue
        count, die, sides, pool, threshold = value  # type: ignore[misc]
        if count < 1 or sides < 1:
            raise MalformedExpression(expression, "dice need a positive count and number of sides")
        if die == "x":
            if pool:
                raise MalformedExpression(expression, "exploding dice cannot be pooled")
            rolled = roll_exploding(rng, count, sides, cap=explode_cap)
        elif pool:
            if threshold < 1:
                raise MalformedExpression(expression, "dice pool threshold must be positive")
            rolled = roll_pool(rng, count, sides, threshold, at_most=pool == "q")
        else:
            rolled = roll_dice(rng, count, sides)
        resolved.append(("number", rolled))
    return resolved


def _divide(left: int, right: int) -> int:
    quotient = abs(left) // abs(right)
    return quotient if (left >= 0) == (right > 0) else -quotient


class _Arithmetic:
    """Recursive descent over resolved tokens."""

    def __init__(self, tokens: List[Token], expression: str) -> None:
        self.tokens = tokens
        self.expression = expression
        self.pos = 0

    def _peek_op(self) -> Optional[str]:
        if self.pos < len(self.tokens) and self.tokens[self.pos][0] == "op":
            return self.tokens[self.pos][1]  # type: ignore[return-value]
        return None

    def _fail(self, reason: str) -> MalformedExpression:
        return MalformedExpression(self.expression, reason)

    def run(self) -> int:
        value = self.sum()
        if self.pos != len(self.tokens):
            raise self._fail("unexpected trailing input")
        return value

    def sum(self) -> int:
        value = self.product()
        while self._peek_op() in ("+", "-"):
            op = self._peek_op()
            self.pos += 1
            right = self.product()
            value = value + right if op == "+" else value - right
        return value

    def product(self) -> int:
        value = self.pick()
        while self._peek_op() in ("*", "/"):
            op = self._peek_op()
            self.pos += 1
            right = self.pick()
            if op == "*":
                value *= right
            elif right == 0:
                raise DivisionByZero(self.expression)
            else:
                value = _divide(value, right)
        return value

    def pick(self) -> int:
        value = self.unary()
        while self._peek_op() in ("h", "l"):
            op = self._peek_op()
            self.pos += 1
            right = self.unary()
            value = max(value, right) if op == "h" else min(value, right)
        return value

    def unary(self) -> int:
        op = self._peek_op()
        if op in ("-", "+"):
            self.pos += 1
            value = self.unary()
            return -value if op == "-" else value
        return self.atom()

    def atom(self) -> int:
        if self.pos >= len(self.tokens):
            raise self._fail("expression ends too early")
        kind, value = self.tokens[self.pos]
        if kind == "number":
            self.pos += 1
            return value  # type: ignore[return-value]
        if value == "(":
            self.pos += 1
            inner = self.sum()
            if self._peek_op() != ")":
                raise self._fail("missing ')'")
            self.pos += 1
            return inner
        raise self._fail(f"unexpected '{value}'")


def evaluate_expression(
    expression: str,
    lookup: Lookup,
    rng: RandomSource,
    *,
    explode_cap: int = DEFAULT_EXPLODE_CAP,
) -> int:
    substituted = substitute_keywords(expression, lookup)
    try:
        tokens = tokenize(substituted)
    except MalformedExpression as exc:
        raise MalformedExpression(expression, exc.reason) from None
    tokens = resolve_dice(tokens, rng, expression, explode_cap=explode_cap)
    return _Arithmetic(tokens, expression).run()


def evaluate_comparison(
    left: str,
    comparison: Comparison,
    right: str,
    lookup: Lookup,
    rng: RandomSource,
    *,
    explode_cap: int = DEFAULT_EXPLODE_CAP,
) -> bool:
    left_value = evaluate_expression(left, lookup, rng, explode_cap=explode_cap)
    right_value = evaluate_expression(right, lookup, rng, explode_cap=explode_cap)
    return comparison.compare(left_value, right_value)


class _LowestRoll:
    def randint(self, a: int, b: int) -> int:
        return a


def check_syntax(expression: str) -> None:
    """Raise ``MalformedExpression`` if ``expression`` can never evaluate.

    Keywords are stood in for by ``1``, so only the shape is checked.
    """
    try:
        evaluate_expression(expression, lambda _keyword: 1, _LowestRoll(), explode_cap=0)
    except DivisionByZero:
        pass
