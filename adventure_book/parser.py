"""Parser for the adventure book text format.

Adventure metadata (``adventure.txt``) and pages (``<page id>.txt``) are
line-oriented: every logical line starts with a lower-case tag followed by a
colon. ``story:`` and ``description:`` run on over the following untagged
lines. Choices embed their links as ``{condition: name}``, ``{test: name}`` or
``{result: name}`` groups anywhere in the line.

Both entry points are pure, so a file can be re-parsed at any time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from .errors import (
    DuplicateDeclarationName,
    MalformedFieldList,
    MissingRequiredTag,
    RepeatedTag,
    UnknownComparator,
    UnknownTag,
)
from .models import (
    METADATA_TAGS,
    PAGE_TAGS,
    SINGLE_TAGS,
    Adventure,
    Choice,
    Comparison,
    Condition,
    Mutation,
    NameDefinition,
    Page,
    RecordDefinition,
    Result,
    Tag,
    Test,
)

TAG_LINE_PATTERN = re.compile(r"^([a-z]+):(.*)$")
CHOICE_GROUP_PATTERN = re.compile(r"\{([^{}]*)\}")
CHOICE_LINK_PATTERN = re.compile(r"^\s*([A-Za-z_]+)\s*:\s*(.*?)\s*$", re.DOTALL)
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

MULTILINE_TAGS = frozenset({Tag.STORY, Tag.DESCRIPTION})
CHOICE_LINKS = ("condition", "test", "result")

_COMPARISONS = {comparison.value: comparison for comparison in Comparison}


@dataclass
class _Entry:
    tag: Tag
    value: str
    line: int
    extra: List[str] = field(default_factory=list)

    def text(self) -> str:
        lines = [self.value.strip(), *self.extra]
        while lines and not lines[-1].strip():
            lines.pop()
        return "\n".join(lines).strip()


def _read_entries(text: str, allowed: FrozenSet[Tag]) -> List[_Entry]:
    entries: List[_Entry] = []
    current: Optional[_Entry] = None
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.rstrip("\r")
        continuing = current is not None and current.tag in MULTILINE_TAGS
        match = TAG_LINE_PATTERN.match(line)
        if match:
            name = match.group(1)
            try:
                tag = Tag(name)
            except ValueError:
                if not continuing:
                    raise UnknownTag(f"unknown tag '{name}:'", line=number) from None
                # ``warning: ...`` or a URL inside a story is just prose
                current.extra.append(line.rstrip())
                continue
            if tag not in allowed:
                raise UnknownTag(f"tag '{name}:' is not allowed in this file", line=number)
            current = _Entry(tag, match.group(2), number)
            entries.append(current)
            continue
        if continuing:
            current.extra.append(line.rstrip())
            continue
        if line.strip():
            raise UnknownTag("text outside of a tagged section", line=number)
    return entries


def split_fields(value: str) -> List[str]:
    """Split a semicolon field list, dropping empty fields."""
    return [part.strip() for part in value.split(";") if part.strip()]


def _check_keyword(keyword: str, line: int) -> str:
    if "[" in keyword or "]" in keyword:
        raise MalformedFieldList(f"keyword '{keyword}' must not contain brackets", line=line)
    return keyword


def parse_comparison(symbol: str, *, line: Optional[int] = None) -> Comparison:
    comparison = _COMPARISONS.get(symbol.strip())
    if comparison is None:
        raise UnknownComparator(f"unknown comparator '{symbol.strip()}'", line=line)
    return comparison


def parse_record(value: str, *, line: Optional[int] = None) -> RecordDefinition:
    fields = split_fields(value)
    if not 1 <= len(fields) <= 3:
        raise MalformedFieldList(
            f"record expects 'keyword; category; value', got {len(fields)} fields", line=line
        )
    keyword = _check_keyword(fields[0], line)
    category: Optional[str] = None
    raw_value = "0"
    if len(fields) == 2:
        if INTEGER_PATTERN.match(fields[1]):
            raw_value = fields[1]
        else:
            category = fields[1]
    elif len(fields) == 3:
        category, raw_value = fields[1], fields[2]
    if not INTEGER_PATTERN.match(raw_value):
        raise MalformedFieldList(f"record '{keyword}' value '{raw_value}' is not an integer", line=line)
    return RecordDefinition(keyword=keyword, category=category, value=int(raw_value))


def parse_name(value: str, *, line: Optional[int] = None) -> NameDefinition:
    fields = split_fields(value)
    if not 1 <= len(fields) <= 2:
        raise MalformedFieldList(
            f"name expects 'keyword; value', got {len(fields)} fields", line=line
        )
    keyword = _check_keyword(fields[0], line)
    return NameDefinition(keyword=keyword, value=fields[1] if len(fields) == 2 else "")


def parse_choice(value: str, *, line: Optional[int] = None) -> Choice:
    links: Dict[str, str] = {}

    def take_link(match: re.Match[str]) -> str:
        link = CHOICE_LINK_PATTERN.match(match.group(1))
        if not link:
            return match.group(0)
        kind, name = link.group(1), link.group(2)
        if kind not in CHOICE_LINKS:
            raise UnknownTag(f"unknown choice link '{{{kind}: …}}'", line=line)
        if kind in links:
            raise RepeatedTag(f"choice declares more than one {kind}", line=line)
        if not name:
            raise MalformedFieldList(f"choice {kind} link has no name", line=line)
        links[kind] = name
        return " "

    text = " ".join(CHOICE_GROUP_PATTERN.sub(take_link, value).split())
    if not text:
        raise MalformedFieldList("choice has no display text", line=line)
    if "test" in links and "result" in links:
        raise MissingRequiredTag("choice declares both a test and a result", line=line)
    if "test" not in links and "result" not in links:
        raise MissingRequiredTag("choice needs either a test or a result", line=line)
    return Choice(
        text=text,
        condition=links.get("condition"),
        test=links.get("test"),
        result=links.get("result"),
    )


def parse_condition(value: str, *, line: Optional[int] = None) -> Condition:
    fields = split_fields(value)
    if len(fields) != 4:
        raise MalformedFieldList(
            f"condition expects 'name; left; comparator; right', got {len(fields)} fields",
            line=line,
        )
    name, left, symbol, right = fields
    return Condition(name=name, left=left, comparison=parse_comparison(symbol, line=line), right=right)


def parse_test(value: str, *, line: Optional[int] = None) -> Test:
    fields = split_fields(value)
    if len(fields) != 6:
        raise MalformedFieldList(
            "test expects 'name; left; comparator; right; success; failure', "
            f"got {len(fields)} fields",
            line=line,
        )
    name, left, symbol, right, success, failure = fields
    return Test(
        name=name,
        left=left,
        comparison=parse_comparison(symbol, line=line),
        right=right,
        success=success,
        failure=failure,
    )


def parse_result(value: str, *, line: Optional[int] = None) -> Result:
    fields = split_fields(value)
    if len(fields) < 2 or len(fields) % 2:
        raise MalformedFieldList(
            "result expects 'name; destination' followed by 'keyword; expression' pairs, "
            f"got {len(fields)} fields",
            line=line,
        )
    name, destination, *pairs = fields
    mutations = tuple(
        Mutation(keyword=_check_keyword(pairs[i], line), expression=pairs[i + 1])
        for i in range(0, len(pairs), 2)
    )
    return Result(name=name, destination=destination, mutations=mutations)


def _declare(table: Dict[str, object], name: str, item: object, kind: str, line: int) -> None:
    if name in table:
        raise DuplicateDeclarationName(f"{kind} '{name}' is declared twice", line=line)
    table[name] = item


def parse_metadata(text: str) -> Adventure:
    singles: Dict[Tag, str] = {}
    records: Dict[str, RecordDefinition] = {}
    names: Dict[str, NameDefinition] = {}
    for entry in _read_entries(text, METADATA_TAGS):
        if entry.tag in SINGLE_TAGS:
            if entry.tag in singles:
                raise RepeatedTag(f"'{entry.tag.value}:' may appear only once", line=entry.line)
            singles[entry.tag] = entry.text()
        elif entry.tag is Tag.RECORD:
            record = parse_record(entry.value, line=entry.line)
            _declare(records, record.keyword, record, "record", entry.line)
        elif entry.tag is Tag.NAME:
            name = parse_name(entry.value, line=entry.line)
            _declare(names, name.keyword, name, "name", entry.line)

    start = singles.get(Tag.START, "")
    if not start:
        raise MissingRequiredTag("adventure needs a 'start:' page")
    return Adventure(
        start=start,
        title=singles.get(Tag.TITLE, ""),
        description=singles.get(Tag.DESCRIPTION, ""),
        records=tuple(records.values()),
        names=tuple(names.values()),
    )


def parse_page(text: str, page_id: str) -> Page:
    singles: Dict[Tag, str] = {}
    choices: List[Choice] = []
    conditions: Dict[str, Condition] = {}
    tests: Dict[str, Test] = {}
    results: Dict[str, Result] = {}
    for entry in _read_entries(text, PAGE_TAGS):
        if entry.tag in SINGLE_TAGS:
            if entry.tag in singles:
                raise RepeatedTag(f"'{entry.tag.value}:' may appear only once", line=entry.line)
            singles[entry.tag] = entry.text()
        elif entry.tag is Tag.CHOICE:
            choices.append(parse_choice(entry.value, line=entry.line))
        elif entry.tag is Tag.CONDITION:
            condition = parse_condition(entry.value, line=entry.line)
            _declare(conditions, condition.name, condition, "condition", entry.line)
        elif entry.tag is Tag.TEST:
            test = parse_test(entry.value, line=entry.line)
            _declare(tests, test.name, test, "test", entry.line)
        elif entry.tag is Tag.RESULT:
            result = parse_result(entry.value, line=entry.line)
            _declare(results, result.name, result, "result", entry.line)

    if not choices:
        raise MissingRequiredTag("page needs at least one 'choice:'")
    if not results:
        raise MissingRequiredTag("page needs at least one 'result:'")
    return Page(
        id=page_id,
        story=singles.get(Tag.STORY, ""),
        title=singles.get(Tag.TITLE, ""),
        choices=tuple(choices),
        conditions=conditions,
        tests=tests,
        results=results,
    )


# ---------- Serialization ----------
def dump_metadata(adventure: Adventure) -> str:
    lines = []
    if adventure.title:
        lines.append(f"title: {adventure.title}")
    if adventure.description:
        lines.append(f"description: {adventure.description}")
    lines.append(f"start: {adventure.start}")
    for record in adventure.records:
        if record.category:
            lines.append(f"record: {record.keyword}; {record.category}; {record.value}")
        else:
            lines.append(f"record: {record.keyword}; {record.value}")
    for name in adventure.names:
        lines.append(f"name: {name.keyword}; {name.value}" if name.value else f"name: {name.keyword}")
    return "\n".join(lines) + "\n"


def _dump_choice(choice: Choice) -> str:
    parts = [choice.text]
    if choice.condition:
        parts.append(f"{{condition: {choice.condition}}}")
    if choice.test:
        parts.append(f"{{test: {choice.test}}}")
    if choice.result:
        parts.append(f"{{result: {choice.result}}}")
    return "choice: " + " ".join(parts)


def dump_page(page: Page) -> str:
    lines = []
    if page.title:
        lines.append(f"title: {page.title}")
    if page.story:
        lines.append(f"story: {page.story}")
    lines.extend(_dump_choice(choice) for choice in page.choices)
    for cond in page.conditions.values():
        lines.append(f"condition: {cond.name}; {cond.left}; {cond.comparison.value}; {cond.right}")
    for test in page.tests.values():
        lines.append(
            f"test: {test.name}; {test.left}; {test.comparison.value}; {test.right}; "
            f"{test.success}; {test.failure}"
        )
    for result in page.results.values():
        fields = [result.name, result.destination]
        for mutation in result.mutations:
            fields.extend((mutation.keyword, mutation.expression))
        lines.append("result: " + "; ".join(fields))
    return "\n".join(lines) + "\n"
