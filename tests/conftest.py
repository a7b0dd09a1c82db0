from pathlib import Path

import pytest


class ScriptedRandom:
    """Random source that hands out a fixed sequence of rolls."""

    def __init__(self, rolls):
        self.rolls = list(rolls)
        self.calls = []

    def randint(self, a: int, b: int) -> int:
        if not self.rolls:
            raise AssertionError(f"ran out of scripted rolls (asked for {a}..{b})")
        value = self.rolls.pop(0)
        assert a <= value <= b, f"scripted roll {value} outside {a}..{b}"
        self.calls.append((a, b))
        return value


@pytest.fixture
def scripted():
    return ScriptedRandom


TROLL_METADATA = """\
title: The Troll Bridge
description: A short walk that ends at a bridge
with a very large troll under it.
start: troll-fight
record: Stamina; attributes; 5
record: treasure; 0
record: trap; hidden; 0
record: troll; enemies; 12
record: Weapon Power; 6
name: hero; Brann
"""

TROLL_FIGHT = """\
title: Under the Bridge
story: The troll looms over [hero].
It smells of wet moss.
choice: Strike carefully {test: safe}
choice: Rush in while you still can {condition: stam} {result: rush}
choice: Search the riverbank {result: search}
choice: Give up {result: flee}
condition: stam; [Stamina]; >; 0
test: safe; 1d20; >=; 8 + [treasure]; safe; miss
result: safe; troll-fight-hit; troll; -(1d[Weapon Power] - 2)
result: miss; troll-fight; Stamina; -1
result: rush; troll fight hit; troll; -3; Stamina; -2
result: search; troll_fight; treasure; 1; trap; [treasure]
result: flee; game over
"""

TROLL_FIGHT_HIT = """\
title: A Solid Hit
story: The troll staggers. [troll] health left.
choice: Keep going {result: again}
choice: Claim the title {result: rename}
result: again; troll-fight
result: rename; troll-fight; hero; [hero] the Bold
"""


@pytest.fixture
def troll_texts():
    return TROLL_METADATA, {"troll-fight": TROLL_FIGHT, "troll-fight-hit": TROLL_FIGHT_HIT}


@pytest.fixture
def troll_dir(tmp_path: Path, troll_texts) -> Path:
    metadata, pages = troll_texts
    directory = tmp_path / "troll"
    directory.mkdir()
    (directory / "adventure.txt").write_text(metadata, encoding="utf-8")
    for page_id, text in pages.items():
        (directory / f"{page_id}.txt").write_text(text, encoding="utf-8")
    return directory
