from pathlib import Path

import pytest

from adventure_book.errors import (
    AdventureLoadError,
    DanglingReference,
    DuplicateDeclarationName,
    MalformedFieldList,
    MissingDestination,
    MissingRequiredTag,
)
from adventure_book.loader import load_adventure, load_adventure_texts
from adventure_book.settings import EngineSettings


def test_load_adventure_reads_directory(troll_dir: Path) -> None:
    book = load_adventure(troll_dir)

    assert book.path == troll_dir
    assert book.adventure.title == "The Troll Bridge"
    assert set(book.pages) == {"troll_fight", "troll_fight_hit"}
    assert book.page("Troll Fight").id == "troll-fight"


def test_loaded_book_starts_sessions(troll_dir: Path, scripted) -> None:
    session = load_adventure(troll_dir).new_session(rng=scripted([20, 6]))
    session.choose(0)
    assert session.store.get_record("troll") == 8


def test_custom_file_layout(tmp_path: Path, troll_texts) -> None:
    metadata, pages = troll_texts
    (tmp_path / "book.meta").write_text(metadata, encoding="utf-8")
    for page_id, text in pages.items():
        (tmp_path / f"{page_id}.page").write_text(text, encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not a page", encoding="utf-8")

    settings = EngineSettings(metadata_filename="book.meta", page_extension=".page")
    book = load_adventure(tmp_path, settings=settings)

    assert len(book.pages) == 2


def test_missing_metadata_file(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        load_adventure(tmp_path)


def test_load_collects_every_error(troll_texts) -> None:
    metadata, pages = troll_texts
    broken = dict(pages)
    broken["troll-fight-hit"] = "choice: Keep going {result: again}\nresult: again; the-void\n"
    broken["cave"] = "choice: Enter {condition: lit} {result: in}\nresult: out; game over\n"
    broken["notes"] = "story: an unfinished page\n"

    with pytest.raises(AdventureLoadError) as excinfo:
        load_adventure_texts(metadata, broken, source="troll")

    kinds = [type(err) for err in excinfo.value.errors]
    assert MissingDestination in kinds
    assert DanglingReference in kinds
    assert MissingRequiredTag in kinds
    assert str(excinfo.value).startswith("Invalid adventure troll:")
    assert any(getattr(err, "source", None) == "notes" for err in excinfo.value.errors)


def test_metadata_errors_name_the_metadata_file(troll_texts) -> None:
    _, pages = troll_texts
    with pytest.raises(AdventureLoadError) as excinfo:
        load_adventure_texts("start: troll-fight\nrecord: gold; coins; many\n", pages)
    (error,) = excinfo.value.errors
    assert isinstance(error, MalformedFieldList)
    assert str(error).startswith("adventure.txt:2:")


def test_colliding_page_ids_are_rejected(troll_texts) -> None:
    metadata, pages = troll_texts
    colliding = dict(pages)
    colliding["Troll Fight"] = pages["troll-fight"]

    with pytest.raises(AdventureLoadError) as excinfo:
        load_adventure_texts(metadata, colliding)

    assert any(isinstance(err, DuplicateDeclarationName) for err in excinfo.value.errors)


def test_missing_start_page_is_reported(troll_texts) -> None:
    _, pages = troll_texts
    with pytest.raises(AdventureLoadError) as excinfo:
        load_adventure_texts("start: the-gate\n", pages)
    assert [err.path for err in excinfo.value.errors] == ["start"]


def test_test_outcomes_must_exist(troll_texts) -> None:
    metadata, pages = troll_texts
    broken = dict(pages)
    broken["troll-fight"] = pages["troll-fight"].replace("result: miss;", "result: missed;")
    with pytest.raises(AdventureLoadError) as excinfo:
        load_adventure_texts(metadata, broken)
    (error,) = excinfo.value.errors
    assert isinstance(error, DanglingReference)
    assert "failure" in error.path
