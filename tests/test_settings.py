import json
import logging
from pathlib import Path

from adventure_book.expression import DEFAULT_EXPLODE_CAP
from adventure_book.settings import (
    MAX_EXPLODE_CAP,
    EngineSettings,
    load_settings,
    save_settings,
)


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "absent.json")
    assert settings == EngineSettings()
    assert settings.explode_cap == DEFAULT_EXPLODE_CAP


def test_save_and_load(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    save_settings(EngineSettings(explode_cap=12, seed=99, log_level="debug"), path)

    loaded = load_settings(path)

    assert loaded.explode_cap == 12
    assert loaded.seed == 99
    assert loaded.log_level == "DEBUG"
    assert list(path.parent.iterdir()) == [path]


def test_from_dict_clamps_and_ignores_junk() -> None:
    settings = EngineSettings.from_dict(
        {
            "explode_cap": MAX_EXPLODE_CAP * 10,
            "seed": "not a number",
            "page_extension": "page",
            "metadata_filename": "  ",
            "log_level": "chatty",
        }
    )
    assert settings.explode_cap == MAX_EXPLODE_CAP
    assert settings.seed is None
    assert settings.page_extension == ".page"
    assert settings.metadata_filename == "adventure.txt"
    assert settings.log_level == "WARNING"
    assert EngineSettings.from_dict(None) == EngineSettings()
    assert EngineSettings.from_dict({"explode_cap": -4}).explode_cap == 0


def test_unreadable_file_logs_warning(tmp_path: Path, caplog) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="adventure_book.settings"):
        settings = load_settings(path)

    assert settings == EngineSettings()
    assert "Ignoring unreadable settings file" in caplog.text


def test_copy_is_independent() -> None:
    settings = EngineSettings(seed=1)
    clone = settings.copy()
    clone.seed = 2
    assert settings.seed == 1
    assert json.loads(json.dumps(settings.to_dict()))["seed"] == 1
