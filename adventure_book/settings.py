"""Engine settings persistence."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .expression import DEFAULT_EXPLODE_CAP

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path("adventure_book.json")
MAX_EXPLODE_CAP = 10_000
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class EngineSettings:
    """Runtime configuration for loading and playing adventures."""

    explode_cap: int = DEFAULT_EXPLODE_CAP
    seed: Optional[int] = None
    metadata_filename: str = "adventure.txt"
    page_extension: str = ".txt"
    log_level: str = "WARNING"

    def clamp(self) -> "EngineSettings":
        self.explode_cap = min(max(int(self.explode_cap), 0), MAX_EXPLODE_CAP)
        if self.seed is not None:
            self.seed = int(self.seed)

        if not str(self.metadata_filename).strip():
            self.metadata_filename = "adventure.txt"
        extension = str(self.page_extension).strip() or ".txt"
        if not extension.startswith("."):
            extension = f".{extension}"
        self.page_extension = extension

        level = str(self.log_level).upper()
        if level not in _LOG_LEVELS:
            level = "WARNING"
        self.log_level = level
        return self

    def copy(self) -> "EngineSettings":
        return EngineSettings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "EngineSettings":
        if not isinstance(data, dict):
            return cls()

        def _as_int(key: str, default: Optional[int]) -> Optional[int]:
            try:
                return int(data.get(key, default))
            except (TypeError, ValueError):
                return default

        settings = cls(
            explode_cap=_as_int("explode_cap", DEFAULT_EXPLODE_CAP),
            seed=_as_int("seed", None),
            metadata_filename=str(data.get("metadata_filename", "adventure.txt")),
            page_extension=str(data.get("page_extension", ".txt")),
            log_level=str(data.get("log_level", "WARNING")),
        )
        return settings.clamp()


def load_settings(path: Path | str = SETTINGS_PATH) -> EngineSettings:
    """Read settings from ``path``; a missing or broken file yields the defaults."""
    path = Path(path)
    if not path.exists():
        return EngineSettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return EngineSettings()
    return EngineSettings.from_dict(data)


def _write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, sort_keys=True)
            handle.write("\n")
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


def save_settings(settings: EngineSettings, path: Path | str = SETTINGS_PATH) -> EngineSettings:
    """Persist the clamped form of ``settings`` and return it.

    The file is swapped in whole, so a reader never sees a half-written file.
    Write failures are logged and leave any previous file in place.
    """
    path = Path(path)
    sanitized = settings.copy()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _write_json_atomic(path, sanitized.to_dict())
    except OSError as exc:
        logger.warning("Failed to save settings to %s: %s", path, exc)
    else:
        logger.debug("Saved settings to %s", path)
    return sanitized


def configure_logging(settings: EngineSettings) -> None:
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))
