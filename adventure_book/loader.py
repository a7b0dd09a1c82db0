"""Load a whole adventure: metadata, pages and validation in one pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .errors import AdventureError, AdventureLoadError, DuplicateDeclarationName, ParseError
from .expression import RandomSource
from .models import Adventure, Page, normalize_page_id
from .navigator import Session
from .parser import parse_metadata, parse_page
from .schema import validate_adventure
from .settings import EngineSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Book:
    """A validated adventure with its pages keyed by normalized page id."""

    adventure: Adventure
    pages: Dict[str, Page] = field(default_factory=dict)
    path: Optional[Path] = None

    def page(self, page_id: str) -> Optional[Page]:
        return self.pages.get(normalize_page_id(page_id))

    def new_session(
        self,
        *,
        rng: Optional[RandomSource] = None,
        settings: Optional[EngineSettings] = None,
    ) -> Session:
        return Session(self.adventure, self.pages, rng=rng, settings=settings)


def load_adventure_texts(
    metadata_text: str,
    page_texts: Mapping[str, str],
    *,
    source: Optional[str] = None,
    metadata_name: str = "adventure.txt",
) -> Book:
    """Parse and validate an adventure given as raw text.

    ``page_texts`` maps page ids to page file contents. Every parse and
    reference defect is collected before ``AdventureLoadError`` is raised.
    """
    errors: List[AdventureError] = []
    adventure: Optional[Adventure] = None
    try:
        adventure = parse_metadata(metadata_text)
    except ParseError as exc:
        errors.append(exc.with_source(metadata_name))

    pages: Dict[str, Page] = {}
    for page_id, text in page_texts.items():
        key = normalize_page_id(page_id)
        if key in pages:
            errors.append(
                DuplicateDeclarationName(
                    f"page '{page_id}' collides with page '{pages[key].id}'", source=page_id
                )
            )
            continue
        try:
            pages[key] = parse_page(text, page_id)
        except ParseError as exc:
            errors.append(exc.with_source(page_id))
            continue
        logger.debug("Parsed page %s", page_id)

    if adventure is not None:
        errors.extend(validate_adventure(adventure, pages))
    if errors or adventure is None:
        raise AdventureLoadError(errors, source=source)
    return Book(adventure=adventure, pages=pages)


def load_adventure(directory: Path | str, *, settings: Optional[EngineSettings] = None) -> Book:
    """Load the adventure stored in ``directory``.

    The directory holds the metadata file plus one file per page, named after
    the page id. Locating adventure directories is up to the caller.
    """
    settings = settings or EngineSettings()
    directory = Path(directory)
    metadata_path = directory / settings.metadata_filename
    metadata_text = metadata_path.read_text(encoding="utf-8")

    page_texts: Dict[str, str] = {}
    for page_path in sorted(directory.glob(f"*{settings.page_extension}")):
        if page_path.name == settings.metadata_filename or not page_path.is_file():
            continue
        page_texts[page_path.stem] = page_path.read_text(encoding="utf-8")

    book = load_adventure_texts(
        metadata_text,
        page_texts,
        source=str(directory),
        metadata_name=settings.metadata_filename,
    )
    logger.debug("Loaded adventure '%s' with %d pages", book.adventure.title, len(book.pages))
    return Book(adventure=book.adventure, pages=book.pages, path=directory)
