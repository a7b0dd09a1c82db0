#!/usr/bin/env python3
"""Validate an adventure directory for common authoring mistakes."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from adventure_book.errors import AdventureLoadError
from adventure_book.loader import load_adventure
from adventure_book.settings import EngineSettings, configure_logging, load_settings, save_settings
from tools.softlock import analyze_dead_ends


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate an adventure book directory.")
    parser.add_argument("adventure_dir", help="Directory holding adventure.txt and its pages.")
    parser.add_argument(
        "--settings",
        default=None,
        help="Optional engine settings JSON file.",
    )
    parser.add_argument(
        "--write-settings",
        default=None,
        metavar="PATH",
        help="Write the effective (clamped) settings to PATH, e.g. to start a settings file.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> None:
    args = parse_args(argv[1:])
    adventure_dir = Path(args.adventure_dir).resolve()
    settings = load_settings(args.settings) if args.settings else EngineSettings()
    configure_logging(settings)
    if args.write_settings:
        save_settings(settings, args.write_settings)
        print(f"Wrote settings to {args.write_settings}.")
    try:
        book = load_adventure(adventure_dir, settings=settings)
    except OSError as exc:
        print(f"Failed to read adventure from {adventure_dir}: {exc}")
        sys.exit(1)
    except AdventureLoadError as exc:
        print("Validation failed (path: message):")
        for err in exc.errors:
            print(f" - {err}")
        sys.exit(1)

    warnings = analyze_dead_ends(book)
    if warnings:
        print("Dead-end warnings (path: message):")
        for warning in warnings:
            print(f" - {warning}")

    print(f"Validation passed for {adventure_dir}.")


if __name__ == "__main__":
    main(sys.argv)
