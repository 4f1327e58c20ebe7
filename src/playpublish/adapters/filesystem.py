"""Local file discovery: binary globs and directory listings."""

from __future__ import annotations

import glob
from pathlib import Path
from typing import TYPE_CHECKING

from playpublish.config.errors import ConfigurationError
from playpublish.domain.model import ReleaseNote

if TYPE_CHECKING:
    from collections.abc import Iterable

MAX_RELEASE_NOTES_CHARS = 500


def list_directory(directory: Path) -> list[Path]:
    """Return the regular files directly inside ``directory``, sorted by name."""

    if not directory.is_dir():
        return []
    files = (entry for entry in directory.iterdir() if entry.is_file())
    return sorted(files, key=lambda path: path.name)


def expand_patterns(patterns: Iterable[str]) -> tuple[Path, ...]:
    """Expand glob patterns into files, keeping the order the patterns were given.

    Every pattern must match at least one file; the same file matched twice is
    kept once.
    """

    resolved: dict[Path, None] = {}
    for pattern in patterns:
        expanded = Path(pattern).expanduser()
        candidates = glob.glob(str(expanded), recursive=True)
        matches = sorted(Path(match) for match in candidates if Path(match).is_file())
        if not matches:
            raise ConfigurationError(f"No file matches {pattern}")
        for match in matches:
            resolved.setdefault(match, None)
    return tuple(resolved)


def read_release_notes(path: Path, language: str) -> ReleaseNote:
    """Load one language's release notes from a text file."""

    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read release notes {path}: {exc}") from exc
    if not text:
        raise ConfigurationError(f"Release notes file {path} is empty")
    if len(text) > MAX_RELEASE_NOTES_CHARS:
        raise ConfigurationError(
            f"Release notes in {path} have {len(text)} characters; "
            f"the store accepts at most {MAX_RELEASE_NOTES_CHARS}"
        )
    return ReleaseNote(language=language, text=text)
