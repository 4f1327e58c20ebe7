"""Ports for local file discovery."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


@runtime_checkable
class DirectoryLister(Protocol):
    """List the regular files of a directory (empty when it does not exist)."""

    def __call__(self, directory: Path) -> Sequence[Path]: ...
