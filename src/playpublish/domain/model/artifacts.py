"""Artifacts uploaded during a run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import BinaryKind, binary_kind_for

if TYPE_CHECKING:
    from pathlib import Path


@dataclass(frozen=True, slots=True)
class UploadedBinary:
    """Primary binary accepted by the storefront, plus what was attached to it."""

    path: Path
    kind: BinaryKind
    version_code: int
    expansion_file: Path | None = None
    expansion_file_size: int | None = None
    mapping_uploaded: bool = False

    @classmethod
    def for_path(cls, path: Path, version_code: int) -> UploadedBinary:
        return cls(path=path, kind=binary_kind_for(path.name), version_code=version_code)
