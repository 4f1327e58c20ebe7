"""Upload primary binaries and the files attached to their version codes."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from playpublish.domain.errors import ArtifactError
from playpublish.domain.model import BinaryKind, ExpansionFileType, binary_kind_for
from playpublish.domain.ports.publishing import PublisherAPIError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from playpublish.domain.model import Edit
    from playpublish.domain.ports.filesystem import DirectoryLister

    from .session import EditSessionManager

log = getLogger(__name__)

MAX_EXPANSION_FILE_BYTES = 2 * 1024**3
OBB_SUFFIX = ".obb"
OBB_DIRECTORY = "obb"

_EXPANSION_NAME = re.compile(
    r"^(?P<type>main|patch)\.(?P<version>\d+)\.(?P<package>.+)\.obb$",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class ExpansionCandidate:
    """A file named ``<type>.<versionCode>.<packageName>.obb``."""

    path: Path
    expansion_type: ExpansionFileType
    version_code: int
    package_name: str

    def matches(
        self, package_name: str, version_code: int, expansion_type: ExpansionFileType
    ) -> bool:
        return (
            self.package_name == package_name
            and self.version_code == version_code
            and self.expansion_type is expansion_type
        )


def parse_expansion_name(path: Path) -> ExpansionCandidate | None:
    if not path.name.lower().endswith(OBB_SUFFIX):
        return None
    match = _EXPANSION_NAME.match(path.name)
    if match is None:
        return None
    return ExpansionCandidate(
        path=path,
        expansion_type=ExpansionFileType(match["type"].lower()),
        version_code=int(match["version"]),
        package_name=match["package"],
    )


def default_expansion_dirs(binary_path: Path) -> tuple[Path, ...]:
    """Directories searched for a binary's expansion file: its own, then ``../obb``."""

    binary_dir = binary_path.parent
    return (binary_dir, binary_dir.parent / OBB_DIRECTORY)


def discover_expansion_file(
    search_dirs: Iterable[Path],
    *,
    package_name: str,
    version_code: int,
    lister: DirectoryLister,
    expansion_type: ExpansionFileType = ExpansionFileType.MAIN,
) -> Path:
    """Select the single expansion file for ``version_code`` or fail.

    Zero or several matches are configuration errors; no guess is made.
    """

    directories = tuple(dict.fromkeys(search_dirs))
    matches: list[Path] = []
    for directory in directories:
        try:
            listing = lister(directory)
        except OSError as exc:
            raise ArtifactError(f"Cannot list {directory}: {exc}") from exc
        for path in listing:
            candidate = parse_expansion_name(path)
            if candidate is not None and candidate.matches(
                package_name, version_code, expansion_type
            ):
                matches.append(path)

    expected = f"{expansion_type}.{version_code}.{package_name}{OBB_SUFFIX}"
    searched = ", ".join(str(directory) for directory in directories)
    if not matches:
        raise ArtifactError(f"No expansion file named {expected} found in: {searched}")
    if len(matches) > 1:
        found = ", ".join(str(path) for path in matches)
        raise ArtifactError(f"Several expansion files match {expected}: {found}")
    return matches[0]


def _readable_size(path: Path) -> int:
    try:
        if not path.is_file():
            raise ArtifactError(f"Not a file: {path}")
        if not os.access(path, os.R_OK):
            raise ArtifactError(f"File is not readable: {path}")
        return path.stat().st_size
    except OSError as exc:
        raise ArtifactError(f"Cannot read {path}: {exc}") from exc


class ArtifactUploader:
    """Upload artifacts into the live edit and remember the version codes they produced."""

    def __init__(self, session: EditSessionManager, *, lister: DirectoryLister) -> None:
        self._session = session
        self._lister = lister
        self._uploaded: dict[int, Path] = {}

    @property
    def version_codes(self) -> tuple[int, ...]:
        return tuple(self._uploaded)

    def upload_binary(self, edit: Edit, package_name: str, path: Path) -> int:
        size = _readable_size(path)
        kind = binary_kind_for(path.name)
        log.info("Uploading %s %s (%d bytes)", kind, path, size)
        try:
            with self._session.mutation(edit) as client:
                if kind is BinaryKind.BUNDLE:
                    version_code = client.upload_bundle(edit, package_name, path)
                else:
                    version_code = client.upload_apk(edit, package_name, path)
        except (PublisherAPIError, OSError) as exc:
            raise ArtifactError(f"Storefront rejected {path.name}: {exc}") from exc

        if version_code in self._uploaded:
            raise ArtifactError(
                f"{path.name} has version code {version_code}, "
                f"already produced by {self._uploaded[version_code].name}"
            )
        self._uploaded[version_code] = path
        log.info("%s uploaded as version code %d", path.name, version_code)
        return version_code

    def upload_auxiliary(
        self,
        edit: Edit,
        package_name: str,
        version_code: int,
        path: Path,
        *,
        expansion_type: ExpansionFileType = ExpansionFileType.MAIN,
    ) -> int:
        self._require_uploaded(version_code, path)
        size = _readable_size(path)
        if size > MAX_EXPANSION_FILE_BYTES:
            raise ArtifactError(
                f"{path.name} is {size} bytes; expansion files are limited to "
                f"{MAX_EXPANSION_FILE_BYTES} bytes"
            )
        log.info(
            "Uploading %s expansion file %s for version code %d",
            expansion_type,
            path,
            version_code,
        )
        try:
            with self._session.mutation(edit) as client:
                file_size = client.upload_expansion_file(
                    edit, package_name, version_code, expansion_type, path
                )
        except (PublisherAPIError, OSError) as exc:
            raise ArtifactError(f"Storefront rejected expansion file {path.name}: {exc}") from exc
        log.info("Expansion file %s attached to version code %d", path.name, version_code)
        return file_size

    def upload_mapping(self, edit: Edit, package_name: str, version_code: int, path: Path) -> None:
        self._require_uploaded(version_code, path)
        _readable_size(path)
        log.info("Uploading deobfuscation file %s for version code %d", path, version_code)
        try:
            with self._session.mutation(edit) as client:
                client.upload_deobfuscation_file(edit, package_name, version_code, path)
        except (PublisherAPIError, OSError) as exc:
            raise ArtifactError(f"Storefront rejected mapping file {path.name}: {exc}") from exc

    def discover_auxiliary(
        self,
        binary_path: Path,
        package_name: str,
        version_code: int,
        *,
        search_dir: Path | None = None,
        expansion_type: ExpansionFileType = ExpansionFileType.MAIN,
    ) -> Path:
        search_dirs = (
            (search_dir,) if search_dir is not None else default_expansion_dirs(binary_path)
        )
        return discover_expansion_file(
            search_dirs,
            package_name=package_name,
            version_code=version_code,
            lister=self._lister,
            expansion_type=expansion_type,
        )

    def _require_uploaded(self, version_code: int, path: Path) -> None:
        if version_code not in self._uploaded:
            raise ArtifactError(
                f"Cannot attach {path.name}: version code {version_code} "
                "was not uploaded in this run"
            )
