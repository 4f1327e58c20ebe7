"""Ports for talking to the storefront publishing API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from playpublish.domain.model import (
        AuthorizedSession,
        Edit,
        ExpansionFileType,
        Release,
        TrackState,
    )


class PublisherAPIError(RuntimeError):
    """Raised by publisher adapters when the storefront rejects a request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


@runtime_checkable
class PublisherClient(Protocol):
    """Edit, track and upload endpoints the publish run depends on.

    Every method is bound to the authorized session the client was built for.
    """

    def insert_edit(self, package_name: str) -> Edit: ...

    def get_track(self, edit: Edit, package_name: str, track: str) -> TrackState: ...

    def update_track(
        self, edit: Edit, package_name: str, track: str, release: Release
    ) -> TrackState: ...

    def upload_apk(self, edit: Edit, package_name: str, path: Path) -> int: ...

    def upload_bundle(self, edit: Edit, package_name: str, path: Path) -> int: ...

    def upload_expansion_file(
        self,
        edit: Edit,
        package_name: str,
        version_code: int,
        expansion_type: ExpansionFileType,
        path: Path,
    ) -> int: ...

    def upload_deobfuscation_file(
        self, edit: Edit, package_name: str, version_code: int, path: Path
    ) -> None: ...

    def commit_edit(
        self, edit: Edit, package_name: str, *, changes_not_sent_for_review: bool = False
    ) -> None: ...

    def delete_edit(self, edit: Edit, package_name: str) -> None: ...


@runtime_checkable
class Authorizer(Protocol):
    """Exchange pipeline credentials for an authorized session."""

    def __call__(self) -> AuthorizedSession: ...
