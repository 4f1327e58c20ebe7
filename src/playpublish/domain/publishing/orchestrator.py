"""End-to-end publish run: authorize, open, upload, resolve, update, commit."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from playpublish.domain.errors import PublishError, PublishStage, ValidationError
from playpublish.domain.model import (
    ActiveTrack,
    BinaryKind,
    ReleaseStatus,
    UploadedBinary,
    VersionCodeFilter,
    binary_kind_for,
    normalize_track_name,
)

from .session import EditSessionManager
from .track_resolver import build_release, resolve_version_codes, validate_retain_list
from .uploader import ArtifactUploader

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path

    from playpublish.domain.model import AuthorizedSession, Edit, Release, ReleaseNote
    from playpublish.domain.ports import Authorizer, DirectoryLister, PublisherClient

log = getLogger(__name__)

# Stands in for the real version codes while release settings are checked.
_PLACEHOLDER_VERSION_CODE = 1


def _normalized_track(track: str) -> str:
    try:
        return normalize_track_name(track)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _check_release_settings(
    *,
    status: ReleaseStatus | None,
    user_fraction: float | None,
    release_notes: Sequence[ReleaseNote] = (),
    name: str | None = None,
    in_app_update_priority: int | None = None,
) -> None:
    """Reject status, rollout and priority combinations no release can carry."""

    try:
        build_release(
            (_PLACEHOLDER_VERSION_CODE,),
            status=status,
            user_fraction=user_fraction,
            release_notes=release_notes,
            name=name,
            in_app_update_priority=in_app_update_priority,
        )
    except ValidationError as exc:
        raise ValidationError(f"Invalid release settings: {exc}") from exc


@dataclass(frozen=True, slots=True)
class PublishRequest:
    """Validated configuration of one publish run."""

    package_name: str
    track: str
    binaries: tuple[Path, ...]
    version_code_filter: VersionCodeFilter = VersionCodeFilter.ALL
    retain_version_codes: tuple[int, ...] = ()
    status: ReleaseStatus | None = None
    user_fraction: float | None = None
    release_notes: tuple[ReleaseNote, ...] = ()
    release_name: str | None = None
    in_app_update_priority: int | None = None
    pick_expansion_files: bool = False
    expansion_dir: Path | None = None
    mapping_file: Path | None = None
    changes_not_sent_for_review: bool = False
    dry_run: bool = False

    def __post_init__(self) -> None:
        if not self.package_name.strip():
            raise ValidationError("Package name must not be blank")
        object.__setattr__(self, "track", _normalized_track(self.track))
        if not self.binaries:
            raise ValidationError("At least one binary is required")
        if self.mapping_file is not None and len(self.binaries) != 1:
            raise ValidationError("A mapping file can only accompany a single binary")
        if self.pick_expansion_files and any(
            binary_kind_for(path.name) is BinaryKind.BUNDLE for path in self.binaries
        ):
            raise ValidationError("Expansion files can only be attached to APKs")
        _check_release_settings(
            status=self.status,
            user_fraction=self.user_fraction,
            release_notes=self.release_notes,
            name=self.release_name,
            in_app_update_priority=self.in_app_update_priority,
        )


@dataclass(frozen=True, slots=True)
class StatusUpdateRequest:
    """Change the status or rollout of the release already on a track, without uploads."""

    package_name: str
    track: str
    status: ReleaseStatus | None = None
    user_fraction: float | None = None
    release_notes: tuple[ReleaseNote, ...] = ()
    changes_not_sent_for_review: bool = False
    dry_run: bool = False

    def __post_init__(self) -> None:
        if not self.package_name.strip():
            raise ValidationError("Package name must not be blank")
        object.__setattr__(self, "track", _normalized_track(self.track))
        if self.status is None and self.user_fraction is None:
            raise ValidationError("A status update needs a status or a user fraction")
        _check_release_settings(
            status=self.status,
            user_fraction=self.user_fraction,
            release_notes=self.release_notes,
        )


@dataclass(frozen=True, slots=True)
class PublishResult:
    edit_id: str
    track: str
    release: Release
    binaries: tuple[UploadedBinary, ...] = field(default_factory=tuple)
    committed: bool = False

    @property
    def uploaded_version_codes(self) -> tuple[int, ...]:
        return tuple(binary.version_code for binary in self.binaries)


@contextmanager
def _stage(stage: PublishStage) -> Iterator[None]:
    try:
        yield
    except PublishError as exc:
        exc.at_stage(stage)
        raise


@dataclass(slots=True)
class ReleaseOrchestrator:
    """Sequence one publish run.

    Any failure stops the run and is re-raised tagged with the stage that
    failed. Nothing is reverted: an edit that is never committed has no
    visible effect on the store.
    """

    authorize: Authorizer
    client_factory: Callable[[AuthorizedSession], PublisherClient]
    lister: DirectoryLister

    def publish(self, request: PublishRequest) -> PublishResult:
        log.info(
            "Publishing %d binaries of %s to track %s (policy=%s, dry_run=%s)",
            len(request.binaries),
            request.package_name,
            request.track,
            request.version_code_filter,
            request.dry_run,
        )
        try:
            return self._run(request)
        except PublishError as exc:
            log.error("Publish failed during %s: %s", exc.stage or "setup", exc)  # noqa: TRY400
            raise

    def update_status(self, request: StatusUpdateRequest) -> PublishResult:
        log.info(
            "Updating release on track %s of %s (status=%s, fraction=%s, dry_run=%s)",
            request.track,
            request.package_name,
            request.status,
            request.user_fraction,
            request.dry_run,
        )
        try:
            return self._run_status_update(request)
        except PublishError as exc:
            log.error(  # noqa: TRY400
                "Status update failed during %s: %s", exc.stage or "setup", exc
            )
            raise

    def _open(self, package: str) -> tuple[EditSessionManager, Edit]:
        with _stage(PublishStage.AUTHORIZE):
            session = self.authorize()
        log.info("Authorized as %s", session.principal)

        edits = EditSessionManager(self.client_factory(session))
        with _stage(PublishStage.OPEN):
            edit = edits.open(package)
        return edits, edit

    def _run(self, request: PublishRequest) -> PublishResult:
        package = request.package_name
        edits, edit = self._open(package)
        uploader = ArtifactUploader(edits, lister=self.lister)

        with _stage(PublishStage.RESOLVE):
            state = edits.get_track(edit, package, request.track)
            validate_retain_list(
                state, request.version_code_filter, request.retain_version_codes
            )

        with _stage(PublishStage.UPLOAD):
            binaries = self._upload(uploader, edit, request)

        with _stage(PublishStage.RESOLVE):
            version_codes = resolve_version_codes(
                uploader.version_codes,
                state,
                request.version_code_filter,
                request.retain_version_codes,
            )
            release = build_release(
                version_codes,
                status=request.status,
                user_fraction=request.user_fraction,
                release_notes=request.release_notes,
                name=request.release_name,
                in_app_update_priority=request.in_app_update_priority,
            )

        with _stage(PublishStage.UPDATE):
            edits.update_track(edit, package, request.track, release)

        self._finish(
            edits,
            edit,
            package,
            dry_run=request.dry_run,
            changes_not_sent_for_review=request.changes_not_sent_for_review,
        )
        return PublishResult(
            edit_id=edit.id,
            track=request.track,
            release=release,
            binaries=binaries,
            committed=not request.dry_run,
        )

    def _run_status_update(self, request: StatusUpdateRequest) -> PublishResult:
        package = request.package_name
        edits, edit = self._open(package)

        with _stage(PublishStage.RESOLVE):
            state = edits.get_track(edit, package, request.track)
            if not isinstance(state, ActiveTrack) or state.current.is_empty:
                raise ValidationError(
                    f"Track '{request.track}' has no release with version codes to update"
                )
            current = state.current
            release = build_release(
                current.version_codes,
                status=request.status,
                user_fraction=request.user_fraction,
                release_notes=request.release_notes or current.release_notes,
                name=current.name,
                in_app_update_priority=current.in_app_update_priority,
            )

        with _stage(PublishStage.UPDATE):
            edits.update_track(edit, package, request.track, release)

        self._finish(
            edits,
            edit,
            package,
            dry_run=request.dry_run,
            changes_not_sent_for_review=request.changes_not_sent_for_review,
        )
        return PublishResult(
            edit_id=edit.id,
            track=request.track,
            release=release,
            committed=not request.dry_run,
        )

    def _finish(
        self,
        edits: EditSessionManager,
        edit: Edit,
        package: str,
        *,
        dry_run: bool,
        changes_not_sent_for_review: bool,
    ) -> None:
        if dry_run:
            with _stage(PublishStage.ABORT):
                edits.abort(edit, package)
            log.info("Dry run: edit %s discarded, nothing was published", edit.id)
            return
        with _stage(PublishStage.COMMIT):
            edits.commit(
                edit,
                package,
                changes_not_sent_for_review=changes_not_sent_for_review,
            )

    def _upload(
        self,
        uploader: ArtifactUploader,
        edit: Edit,
        request: PublishRequest,
    ) -> tuple[UploadedBinary, ...]:
        package = request.package_name
        uploaded = [
            UploadedBinary.for_path(path, uploader.upload_binary(edit, package, path))
            for path in request.binaries
        ]

        if request.pick_expansion_files:
            # Every expansion file is located before the first one is sent.
            expansion_files = [
                uploader.discover_auxiliary(
                    binary.path,
                    package,
                    binary.version_code,
                    search_dir=request.expansion_dir,
                )
                for binary in uploaded
            ]
            for index, (binary, expansion_file) in enumerate(
                zip(uploaded, expansion_files, strict=True)
            ):
                size = uploader.upload_auxiliary(
                    edit, package, binary.version_code, expansion_file
                )
                uploaded[index] = replace(
                    binary, expansion_file=expansion_file, expansion_file_size=size
                )

        if request.mapping_file is not None:
            binary = uploaded[0]
            uploader.upload_mapping(edit, package, binary.version_code, request.mapping_file)
            uploaded[0] = replace(binary, mapping_uploaded=True)

        return tuple(uploaded)
