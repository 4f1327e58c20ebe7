from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from playpublish.domain.errors import (
    ArtifactError,
    AuthError,
    PublishStage,
    TransactionError,
    ValidationError,
)
from playpublish.domain.model import (
    ActiveTrack,
    EmptyTrack,
    Release,
    ReleaseNote,
    ReleaseStatus,
    VersionCodeFilter,
)
from playpublish.domain.publishing import (
    PublishRequest,
    ReleaseOrchestrator,
    StatusUpdateRequest,
)
from tests.helpers.publisher import FakeAuthorizer, FakeLister, FakePublisherClient, rejection

if TYPE_CHECKING:
    from pathlib import Path

    from playpublish.domain.model import AuthorizedSession

PACKAGE = "com.example.app"


def _orchestrator(
    client: FakePublisherClient,
    authorizer: FakeAuthorizer | None = None,
    lister: FakeLister | None = None,
) -> tuple[ReleaseOrchestrator, list[AuthorizedSession]]:
    sessions: list[AuthorizedSession] = []

    def client_factory(session: AuthorizedSession) -> FakePublisherClient:
        sessions.append(session)
        return client

    orchestrator = ReleaseOrchestrator(
        authorize=authorizer or FakeAuthorizer(),
        client_factory=client_factory,
        lister=lister or FakeLister(),
    )
    return orchestrator, sessions


def _request(binary: Path, **overrides: object) -> PublishRequest:
    values: dict[str, object] = {
        "package_name": PACKAGE,
        "track": "Production",
        "binaries": (binary,),
    }
    values.update(overrides)
    return PublishRequest(**values)  # type: ignore[arg-type]


def test_publish_keeps_listed_codes_and_commits(
    fake_client: FakePublisherClient, production_track: ActiveTrack, apk_file: Path
) -> None:
    fake_client.track = production_track
    fake_client.version_codes = [1]
    orchestrator, sessions = _orchestrator(fake_client)

    result = orchestrator.publish(
        _request(
            apk_file,
            version_code_filter=VersionCodeFilter.LIST,
            retain_version_codes=(2, 3),
            user_fraction=0.25,
        )
    )

    assert result.release.version_codes == (2, 3, 1)
    assert result.release.status is ReleaseStatus.IN_PROGRESS
    assert result.committed is True
    assert result.track == "production"
    assert result.uploaded_version_codes == (1,)
    assert len(sessions) == 1
    assert fake_client.call_names == [
        "insert_edit",
        "get_track",
        "upload_apk",
        "update_track",
        "commit_edit",
    ]
    assert fake_client.written == [result.release]


def test_every_call_uses_the_single_edit(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    orchestrator, _ = _orchestrator(fake_client)

    orchestrator.publish(_request(apk_file))

    edit_ids = {call[1] for call in fake_client.calls if call[0] != "insert_edit"}
    assert edit_ids == {"edit-1"}
    assert fake_client.call_names.count("insert_edit") == 1


def test_update_failure_skips_commit(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    fake_client.failures["update_track"] = rejection("400 Track update rejected")
    orchestrator, _ = _orchestrator(fake_client)

    with pytest.raises(TransactionError) as excinfo:
        orchestrator.publish(_request(apk_file))

    assert excinfo.value.stage is PublishStage.UPDATE
    assert "commit_edit" not in fake_client.call_names
    assert "delete_edit" not in fake_client.call_names


def test_version_code_already_live_fails_at_upload(
    fake_client: FakePublisherClient, production_track: ActiveTrack, apk_file: Path
) -> None:
    fake_client.track = production_track
    fake_client.version_codes = [3]
    fake_client.live_version_codes = {1, 2, 3}
    orchestrator, _ = _orchestrator(fake_client)

    with pytest.raises(ArtifactError) as excinfo:
        orchestrator.publish(_request(apk_file, version_code_filter=VersionCodeFilter.RETAIN))

    assert excinfo.value.stage is PublishStage.UPLOAD
    assert "already been used" in str(excinfo.value)
    assert "update_track" not in fake_client.call_names
    assert "commit_edit" not in fake_client.call_names


def test_dry_run_discards_instead_of_committing(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    orchestrator, _ = _orchestrator(fake_client)

    result = orchestrator.publish(_request(apk_file, dry_run=True))

    assert result.committed is False
    assert fake_client.call_names[-2:] == ["update_track", "delete_edit"]
    assert "commit_edit" not in fake_client.call_names


def test_commit_flag_is_forwarded(fake_client: FakePublisherClient, apk_file: Path) -> None:
    orchestrator, _ = _orchestrator(fake_client)

    orchestrator.publish(_request(apk_file, changes_not_sent_for_review=True))

    assert fake_client.calls[-1] == ("commit_edit", "edit-1", PACKAGE, True)


def test_authorization_failure_stops_before_any_call(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    authorizer = FakeAuthorizer(error=AuthError("invalid_grant"))
    orchestrator, sessions = _orchestrator(fake_client, authorizer=authorizer)

    with pytest.raises(AuthError) as excinfo:
        orchestrator.publish(_request(apk_file))

    assert excinfo.value.stage is PublishStage.AUTHORIZE
    assert sessions == []
    assert fake_client.calls == []


def test_unknown_retained_code_fails_before_upload(
    fake_client: FakePublisherClient, production_track: ActiveTrack, apk_file: Path
) -> None:
    fake_client.track = production_track
    orchestrator, _ = _orchestrator(fake_client)

    with pytest.raises(ValidationError) as excinfo:
        orchestrator.publish(
            _request(
                apk_file,
                version_code_filter=VersionCodeFilter.LIST,
                retain_version_codes=(99,),
            )
        )

    assert excinfo.value.stage is PublishStage.RESOLVE
    assert fake_client.call_names == ["insert_edit", "get_track"]


def test_open_failure_is_tagged_open(fake_client: FakePublisherClient, apk_file: Path) -> None:
    fake_client.failures["insert_edit"] = rejection("404 Package not found", 404)
    orchestrator, _ = _orchestrator(fake_client)

    with pytest.raises(TransactionError) as excinfo:
        orchestrator.publish(_request(apk_file))

    assert excinfo.value.stage is PublishStage.OPEN
    assert fake_client.call_names == ["insert_edit"]


def test_commit_failure_is_tagged_commit(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    fake_client.failures["commit_edit"] = rejection("409 Edit expired", 409)
    orchestrator, _ = _orchestrator(fake_client)

    with pytest.raises(TransactionError) as excinfo:
        orchestrator.publish(_request(apk_file))

    assert excinfo.value.stage is PublishStage.COMMIT
    assert fake_client.call_names.count("commit_edit") == 1


def test_expansion_files_are_uploaded_after_binaries(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    fake_client.version_codes = [11]
    obb = apk_file.parent / "main.11.com.example.app.obb"
    lister = FakeLister({apk_file.parent: [apk_file, obb]})
    obb.write_bytes(b"obb")
    orchestrator, _ = _orchestrator(fake_client, lister=lister)

    result = orchestrator.publish(_request(apk_file, pick_expansion_files=True))

    assert fake_client.call_names[2:4] == ["upload_apk", "upload_expansion_file"]
    assert result.binaries[0].expansion_file == obb
    assert result.binaries[0].expansion_file_size == fake_client.expansion_file_size


def test_missing_expansion_file_fails_before_expansion_upload(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    orchestrator, _ = _orchestrator(fake_client, lister=FakeLister())

    with pytest.raises(ArtifactError) as excinfo:
        orchestrator.publish(_request(apk_file, pick_expansion_files=True))

    assert excinfo.value.stage is PublishStage.UPLOAD
    assert "upload_expansion_file" not in fake_client.call_names
    assert "commit_edit" not in fake_client.call_names


def test_unlistable_expansion_directory_fails_at_upload(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    def denied(directory: Path) -> list[Path]:
        raise PermissionError(13, "Permission denied", str(directory))

    orchestrator = ReleaseOrchestrator(
        authorize=FakeAuthorizer(), client_factory=lambda _: fake_client, lister=denied
    )

    with pytest.raises(ArtifactError, match="Cannot list") as excinfo:
        orchestrator.publish(_request(apk_file, pick_expansion_files=True))

    assert excinfo.value.stage is PublishStage.UPLOAD
    assert "commit_edit" not in fake_client.call_names


def test_mapping_file_is_attached_to_the_binary(
    fake_client: FakePublisherClient, apk_file: Path
) -> None:
    fake_client.version_codes = [4]
    mapping = apk_file.parent / "mapping.txt"
    mapping.write_text("a -> b:\n")
    orchestrator, _ = _orchestrator(fake_client)

    result = orchestrator.publish(_request(apk_file, mapping_file=mapping))

    assert result.binaries[0].mapping_uploaded is True
    assert ("upload_deobfuscation_file", "edit-1", PACKAGE, 4, mapping) in fake_client.calls


def test_several_binaries_are_published_together(
    fake_client: FakePublisherClient, tmp_path: Path
) -> None:
    first = tmp_path / "arm64.apk"
    second = tmp_path / "x86.apk"
    first.write_bytes(b"a")
    second.write_bytes(b"b")
    fake_client.version_codes = [20, 21]
    fake_client.track = ActiveTrack(name="beta", releases=(Release(version_codes=(10,)),))
    orchestrator, _ = _orchestrator(fake_client)

    result = orchestrator.publish(
        PublishRequest(
            package_name=PACKAGE,
            track="beta",
            binaries=(first, second),
            version_code_filter=VersionCodeFilter.RETAIN,
        )
    )

    assert result.release.version_codes == (10, 20, 21)


@pytest.mark.parametrize(
    "overrides",
    [
        {"package_name": " "},
        {"track": ""},
        {"binaries": ()},
    ],
)
def test_request_validation(apk_file: Path, overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        _request(apk_file, **overrides)


def test_expansion_files_are_rejected_for_bundles(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="APKs"):
        _request(tmp_path / "app.aab", pick_expansion_files=True)


def test_mapping_file_requires_single_binary(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="single binary"):
        _request(
            tmp_path / "a.apk",
            binaries=(tmp_path / "a.apk", tmp_path / "b.apk"),
            mapping_file=tmp_path / "mapping.txt",
        )


@pytest.mark.parametrize(
    "settings",
    [
        {"status": ReleaseStatus.COMPLETED, "user_fraction": 0.5},
        {"status": ReleaseStatus.IN_PROGRESS},
        {"user_fraction": 1.5},
        {"user_fraction": 0.0},
        {"in_app_update_priority": 9},
    ],
)
def test_invalid_release_settings_fail_before_any_storefront_call(
    fake_client: FakePublisherClient, apk_file: Path, settings: dict[str, object]
) -> None:
    authorizer = FakeAuthorizer()
    orchestrator, _ = _orchestrator(fake_client, authorizer=authorizer)

    with pytest.raises(ValidationError, match="Invalid release settings") as excinfo:
        orchestrator.publish(_request(apk_file, **settings))

    assert excinfo.value.stage is None
    assert authorizer.calls == 0
    assert "insert_edit" not in fake_client.call_names
    assert "upload_apk" not in fake_client.call_names


def test_status_update_changes_rollout_of_current_release(
    fake_client: FakePublisherClient,
) -> None:
    notes = (ReleaseNote(language="en-US", text="Fixes"),)
    fake_client.track = ActiveTrack(
        name="production",
        releases=(
            Release(
                version_codes=(5, 6),
                status=ReleaseStatus.IN_PROGRESS,
                user_fraction=0.1,
                release_notes=notes,
                name="2.0.0",
            ),
            Release(version_codes=(4,)),
        ),
    )
    orchestrator, _ = _orchestrator(fake_client)

    result = orchestrator.update_status(
        StatusUpdateRequest(package_name=PACKAGE, track="production", user_fraction=0.5)
    )

    assert result.release == Release(
        version_codes=(5, 6),
        status=ReleaseStatus.IN_PROGRESS,
        user_fraction=0.5,
        release_notes=notes,
        name="2.0.0",
    )
    assert result.binaries == ()
    assert result.committed is True
    assert fake_client.call_names == ["insert_edit", "get_track", "update_track", "commit_edit"]


def test_status_update_completes_rollout(
    fake_client: FakePublisherClient, production_track: ActiveTrack
) -> None:
    fake_client.track = production_track
    orchestrator, _ = _orchestrator(fake_client)

    result = orchestrator.update_status(
        StatusUpdateRequest(
            package_name=PACKAGE, track="production", status=ReleaseStatus.COMPLETED, dry_run=True
        )
    )

    assert result.release.status is ReleaseStatus.COMPLETED
    assert result.release.user_fraction is None
    assert result.release.version_codes == (1, 2, 3)
    assert fake_client.call_names[-1] == "delete_edit"


def test_status_update_on_empty_track_fails_before_update(
    fake_client: FakePublisherClient,
) -> None:
    fake_client.track = EmptyTrack(name="beta")
    orchestrator, _ = _orchestrator(fake_client)

    with pytest.raises(ValidationError, match="no release") as excinfo:
        orchestrator.update_status(
            StatusUpdateRequest(
                package_name=PACKAGE, track="beta", status=ReleaseStatus.HALTED
            )
        )

    assert excinfo.value.stage is PublishStage.RESOLVE
    assert "update_track" not in fake_client.call_names
    assert "commit_edit" not in fake_client.call_names


@pytest.mark.parametrize(
    "settings",
    [
        {},
        {"status": ReleaseStatus.HALTED, "user_fraction": 0.3},
        {"user_fraction": 2.0},
    ],
)
def test_status_update_request_validation(settings: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        StatusUpdateRequest(
            package_name=PACKAGE, track="beta", **settings  # type: ignore[arg-type]
        )
