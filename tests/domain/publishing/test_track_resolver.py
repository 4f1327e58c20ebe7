from __future__ import annotations

import pytest

from playpublish.domain.errors import PublishStage, ValidationError
from playpublish.domain.model import (
    ActiveTrack,
    EmptyTrack,
    Release,
    ReleaseNote,
    ReleaseStatus,
    VersionCodeFilter,
)
from playpublish.domain.publishing import (
    build_release,
    resolve_version_codes,
    validate_retain_list,
)
from playpublish.domain.publishing.track_resolver import current_version_codes, track_history


def _track(*releases: tuple[int, ...]) -> ActiveTrack:
    return ActiveTrack(
        name="production",
        releases=tuple(Release(version_codes=codes) for codes in releases),
    )


def test_all_policy_publishes_only_uploaded_codes() -> None:
    resolved = resolve_version_codes([4, 5], _track((1, 2, 3)), VersionCodeFilter.ALL)

    assert resolved == (4, 5)


def test_retain_policy_keeps_current_release_then_uploaded() -> None:
    resolved = resolve_version_codes([4], _track((1, 2, 3)), VersionCodeFilter.RETAIN)

    assert resolved == (1, 2, 3, 4)
    assert set(resolved) >= {1, 2, 3}


def test_list_policy_puts_retained_codes_first_in_caller_order() -> None:
    resolved = resolve_version_codes(
        [1], _track((1, 2, 3)), VersionCodeFilter.LIST, retain=[3, 2]
    )

    assert resolved == (3, 2, 1)


def test_list_policy_orders_retained_before_uploaded() -> None:
    resolved = resolve_version_codes(
        [1], _track((1, 2, 3)), VersionCodeFilter.LIST, retain=[2, 3]
    )

    assert resolved == (2, 3, 1)


def test_list_policy_accepts_codes_from_older_releases() -> None:
    track = _track((5,), (1, 2))

    resolved = resolve_version_codes([6], track, VersionCodeFilter.LIST, retain=[2])

    assert resolved == (2, 6)


def test_list_policy_rejects_codes_outside_track_history() -> None:
    with pytest.raises(ValidationError) as excinfo:
        resolve_version_codes([4], _track((1, 2, 3)), VersionCodeFilter.LIST, retain=[2, 9])

    assert excinfo.value.stage is PublishStage.RESOLVE
    assert "[9]" in str(excinfo.value)


def test_list_policy_rejects_retain_codes_on_empty_track() -> None:
    with pytest.raises(ValidationError):
        resolve_version_codes([4], EmptyTrack(name="beta"), VersionCodeFilter.LIST, retain=[1])


@pytest.mark.parametrize("policy", list(VersionCodeFilter))
def test_every_policy_publishes_uploaded_codes_on_empty_track(
    policy: VersionCodeFilter,
) -> None:
    resolved = resolve_version_codes([7, 8], EmptyTrack(name="internal"), policy)

    assert resolved == (7, 8)


@pytest.mark.parametrize("policy", list(VersionCodeFilter))
def test_every_policy_publishes_uploaded_codes_when_current_release_is_empty(
    policy: VersionCodeFilter,
) -> None:
    # A halted draft with no codes sits on top of an older release.
    track = _track((), (1, 2))
    retain = [1] if policy is VersionCodeFilter.LIST else []

    resolved = resolve_version_codes([9], track, policy, retain=retain)

    assert resolved == (9,)


def test_result_is_deduplicated_with_retained_codes_first() -> None:
    resolved = resolve_version_codes([3, 4], _track((1, 2, 3)), VersionCodeFilter.RETAIN)

    assert resolved == (1, 2, 3, 4)
    assert len(resolved) == len(set(resolved))


def test_all_policy_result_size_matches_uploaded_codes() -> None:
    uploaded = [10, 11, 12]

    resolved = resolve_version_codes(uploaded, _track((1, 2)), VersionCodeFilter.ALL)

    assert len(resolved) == len(uploaded)


def test_resolving_without_uploads_is_rejected() -> None:
    with pytest.raises(ValidationError):
        resolve_version_codes([], _track((1,)), VersionCodeFilter.RETAIN)


def test_retain_list_is_ignored_outside_list_policy(caplog: pytest.LogCaptureFixture) -> None:
    validate_retain_list(_track((1,)), VersionCodeFilter.RETAIN, [42])

    assert "Ignoring retain list" in caplog.text


def test_history_and_current_codes_of_track_variants() -> None:
    track = _track((3, 4), (1, 3))

    assert track_history(track) == (3, 4, 1)
    assert current_version_codes(track) == (3, 4)
    assert track_history(EmptyTrack(name="alpha")) == ()
    assert current_version_codes(EmptyTrack(name="alpha")) == ()


def test_build_release_derives_staged_rollout_from_fraction() -> None:
    release = build_release([5], user_fraction=0.2)

    assert release.status is ReleaseStatus.IN_PROGRESS
    assert release.user_fraction == 0.2


def test_build_release_defaults_to_completed() -> None:
    release = build_release(
        [5, 6],
        release_notes=[ReleaseNote(language="en-US", text="Bug fixes")],
        name="1.2.0",
        in_app_update_priority=3,
    )

    assert release.status is ReleaseStatus.COMPLETED
    assert release.user_fraction is None
    assert release.version_codes == (5, 6)
    assert release.name == "1.2.0"
    assert release.in_app_update_priority == 3


def test_build_release_treats_full_fraction_as_completed() -> None:
    release = build_release([5], user_fraction=1.0)

    assert release.status is ReleaseStatus.COMPLETED
    assert release.user_fraction is None


def test_build_release_rejects_fraction_on_explicit_draft() -> None:
    with pytest.raises(ValidationError) as excinfo:
        build_release([5], status=ReleaseStatus.DRAFT, user_fraction=0.5)

    assert excinfo.value.stage is PublishStage.RESOLVE


def test_build_release_requires_version_codes() -> None:
    with pytest.raises(ValidationError):
        build_release([])
