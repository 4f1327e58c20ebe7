"""Decide which version codes a track carries after a new upload.

The resolver never talks to the storefront. It turns the track state read at
the start of the run, the version codes uploaded in this run and the caller's
filter policy into the release that the edit session then writes.

Policies:

``all``
    Only the uploaded codes; everything previously live is dropped.
``list``
    The caller's retain list (each code must appear in the track history),
    followed by the uploaded codes.
``retain``
    Every code of the current release, followed by the uploaded codes.

When the current release carries no version codes, every policy publishes the
uploaded codes alone.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from playpublish.domain.errors import PublishStage, ValidationError
from playpublish.domain.model import (
    ActiveTrack,
    Release,
    ReleaseStatus,
    VersionCodeFilter,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from playpublish.domain.model import ReleaseNote, TrackState

log = getLogger(__name__)


def _unique(codes: Iterable[int]) -> tuple[int, ...]:
    return tuple(dict.fromkeys(codes))


def track_history(state: TrackState) -> tuple[int, ...]:
    if isinstance(state, ActiveTrack):
        return state.history
    return ()


def current_version_codes(state: TrackState) -> tuple[int, ...]:
    if isinstance(state, ActiveTrack):
        return state.current.version_codes
    return ()


def validate_retain_list(
    state: TrackState,
    policy: VersionCodeFilter,
    retain: Sequence[int] = (),
) -> None:
    """Reject retain-list codes the track has never carried.

    Only the ``list`` policy consults the retain list.
    """

    if policy is not VersionCodeFilter.LIST:
        if retain:
            log.warning("Ignoring retain list %s for policy %s", list(retain), policy)
        return

    history = set(track_history(state))
    unknown = [code for code in retain if code not in history]
    if unknown:
        raise ValidationError(
            f"Version codes {unknown} are not part of track '{state.name}' "
            f"(known: {sorted(history)})",
            stage=PublishStage.RESOLVE,
        )


def resolve_version_codes(
    uploaded: Sequence[int],
    state: TrackState,
    policy: VersionCodeFilter,
    retain: Sequence[int] = (),
) -> tuple[int, ...]:
    """Return retained codes first, then uploaded codes, deduplicated by value."""

    if not uploaded:
        raise ValidationError("No version codes were uploaded", stage=PublishStage.RESOLVE)
    validate_retain_list(state, policy, retain)

    current = current_version_codes(state)
    if not current or policy is VersionCodeFilter.ALL:
        retained: tuple[int, ...] = ()
    elif policy is VersionCodeFilter.LIST:
        retained = tuple(retain)
    else:
        retained = current

    resolved = _unique((*retained, *uploaded))
    log.info(
        "Resolved version codes for track %s with policy %s: %s -> %s",
        state.name,
        policy,
        list(current),
        list(resolved),
    )
    return resolved


def build_release(
    version_codes: Sequence[int],
    *,
    status: ReleaseStatus | None = None,
    user_fraction: float | None = None,
    release_notes: Sequence[ReleaseNote] = (),
    name: str | None = None,
    in_app_update_priority: int | None = None,
) -> Release:
    """Assemble the release to write, deriving the status from the rollout fraction.

    Without an explicit status a fraction below one means a staged rollout
    (``inProgress``); a full fraction or none means ``completed``.
    """

    if status is None:
        staged = user_fraction is not None and user_fraction < 1.0
        status = ReleaseStatus.IN_PROGRESS if staged else ReleaseStatus.COMPLETED
    if status is not ReleaseStatus.IN_PROGRESS and user_fraction == 1.0:
        user_fraction = None
    try:
        release = Release(
            version_codes=tuple(version_codes),
            status=status,
            user_fraction=user_fraction,
            release_notes=tuple(release_notes),
            name=name,
            in_app_update_priority=in_app_update_priority,
        )
    except ValidationError as exc:
        exc.at_stage(PublishStage.RESOLVE)
        raise
    return release.require_version_codes()
