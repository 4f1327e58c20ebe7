"""Translate Android Publisher payloads into domain values and back."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger

from playpublish.domain.model import (
    Edit,
    Release,
    ReleaseNote,
    ReleaseStatus,
    TrackState,
    track_state,
)

from .schema import AppEditPayload, LocalizedTextPayload, TrackPayload, TrackReleasePayload

log = getLogger(__name__)


def parse_edit(payload: AppEditPayload) -> Edit:
    expiry = (
        datetime.fromtimestamp(payload.expiry_time_seconds, tz=UTC)
        if payload.expiry_time_seconds is not None
        else None
    )
    return Edit(id=payload.id, expiry_time=expiry)


def _parse_status(value: str | None) -> ReleaseStatus:
    try:
        return ReleaseStatus(value)
    except ValueError:
        # statusUnspecified and unknown future values carry no rollout semantics
        return ReleaseStatus.DRAFT


def parse_release(payload: TrackReleasePayload) -> Release:
    """Read a release as stored, normalising fields that break the write invariants.

    Halted releases keep their last rollout fraction on the storefront; the
    fraction only means something for ``inProgress`` releases, so it is dropped
    for every other status.
    """

    status = _parse_status(payload.status)
    fraction = payload.user_fraction if status is ReleaseStatus.IN_PROGRESS else None
    if status is ReleaseStatus.IN_PROGRESS and fraction is None:
        log.warning("Release %s is inProgress without a user fraction", payload.name)
        status = ReleaseStatus.COMPLETED
    return Release(
        version_codes=tuple(dict.fromkeys(payload.version_codes)),
        status=status,
        user_fraction=fraction,
        release_notes=tuple(
            ReleaseNote(language=note.language, text=note.text)
            for note in payload.release_notes
        ),
        name=payload.name,
        in_app_update_priority=payload.in_app_update_priority,
    )


def parse_track(payload: TrackPayload) -> TrackState:
    return track_state(payload.track, (parse_release(item) for item in payload.releases))


def release_to_payload(release: Release) -> TrackReleasePayload:
    return TrackReleasePayload(
        name=release.name,
        version_codes=list(release.version_codes),
        release_notes=[
            LocalizedTextPayload(language=note.language, text=note.text)
            for note in release.release_notes
        ],
        status=str(release.status),
        user_fraction=release.user_fraction,
        in_app_update_priority=release.in_app_update_priority,
    )


def track_update_body(track: str, release: Release) -> dict[str, object]:
    """Body of ``edits.tracks.update``: the track holds exactly the new release."""

    payload = TrackPayload(track=track, releases=[release_to_payload(release)])
    return payload.model_dump(mode="json", by_alias=True, exclude_defaults=True)
