"""Releases, tracks and the edit handle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from playpublish.domain.errors import ValidationError

from .enums import ReleaseStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

MAX_IN_APP_UPDATE_PRIORITY = 5


@dataclass(frozen=True, slots=True)
class Edit:
    """Storefront transaction handle scoping every mutation of one run."""

    id: str
    expiry_time: datetime | None = None


@dataclass(frozen=True, slots=True)
class ReleaseNote:
    language: str
    text: str

    def __post_init__(self) -> None:
        if not self.language.strip():
            raise ValidationError("Release notes need a language code")


@dataclass(frozen=True, slots=True)
class Release:
    """Value written to (or read from) a track.

    ``user_fraction`` is present exactly when the release is ``inProgress``.
    A release read from the storefront may carry no version codes; one that is
    written must carry at least one (see ``require_version_codes``).
    """

    version_codes: tuple[int, ...] = ()
    status: ReleaseStatus = ReleaseStatus.COMPLETED
    user_fraction: float | None = None
    release_notes: tuple[ReleaseNote, ...] = ()
    name: str | None = None
    in_app_update_priority: int | None = None

    def __post_init__(self) -> None:
        if len(set(self.version_codes)) != len(self.version_codes):
            raise ValidationError(f"Duplicate version codes in release: {self.version_codes}")
        if any(code <= 0 for code in self.version_codes):
            raise ValidationError(f"Version codes must be positive: {self.version_codes}")
        if self.status is ReleaseStatus.IN_PROGRESS:
            if self.user_fraction is None:
                raise ValidationError("An inProgress release requires a user fraction")
            if not 0.0 < self.user_fraction <= 1.0:
                raise ValidationError(
                    f"User fraction must be within (0, 1], got {self.user_fraction}"
                )
        elif self.user_fraction is not None:
            raise ValidationError(
                f"User fraction is only allowed for inProgress releases, not {self.status}"
            )
        priority = self.in_app_update_priority
        if priority is not None and not 0 <= priority <= MAX_IN_APP_UPDATE_PRIORITY:
            raise ValidationError(
                f"In-app update priority must be within 0..{MAX_IN_APP_UPDATE_PRIORITY}"
            )

    @property
    def is_empty(self) -> bool:
        return not self.version_codes

    def require_version_codes(self) -> Release:
        if self.is_empty:
            raise ValidationError("A release must contain at least one version code")
        return self


@dataclass(frozen=True, slots=True)
class EmptyTrack:
    """Track without any release carrying version codes."""

    name: str


@dataclass(frozen=True, slots=True)
class ActiveTrack:
    """Track with at least one release that carries version codes."""

    name: str
    releases: tuple[Release, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.releases:
            raise ValueError("ActiveTrack requires at least one release")

    @property
    def current(self) -> Release:
        """Most recent release; the storefront lists it first."""

        return self.releases[0]

    @property
    def history(self) -> tuple[int, ...]:
        """Every version code on any release of the track, first-seen order."""

        return _unique(code for release in self.releases for code in release.version_codes)


type TrackState = EmptyTrack | ActiveTrack


def track_state(name: str, releases: Iterable[Release]) -> TrackState:
    collected = tuple(releases)
    if not any(release.version_codes for release in collected):
        return EmptyTrack(name=name)
    return ActiveTrack(name=name, releases=collected)


def _unique(codes: Iterable[int]) -> tuple[int, ...]:
    return tuple(dict.fromkeys(codes))
