"""Domain model for publishing releases."""

from __future__ import annotations

from .artifacts import UploadedBinary
from .enums import (
    BinaryKind,
    ExpansionFileType,
    ReleaseStatus,
    StandardTrack,
    VersionCodeFilter,
    binary_kind_for,
    normalize_track_name,
)
from .release import (
    ActiveTrack,
    Edit,
    EmptyTrack,
    Release,
    ReleaseNote,
    TrackState,
    track_state,
)
from .session import AuthorizedSession, RequestDefaults

__all__ = [
    "ActiveTrack",
    "AuthorizedSession",
    "BinaryKind",
    "Edit",
    "EmptyTrack",
    "ExpansionFileType",
    "Release",
    "ReleaseNote",
    "ReleaseStatus",
    "RequestDefaults",
    "StandardTrack",
    "TrackState",
    "UploadedBinary",
    "VersionCodeFilter",
    "binary_kind_for",
    "normalize_track_name",
    "track_state",
]
