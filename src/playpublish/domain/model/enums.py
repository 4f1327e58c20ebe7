"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ReleaseStatus(StrEnum):
    DRAFT = "draft"
    IN_PROGRESS = "inProgress"
    HALTED = "halted"
    COMPLETED = "completed"


class StandardTrack(StrEnum):
    INTERNAL = "internal"
    ALPHA = "alpha"
    BETA = "beta"
    PRODUCTION = "production"


class VersionCodeFilter(StrEnum):
    """Which previously live version codes survive a new release."""

    ALL = "all"
    LIST = "list"
    RETAIN = "retain"


class BinaryKind(StrEnum):
    APK = "apk"
    BUNDLE = "bundle"


class ExpansionFileType(StrEnum):
    MAIN = "main"
    PATCH = "patch"


def normalize_track_name(name: str) -> str:
    """Lower-case standard track names; custom track names pass through as given."""

    stripped = name.strip()
    if not stripped:
        raise ValueError("Track name must not be blank")
    lowered = stripped.lower()
    if lowered in {track.value for track in StandardTrack}:
        return lowered
    return stripped


def binary_kind_for(filename: str) -> BinaryKind:
    return BinaryKind.BUNDLE if filename.lower().endswith(".aab") else BinaryKind.APK
