"""Public interface for the Google Play adapter."""

from __future__ import annotations

from .auth import ServiceAccountAuthorizer, authorize
from .client import GooglePlayPublisherClient
from .schema import AppEditPayload, ErrorResponse, TrackPayload, TrackReleasePayload
from .translator import parse_release, parse_track, release_to_payload, track_update_body

__all__ = [
    "AppEditPayload",
    "ErrorResponse",
    "GooglePlayPublisherClient",
    "ServiceAccountAuthorizer",
    "TrackPayload",
    "TrackReleasePayload",
    "authorize",
    "parse_release",
    "parse_track",
    "release_to_payload",
    "track_update_body",
]
