"""Edit-transaction lifecycle and version-code resolution."""

from __future__ import annotations

from .orchestrator import (
    PublishRequest,
    PublishResult,
    ReleaseOrchestrator,
    StatusUpdateRequest,
)
from .session import EditSessionManager
from .track_resolver import build_release, resolve_version_codes, validate_retain_list
from .uploader import (
    MAX_EXPANSION_FILE_BYTES,
    ArtifactUploader,
    default_expansion_dirs,
    discover_expansion_file,
    parse_expansion_name,
)

__all__ = [
    "MAX_EXPANSION_FILE_BYTES",
    "ArtifactUploader",
    "EditSessionManager",
    "PublishRequest",
    "PublishResult",
    "ReleaseOrchestrator",
    "StatusUpdateRequest",
    "build_release",
    "default_expansion_dirs",
    "discover_expansion_file",
    "parse_expansion_name",
    "resolve_version_codes",
    "validate_retain_list",
]
