"""Failure taxonomy of a publish run.

Every error carries the stage of the run it interrupted so the CLI can report
where the sequence stopped. The original cause is chained with ``raise ... from``.
"""

from __future__ import annotations

from enum import StrEnum


class PublishStage(StrEnum):
    AUTHORIZE = "authorize"
    OPEN = "open"
    RESOLVE = "resolve"
    UPLOAD = "upload"
    UPDATE = "update"
    COMMIT = "commit"
    ABORT = "abort"


class PublishError(RuntimeError):
    """Base class for failures that abort a publish run."""

    default_stage: PublishStage | None = None

    def __init__(self, message: str, *, stage: PublishStage | None = None) -> None:
        super().__init__(message)
        self.stage = stage or self.default_stage

    def at_stage(self, stage: PublishStage) -> PublishError:
        """Return the error tagged with ``stage`` unless it already carries one."""

        if self.stage is None:
            self.stage = stage
        return self


class AuthError(PublishError):
    """Service account credentials were rejected or could not be used."""

    default_stage = PublishStage.AUTHORIZE


class TransactionError(PublishError):
    """The storefront rejected opening, updating, committing or deleting an edit."""


class ArtifactError(PublishError):
    """A binary, expansion file or mapping file could not be uploaded."""

    default_stage = PublishStage.UPLOAD


class ValidationError(PublishError):
    """The requested release is inconsistent with the track or with itself."""
