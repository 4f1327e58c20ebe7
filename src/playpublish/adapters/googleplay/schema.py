"""Pydantic models describing the Android Publisher API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class PublisherBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AppEditPayload(PublisherBaseModel):
    id: str
    expiry_time_seconds: int | None = Field(default=None, alias="expiryTimeSeconds")


class LocalizedTextPayload(PublisherBaseModel):
    language: str
    text: str


class TrackReleasePayload(PublisherBaseModel):
    name: str | None = None
    # int64 values travel as strings in both directions
    version_codes: list[int] = Field(default_factory=list, alias="versionCodes")
    release_notes: list[LocalizedTextPayload] = Field(default_factory=list, alias="releaseNotes")
    status: str | None = None
    user_fraction: float | None = Field(default=None, alias="userFraction")
    in_app_update_priority: int | None = Field(default=None, alias="inAppUpdatePriority")

    @field_serializer("version_codes")
    def _serialize_version_codes(self, value: list[int]) -> list[str]:
        return [str(code) for code in value]


class TrackPayload(PublisherBaseModel):
    track: str
    releases: list[TrackReleasePayload] = Field(default_factory=list)


class BinaryHashPayload(PublisherBaseModel):
    sha1: str | None = None
    sha256: str | None = None


class ApkPayload(PublisherBaseModel):
    version_code: int = Field(alias="versionCode")
    binary: BinaryHashPayload | None = None


class BundlePayload(PublisherBaseModel):
    version_code: int = Field(alias="versionCode")
    sha1: str | None = None
    sha256: str | None = None


class ExpansionFilePayload(PublisherBaseModel):
    file_size: int | None = Field(default=None, alias="fileSize")
    references_version: int | None = Field(default=None, alias="referencesVersion")


class ExpansionFilesUploadResponse(PublisherBaseModel):
    expansion_file: ExpansionFilePayload = Field(alias="expansionFile")


class DeobfuscationFilePayload(PublisherBaseModel):
    symbol_type: str | None = Field(default=None, alias="symbolType")


class DeobfuscationFilesUploadResponse(PublisherBaseModel):
    deobfuscation_file: DeobfuscationFilePayload | None = Field(
        default=None, alias="deobfuscationFile"
    )


class ErrorItemPayload(PublisherBaseModel):
    reason: str | None = None
    message: str | None = None


class ErrorBodyPayload(PublisherBaseModel):
    code: int
    message: str = ""
    status: str | None = None
    errors: list[ErrorItemPayload] = Field(default_factory=list)

    @field_validator("message", mode="before")
    @classmethod
    def _none_to_blank(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def reason(self) -> str | None:
        for item in self.errors:
            if item.reason:
                return item.reason
        return self.status


class ErrorResponse(PublisherBaseModel):
    error: ErrorBodyPayload
