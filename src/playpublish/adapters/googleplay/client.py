"""HTTP client for the Android Publisher API (v3)."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError

from playpublish.adapters.http_resilience import ResilientClient
from playpublish.domain.ports.publishing import PublisherAPIError

from .schema import (
    ApkPayload,
    AppEditPayload,
    BundlePayload,
    DeobfuscationFilesUploadResponse,
    ErrorResponse,
    ExpansionFilesUploadResponse,
    TrackPayload,
)
from .translator import parse_edit, parse_track, track_update_body

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Mapping
    from pathlib import Path

    from playpublish.config.http_resilience import ResilienceConfig
    from playpublish.config.publisher import PublisherConfig
    from playpublish.domain.model import (
        Edit,
        ExpansionFileType,
        Release,
        RequestDefaults,
        TrackState,
    )

log = getLogger(__name__)

APK_MEDIA_TYPE = "application/vnd.android.package-archive"
OCTET_STREAM = "application/octet-stream"
UPLOAD_CHUNK_BYTES = 1024 * 1024
PROGUARD_SYMBOL_TYPE = "proguard"


async def _iter_file(path: Path, chunk_size: int = UPLOAD_CHUNK_BYTES) -> AsyncIterator[bytes]:
    with path.open("rb") as handle:
        while chunk := await asyncio.to_thread(handle.read, chunk_size):
            yield chunk


def _error_from_response(response: httpx.Response) -> PublisherAPIError:
    try:
        error = ErrorResponse.model_validate(response.json()).error
    except (ValueError, PayloadValidationError):
        snippet = response.text[:200].strip()
        return PublisherAPIError(
            f"HTTP {response.status_code}: {snippet or response.reason_phrase}",
            status_code=response.status_code,
        )
    return PublisherAPIError(
        f"{error.code} {error.message}".strip(),
        status_code=error.code,
        reason=error.reason,
    )


class GooglePlayPublisherClient:
    """Android Publisher binding scoped to one authorized run.

    Each call opens its own HTTP client; the publish sequence is strictly
    ordered, so calls never overlap.
    """

    def __init__(
        self,
        *,
        config: PublisherConfig,
        defaults: RequestDefaults,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._defaults = defaults
        self._client_factory = client_factory or ResilientClient

    def insert_edit(self, package_name: str) -> Edit:
        payload = self._call(
            "POST", self._edits_path(package_name), AppEditPayload, json={}
        )
        return parse_edit(payload)

    def get_track(self, edit: Edit, package_name: str, track: str) -> TrackState:
        payload = self._call("GET", self._track_path(edit, package_name, track), TrackPayload)
        return parse_track(payload)

    def update_track(
        self, edit: Edit, package_name: str, track: str, release: Release
    ) -> TrackState:
        payload = self._call(
            "PUT",
            self._track_path(edit, package_name, track),
            TrackPayload,
            json=track_update_body(track, release),
        )
        return parse_track(payload)

    def upload_apk(self, edit: Edit, package_name: str, path: Path) -> int:
        url = f"{self._upload_edit_url(edit, package_name)}/apks"
        payload = self._upload(url, path, ApkPayload, media_type=APK_MEDIA_TYPE)
        return payload.version_code

    def upload_bundle(self, edit: Edit, package_name: str, path: Path) -> int:
        url = f"{self._upload_edit_url(edit, package_name)}/bundles"
        payload = self._upload(url, path, BundlePayload, media_type=OCTET_STREAM)
        return payload.version_code

    def upload_expansion_file(
        self,
        edit: Edit,
        package_name: str,
        version_code: int,
        expansion_type: ExpansionFileType,
        path: Path,
    ) -> int:
        url = (
            f"{self._upload_edit_url(edit, package_name)}"
            f"/apks/{version_code}/expansionFiles/{expansion_type}"
        )
        payload = self._upload(url, path, ExpansionFilesUploadResponse, media_type=OCTET_STREAM)
        file_size = payload.expansion_file.file_size
        return file_size if file_size is not None else path.stat().st_size

    def upload_deobfuscation_file(
        self, edit: Edit, package_name: str, version_code: int, path: Path
    ) -> None:
        url = (
            f"{self._upload_edit_url(edit, package_name)}"
            f"/apks/{version_code}/deobfuscationFiles/{PROGUARD_SYMBOL_TYPE}"
        )
        self._upload(url, path, DeobfuscationFilesUploadResponse, media_type=OCTET_STREAM)

    def commit_edit(
        self, edit: Edit, package_name: str, *, changes_not_sent_for_review: bool = False
    ) -> None:
        params = {"changesNotSentForReview": "true"} if changes_not_sent_for_review else {}
        self._call(
            "POST",
            f"{self._edit_path(edit, package_name)}:commit",
            AppEditPayload,
            params=params,
        )

    def delete_edit(self, edit: Edit, package_name: str) -> None:
        self._call("DELETE", self._edit_path(edit, package_name), None)

    def _call[M: BaseModel](
        self,
        method: str,
        url: str,
        model: type[M] | None,
        *,
        json: object | None = None,
        params: Mapping[str, str] | None = None,
    ) -> M:
        return asyncio.run(self._request_async(method, url, model, json=json, params=params))

    def _upload[M: BaseModel](
        self,
        url: str,
        path: Path,
        model: type[M],
        *,
        media_type: str,
    ) -> M:
        headers = {
            "Content-Type": media_type,
            "Content-Length": str(path.stat().st_size),
        }
        log.debug("POST %s (%s bytes)", url, headers["Content-Length"])
        return asyncio.run(
            self._request_async(
                "POST",
                url,
                model,
                params={"uploadType": "media"},
                headers=headers,
                source=path,
                timeout=self._config.upload_timeout_seconds,
            )
        )

    async def _request_async[M: BaseModel](
        self,
        method: str,
        url: str,
        model: type[M] | None,
        *,
        json: object | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        source: Path | None = None,
        timeout: float | None = None,
    ) -> M:
        defaults = self._defaults.extend(headers=headers, params=params)
        request_headers = dict(defaults.headers)
        request_params = dict(defaults.params)
        async with self._client_factory(self._resilience) as client:
            try:
                if source is not None:
                    response = await client.request(
                        method,
                        url,
                        content=_iter_file(source),
                        params=request_params,
                        headers=request_headers,
                        timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                    )
                else:
                    response = await client.request(
                        method,
                        url,
                        json=json,
                        params=request_params,
                        headers=request_headers,
                    )
            except httpx.HTTPError as exc:
                raise PublisherAPIError(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            error = _error_from_response(response)
            log.error("Google Play API error on %s %s: %s", method, url, error)
            raise error

        if model is None:
            return None  # type: ignore[return-value]
        try:
            return model.model_validate(response.json())
        except (ValueError, PayloadValidationError) as exc:
            raise PublisherAPIError(
                f"Unexpected Google Play response for {method} {url}",
                status_code=response.status_code,
            ) from exc

    def _edits_path(self, package_name: str) -> str:
        return f"applications/{quote(package_name, safe='')}/edits"

    def _edit_path(self, edit: Edit, package_name: str) -> str:
        return f"{self._edits_path(package_name)}/{quote(edit.id, safe='')}"

    def _track_path(self, edit: Edit, package_name: str, track: str) -> str:
        return f"{self._edit_path(edit, package_name)}/tracks/{quote(track, safe='')}"

    def _upload_edit_url(self, edit: Edit, package_name: str) -> str:
        return f"{self._config.upload_base_url}/{self._edit_path(edit, package_name)}"
