from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from playpublish.domain.model import ActiveTrack, Release
from tests.helpers.publisher import FakeAuthorizer, FakePublisherClient

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PLAY_SERVICE_ACCOUNT_JSON",
        "PLAY_SERVICE_ACCOUNT_EMAIL",
        "PLAY_SERVICE_ACCOUNT_PRIVATE_KEY",
        "PLAY_PUBLISHER_BASE_URL",
        "PLAY_PUBLISHER_UPLOAD_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    logging.getLogger("playpublish").setLevel(logging.DEBUG)


@pytest.fixture
def apk_file(tmp_path: Path) -> Path:
    path = tmp_path / "build" / "app-release.apk"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"PK\x03\x04apk")
    return path


@pytest.fixture
def production_track() -> ActiveTrack:
    return ActiveTrack(name="production", releases=(Release(version_codes=(1, 2, 3)),))


@pytest.fixture
def fake_client() -> FakePublisherClient:
    return FakePublisherClient()


@pytest.fixture
def fake_authorizer() -> FakeAuthorizer:
    return FakeAuthorizer()
