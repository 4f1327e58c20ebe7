"""Lifecycle of the single edit transaction of a publish run."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from playpublish.domain.errors import PublishStage, TransactionError
from playpublish.domain.ports.publishing import PublisherAPIError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from playpublish.domain.model import Edit, Release, TrackState
    from playpublish.domain.ports.publishing import PublisherClient

log = getLogger(__name__)


class EditSessionManager:
    """Own the edit handle: open it once, serialize mutations, close it once.

    Nothing is cached between runs; every manager starts from a fresh edit and
    refuses to work on any other one.
    """

    def __init__(self, client: PublisherClient) -> None:
        self._client = client
        self._edit: Edit | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def edit(self) -> Edit | None:
        return None if self._closed else self._edit

    @property
    def is_closed(self) -> bool:
        return self._closed

    def open(self, package_name: str) -> Edit:
        with self._lock:
            if self._edit is not None:
                raise TransactionError(
                    "An edit was already opened for this run", stage=PublishStage.OPEN
                )
            try:
                edit = self._client.insert_edit(package_name)
            except PublisherAPIError as exc:
                raise TransactionError(
                    f"Could not open an edit for {package_name}: {exc}",
                    stage=PublishStage.OPEN,
                ) from exc
            self._edit = edit
        log.info("Opened edit %s for %s (expires %s)", edit.id, package_name, edit.expiry_time)
        return edit

    @contextmanager
    def mutation(self, edit: Edit) -> Iterator[PublisherClient]:
        """Hold the edit for one mutating call and hand out the bound client."""

        with self._lock:
            self._require_live(edit)
            yield self._client

    def get_track(self, edit: Edit, package_name: str, track: str) -> TrackState:
        self._require_live(edit)
        try:
            state = self._client.get_track(edit, package_name, track)
        except PublisherAPIError as exc:
            if exc.is_not_found:
                message = f"Track '{track}' is not known for {package_name}: {exc}"
            else:
                message = f"Could not read track '{track}': {exc}"
            raise TransactionError(message, stage=PublishStage.RESOLVE) from exc
        log.debug("Track %s state: %s", track, state)
        return state

    def update_track(
        self, edit: Edit, package_name: str, track: str, release: Release
    ) -> TrackState:
        release.require_version_codes()
        try:
            with self.mutation(edit) as client:
                state = client.update_track(edit, package_name, track, release)
        except PublisherAPIError as exc:
            raise TransactionError(
                f"Could not update track '{track}': {exc}", stage=PublishStage.UPDATE
            ) from exc
        log.info(
            "Track %s now points at version codes %s (%s)",
            track,
            list(release.version_codes),
            release.status,
        )
        return state

    def commit(
        self, edit: Edit, package_name: str, *, changes_not_sent_for_review: bool = False
    ) -> None:
        try:
            with self.mutation(edit) as client:
                try:
                    client.commit_edit(
                        edit,
                        package_name,
                        changes_not_sent_for_review=changes_not_sent_for_review,
                    )
                finally:
                    self._closed = True
        except PublisherAPIError as exc:
            raise TransactionError(
                f"Commit of edit {edit.id} was rejected: {exc}", stage=PublishStage.COMMIT
            ) from exc
        log.info("Committed edit %s for %s", edit.id, package_name)

    def abort(self, edit: Edit, package_name: str) -> None:
        try:
            with self.mutation(edit) as client:
                try:
                    client.delete_edit(edit, package_name)
                finally:
                    self._closed = True
        except PublisherAPIError as exc:
            raise TransactionError(
                f"Could not discard edit {edit.id}: {exc}", stage=PublishStage.ABORT
            ) from exc
        log.info("Discarded edit %s for %s", edit.id, package_name)

    def _require_live(self, edit: Edit) -> None:
        if self._edit is None:
            raise TransactionError("No edit has been opened for this run")
        if self._closed:
            raise TransactionError(f"Edit {self._edit.id} is already closed")
        if edit.id != self._edit.id:
            raise TransactionError(f"Edit {edit.id} does not belong to this run")
