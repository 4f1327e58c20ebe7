"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from playpublish.adapters.filesystem import list_directory
from playpublish.adapters.googleplay import GooglePlayPublisherClient, ServiceAccountAuthorizer
from playpublish.config.publisher import get_publisher_config
from playpublish.domain.publishing import (
    PublishRequest,
    PublishResult,
    ReleaseOrchestrator,
    StatusUpdateRequest,
)

if TYPE_CHECKING:
    from playpublish.config.publisher import PublisherConfig
    from playpublish.domain.model import AuthorizedSession
    from playpublish.domain.ports import Authorizer, DirectoryLister, PublisherClient

ClientFactory = Callable[["AuthorizedSession"], "PublisherClient"]


log = getLogger(__name__)


def _google_play_client_factory(config: PublisherConfig) -> ClientFactory:
    def factory(session: AuthorizedSession) -> PublisherClient:
        return GooglePlayPublisherClient(config=config, defaults=session.request_defaults())

    return factory


def _build_orchestrator(
    *,
    authorizer: Authorizer | None,
    client_factory: ClientFactory | None,
    lister: DirectoryLister | None,
    config: PublisherConfig | None,
) -> ReleaseOrchestrator:
    if client_factory is None:
        client_factory = _google_play_client_factory(config or get_publisher_config())
    return ReleaseOrchestrator(
        authorize=authorizer or ServiceAccountAuthorizer(),
        client_factory=client_factory,
        lister=lister or list_directory,
    )


def publish_release(
    request: PublishRequest,
    *,
    authorizer: Authorizer | None = None,
    client_factory: ClientFactory | None = None,
    lister: DirectoryLister | None = None,
    config: PublisherConfig | None = None,
) -> PublishResult:
    """Publish ``request`` to Google Play using the configured adapters."""

    orchestrator = _build_orchestrator(
        authorizer=authorizer, client_factory=client_factory, lister=lister, config=config
    )
    result = orchestrator.publish(request)

    log.info(
        f"Finished publishing {request.package_name}: track={result.track}, "
        f"version_codes={list(result.release.version_codes)}, status={result.release.status}, "
        f"committed={result.committed}, edit={result.edit_id}"
    )
    return result


def update_release_status(
    request: StatusUpdateRequest,
    *,
    authorizer: Authorizer | None = None,
    client_factory: ClientFactory | None = None,
    config: PublisherConfig | None = None,
) -> PublishResult:
    """Change status or rollout of the release already on a track; nothing is uploaded."""

    orchestrator = _build_orchestrator(
        authorizer=authorizer, client_factory=client_factory, lister=None, config=config
    )
    result = orchestrator.update_status(request)

    log.info(
        f"Updated {request.package_name}: track={result.track}, "
        f"status={result.release.status}, fraction={result.release.user_fraction}, "
        f"committed={result.committed}, edit={result.edit_id}"
    )
    return result
