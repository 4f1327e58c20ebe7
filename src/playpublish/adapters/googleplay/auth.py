"""Service-account authorization for the Android Publisher API."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING, Any

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from playpublish.config.errors import ConfigurationError
from playpublish.config.publisher import PUBLISHER_SCOPES, get_service_account_key
from playpublish.domain.errors import AuthError
from playpublish.domain.model import AuthorizedSession

if TYPE_CHECKING:
    from collections.abc import Sequence

    from playpublish.config.publisher import ServiceAccountKey

log = getLogger(__name__)

CredentialsFactory = Callable[..., Any]


def _default_credentials_factory(
    info: dict[str, str], *, scopes: Sequence[str]
) -> Any:  # noqa: ANN401
    return service_account.Credentials.from_service_account_info(info, scopes=list(scopes))


def authorize(
    key: ServiceAccountKey,
    *,
    scopes: Sequence[str] = PUBLISHER_SCOPES,
    credentials_factory: CredentialsFactory = _default_credentials_factory,
    request_factory: Callable[[], object] = Request,
) -> AuthorizedSession:
    """Exchange the service-account key for an access token.

    The returned session is immutable; nothing about the key or token is kept
    in module state.
    """

    try:
        credentials = credentials_factory(key.as_info(), scopes=scopes)
        credentials.refresh(request_factory())
    except (GoogleAuthError, ValueError) as exc:
        raise AuthError(
            f"Service account {key.client_email} could not be authorized: {exc}"
        ) from exc

    token = getattr(credentials, "token", None)
    if not token:
        raise AuthError(f"No access token was issued for {key.client_email}")

    expiry = getattr(credentials, "expiry", None)
    if expiry is not None and expiry.tzinfo is None:
        # google-auth reports naive UTC timestamps
        expiry = expiry.replace(tzinfo=UTC)
    log.debug("Access token for %s valid until %s", key.client_email, expiry)
    return AuthorizedSession(principal=key.client_email, access_token=token, expiry=expiry)


@dataclass(slots=True)
class ServiceAccountAuthorizer:
    """Resolve the key from configuration and authorize it, once per call."""

    key_provider: Callable[[], ServiceAccountKey] = field(default=get_service_account_key)
    scopes: tuple[str, ...] = PUBLISHER_SCOPES
    credentials_factory: CredentialsFactory = field(default=_default_credentials_factory)

    def __call__(self) -> AuthorizedSession:
        try:
            key = self.key_provider()
        except ConfigurationError as exc:
            raise AuthError(f"Service account credentials unavailable: {exc}") from exc
        return authorize(key, scopes=self.scopes, credentials_factory=self.credentials_factory)
