"""Google Play publisher configuration values."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

PUBLISHER_BASE_URL = "https://androidpublisher.googleapis.com/androidpublisher/v3"
PUBLISHER_UPLOAD_URL = "https://androidpublisher.googleapis.com/upload/androidpublisher/v3"
PUBLISHER_SCOPES = ("https://www.googleapis.com/auth/androidpublisher",)
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"  # noqa: S105
PUBLISHER_TIMEOUT_SECONDS = 60.0
UPLOAD_TIMEOUT_SECONDS = 900.0

SERVICE_ACCOUNT_JSON_ENV = "PLAY_SERVICE_ACCOUNT_JSON"
SERVICE_ACCOUNT_EMAIL_ENV = "PLAY_SERVICE_ACCOUNT_EMAIL"
SERVICE_ACCOUNT_KEY_ENV = "PLAY_SERVICE_ACCOUNT_PRIVATE_KEY"


@dataclass(frozen=True, slots=True)
class ServiceAccountKey:
    """Key pair of the service account allowed to publish the application."""

    client_email: str
    private_key: str = field(repr=False)
    token_uri: str = DEFAULT_TOKEN_URI

    @classmethod
    def from_mapping(cls, data: dict[str, object]) -> ServiceAccountKey:
        email = data.get("client_email")
        key = data.get("private_key")
        if not isinstance(email, str) or not email.strip():
            raise ConfigurationError("Service account key is missing 'client_email'")
        if not isinstance(key, str) or not key.strip():
            raise ConfigurationError("Service account key is missing 'private_key'")
        token_uri = data.get("token_uri")
        return cls(
            client_email=email,
            private_key=key,
            token_uri=token_uri if isinstance(token_uri, str) and token_uri else DEFAULT_TOKEN_URI,
        )

    def as_info(self) -> dict[str, str]:
        """Return the key in the layout expected by ``google-auth``."""

        return {
            "type": "service_account",
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": self.token_uri,
        }


@dataclass(frozen=True, slots=True)
class PublisherConfig:
    resilience: ResilienceConfig
    upload_base_url: str = PUBLISHER_UPLOAD_URL
    upload_timeout_seconds: float = UPLOAD_TIMEOUT_SECONDS
    scopes: tuple[str, ...] = PUBLISHER_SCOPES


def _load_key_document(raw: str) -> dict[str, object]:
    text = raw.strip()
    if not text.startswith("{"):
        path = Path(text).expanduser()
        if not path.is_file():
            raise ConfigurationError(
                f"{SERVICE_ACCOUNT_JSON_ENV} is neither JSON nor an existing file: {path}"
            )
        text = path.read_text(encoding="utf-8")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid service account JSON: {exc.msg}") from exc
    if not isinstance(document, dict):
        raise ConfigurationError("Service account JSON must be an object")
    return document


def get_service_account_key() -> ServiceAccountKey:
    """Resolve the service account from ``PLAY_SERVICE_ACCOUNT_*`` variables.

    A JSON key (inline or as a path) takes precedence over the split
    email/private-key pair.
    """

    raw_json = optional_env_var(SERVICE_ACCOUNT_JSON_ENV)
    if raw_json is not None:
        return ServiceAccountKey.from_mapping(_load_key_document(raw_json))

    try:
        values = require_env_vars((SERVICE_ACCOUNT_EMAIL_ENV, SERVICE_ACCOUNT_KEY_ENV))
    except MissingConfigurationError as exc:
        raise MissingConfigurationError(
            f"{exc} (or set {SERVICE_ACCOUNT_JSON_ENV})"
        ) from None
    # Keys pasted into CI variables usually carry escaped newlines.
    private_key = values[SERVICE_ACCOUNT_KEY_ENV].replace("\\n", "\n")
    return ServiceAccountKey(
        client_email=values[SERVICE_ACCOUNT_EMAIL_ENV],
        private_key=private_key,
    )


def get_publisher_config(*, resilience: ResilienceConfig | None = None) -> PublisherConfig:
    base_url = optional_env_var("PLAY_PUBLISHER_BASE_URL") or PUBLISHER_BASE_URL
    upload_url = optional_env_var("PLAY_PUBLISHER_UPLOAD_URL") or PUBLISHER_UPLOAD_URL
    return PublisherConfig(
        resilience=resilience
        or ResilienceConfig(
            name="googleplay",
            base_url=base_url.rstrip("/"),
            timeout_seconds=PUBLISHER_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
        upload_base_url=upload_url.rstrip("/"),
    )
