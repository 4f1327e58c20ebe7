"""Run-scoped authorization and request defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


def _freeze(values: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True, slots=True)
class RequestDefaults:
    """Headers and query parameters decorating every call of one run.

    Values are immutable; ``extend`` returns a new instance so two runs never
    observe each other's defaults.
    """

    headers: Mapping[str, str] = field(default_factory=lambda: _freeze(None))
    params: Mapping[str, str] = field(default_factory=lambda: _freeze(None))

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _freeze(self.headers))
        object.__setattr__(self, "params", _freeze(self.params))

    def extend(
        self,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> RequestDefaults:
        return RequestDefaults(
            headers={**self.headers, **(headers or {})},
            params={**self.params, **(params or {})},
        )


@dataclass(frozen=True, slots=True)
class AuthorizedSession:
    principal: str
    access_token: str = field(repr=False)
    expiry: datetime | None = None

    def request_defaults(self) -> RequestDefaults:
        return RequestDefaults(headers={"Authorization": f"Bearer {self.access_token}"})
