"""Domain port definitions for adapters."""

from __future__ import annotations

from .filesystem import DirectoryLister
from .publishing import Authorizer, PublisherAPIError, PublisherClient

__all__ = [
    "Authorizer",
    "DirectoryLister",
    "PublisherAPIError",
    "PublisherClient",
]
