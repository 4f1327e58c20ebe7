"""Shared logging helpers for playpublish."""

from __future__ import annotations

import logging

NOISY_LOGGERS = ("httpx", "httpcore", "google.auth", "urllib3")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: we default
    to INFO level and a terse format suitable for pipeline logs. Pass ``force=True``
    to reconfigure during tests or specialised entry points.

    Transport libraries are held at WARNING unless DEBUG is requested, since their
    request lines would otherwise interleave with the publish stages.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    transport_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
