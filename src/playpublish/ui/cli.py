from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from playpublish.adapters.filesystem import expand_patterns, read_release_notes
from playpublish.app import publish_release, update_release_status
from playpublish.config import ConfigurationError, configure_logging
from playpublish.domain.errors import PublishError, ValidationError
from playpublish.domain.model import ReleaseStatus, VersionCodeFilter
from playpublish.domain.publishing import PublishRequest, StatusUpdateRequest

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from playpublish.domain.model import ReleaseNote

log = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en-US"


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="playpublish",
        description="Publish Android binaries to a Google Play track",
    )
    parser.add_argument(
        "--package-name",
        required=True,
        help="Application id, e.g. com.example.app",
    )
    parser.add_argument(
        "--track",
        required=True,
        help="internal, alpha, beta, production or a custom track name",
    )
    parser.add_argument(
        "--binary",
        dest="binaries",
        action="append",
        help="APK or AAB path or glob pattern (repeatable)",
    )
    parser.add_argument(
        "--version-code-filter",
        choices=[policy.value for policy in VersionCodeFilter],
        default=VersionCodeFilter.ALL.value,
        help="Which version codes already on the track survive (default: %(default)s)",
    )
    parser.add_argument(
        "--retain-version-codes",
        type=str,
        default="",
        help="Comma-separated version codes to keep (with --version-code-filter list)",
    )
    parser.add_argument(
        "--status",
        choices=[status.value for status in ReleaseStatus],
        help="Release status (derived from --user-fraction when omitted)",
    )
    parser.add_argument(
        "--user-fraction",
        type=float,
        help="Rollout fraction in (0, 1]; below 1 starts a staged rollout",
    )
    parser.add_argument("--release-name", type=str, help="Release name shown in the console")
    parser.add_argument("--release-notes-file", type=Path, help="Text file with release notes")
    parser.add_argument(
        "--language",
        default=DEFAULT_LANGUAGE,
        help="Language of --release-notes-file (default: %(default)s)",
    )
    parser.add_argument(
        "--in-app-update-priority",
        type=int,
        help="In-app update priority between 0 and 5",
    )
    parser.add_argument(
        "--pick-obb",
        action="store_true",
        help="Upload the main.<versionCode>.<package>.obb expansion file of each APK",
    )
    parser.add_argument(
        "--obb-dir",
        type=Path,
        help="Directory holding expansion files (default: next to the APK, then ../obb)",
    )
    parser.add_argument("--mapping-file", type=Path, help="ProGuard/R8 mapping file to upload")
    parser.add_argument(
        "--changes-not-sent-for-review",
        action="store_true",
        help="Commit without sending the changes for review",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run every step but discard the edit instead of committing it",
    )
    parser.add_argument(
        "--no-upload",
        action="store_true",
        help="Only change status/rollout of the release already on the track",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(list(argv))
    if args.no_upload:
        if args.binaries or args.pick_obb or args.mapping_file is not None:
            parser.error("--no-upload cannot be combined with artifact options")
    elif not args.binaries:
        parser.error("--binary is required unless --no-upload is given")
    return args


def _parse_version_codes(value: str) -> tuple[int, ...]:
    codes: list[int] = []
    for item in value.split(","):
        stripped = item.strip()
        if not stripped:
            continue
        try:
            codes.append(int(stripped))
        except ValueError as exc:
            raise ValueError(f"Invalid version code: {stripped}") from exc
    return tuple(codes)


def _release_notes(args: argparse.Namespace) -> tuple[ReleaseNote, ...]:
    if args.release_notes_file is None:
        return ()
    return (read_release_notes(args.release_notes_file, args.language),)


def _build_status_update(args: argparse.Namespace) -> StatusUpdateRequest:
    return StatusUpdateRequest(
        package_name=args.package_name,
        track=args.track,
        status=ReleaseStatus(args.status) if args.status else None,
        user_fraction=args.user_fraction,
        release_notes=_release_notes(args),
        changes_not_sent_for_review=args.changes_not_sent_for_review,
        dry_run=args.dry_run,
    )


def _build_request(args: argparse.Namespace) -> PublishRequest:
    return PublishRequest(
        package_name=args.package_name,
        track=args.track,
        binaries=expand_patterns(args.binaries),
        version_code_filter=VersionCodeFilter(args.version_code_filter),
        retain_version_codes=_parse_version_codes(args.retain_version_codes),
        status=ReleaseStatus(args.status) if args.status else None,
        user_fraction=args.user_fraction,
        release_notes=_release_notes(args),
        release_name=args.release_name,
        in_app_update_priority=args.in_app_update_priority,
        pick_expansion_files=args.pick_obb,
        expansion_dir=args.obb_dir,
        mapping_file=args.mapping_file,
        changes_not_sent_for_review=args.changes_not_sent_for_review,
        dry_run=args.dry_run,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        request = (
            _build_status_update(parsed_args)
            if parsed_args.no_upload
            else _build_request(parsed_args)
        )
    except (ValueError, ConfigurationError, ValidationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if isinstance(request, StatusUpdateRequest):
            update_release_status(request)
        else:
            publish_release(request)
    except PublishError as exc:
        log.error("Publishing failed at stage '%s': %s", exc.stage or "setup", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during publish")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(130)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
