"""Entry point that downloads allow-listed Outlook attachments to disk."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from pydantic import ValidationError

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from attachment_sync.auth import MsalTokenProvider
from attachment_sync.config import Settings
from attachment_sync.exceptions import ConfigurationError
from attachment_sync.graph_client import GraphClient
from attachment_sync.processor import AttachmentProcessor
from attachment_sync.senders import load_allowed_senders

logger = logging.getLogger("attachment_sync.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download attachments from allow-listed senders in an Outlook folder."
    )
    parser.add_argument(
        "--sender",
        action="append",
        default=[],
        help="Allowed address or @domain (repeatable, comma-separated values accepted)",
    )
    parser.add_argument("--senders-file", type=Path, help="XML file listing allowed senders")
    parser.add_argument("--hours", type=int, help="Only consider messages from the last N hours")
    parser.add_argument(
        "--move", action="store_true", help="Move processed messages to the archive folder"
    )
    parser.add_argument("--log-file", type=Path, help="Log file; audit logs go next to it")
    return parser


def configure_logging(level: str, log_file: Path | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
    )


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates: dict[str, object] = {}
    if args.hours is not None:
        if args.hours < 0:
            raise ConfigurationError("--hours must be non-negative")
        updates["hours_to_fetch"] = args.hours
    if args.move:
        updates["move_processed_messages"] = True
    if args.senders_file:
        updates["allowed_senders_file"] = args.senders_file
    if args.log_file:
        updates["log_file"] = args.log_file
    return settings.model_copy(update=updates) if updates else settings


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = apply_overrides(Settings(), args)
    except (ValidationError, ConfigurationError) as exc:
        print(f"Configuration validation failed:\n{exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.log_level, settings.log_file)

    try:
        allowed_senders = load_allowed_senders(settings, extra=args.sender)
        graph_client = GraphClient(settings, MsalTokenProvider(settings))
        processor = AttachmentProcessor(graph_client, settings)
        result = processor.run(allowed_senders, settings.log_file)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as exc:
        logger.exception("Attachment sync failed")
        print(f"Service failed: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Emails processed: {result.emails_processed}")
    print(f"Attachments found: {result.total_attachments}")
    print(f"New downloads: {result.new_downloads}")
    print(f"Skipped: {result.skipped_attachments}")
    print(f"Downloads directory: {settings.output_dir.resolve()}")


if __name__ == "__main__":
    main()
