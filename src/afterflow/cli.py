"""Command-line interface for Afterflow."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, time
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import load_config
from .core.csv_table import CSVExportError, CSVImportError, CSVTable
from .core.link_classifier import default_classifier
from .core.metadata import InvalidLinkError, MusicLinkMetadataService
from .core.models import AppConfig, TreatmentType
from .utils.file_utils import validate_file_path
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)
console = Console()


def _start_date(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date: {value}") from e
    # Imported session dates carry no offset
    if parsed.tzinfo is not None:
        raise argparse.ArgumentTypeError(f"timezone offsets are not supported: {value}")
    return parsed


def _end_date(value: str) -> datetime:
    """Parse an inclusive end date; a bare day covers the whole day."""
    parsed = _start_date(value)
    if "T" not in value and " " not in value.strip():
        return datetime.combine(parsed.date(), time.max)
    return parsed


def _treatment(value: str) -> TreatmentType:
    treatment = TreatmentType.from_display_name(value)
    if treatment is None:
        choices = ", ".join(t.display_name for t in TreatmentType)
        raise argparse.ArgumentTypeError(f"unknown treatment {value!r} (choose from {choices})")
    return treatment


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="afterflow",
        description="Afterflow - session journal CSV exports and music link tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  afterflow classify spotify:playlist:37i9dQZF1DXcBWIGoYBM5M
  afterflow classify https://youtu.be/abcd1234 --fetch
  afterflow check Afterflow-Export.csv
  afterflow export Afterflow-Export.csv --start 2024-01-01 --treatment Psilocybin
        """.strip(),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Configuration file path",
        metavar="PATH",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    classify_parser = subparsers.add_parser("classify", help="Classify a music link")
    classify_parser.add_argument("url", help="Link, deep link or short link")
    classify_parser.add_argument(
        "--fetch",
        action="store_true",
        help="Look up the title through the provider's oEmbed endpoint",
    )

    check_parser = subparsers.add_parser("check", help="Validate an export file")
    check_parser.add_argument("file", type=Path, help="CSV export to check")

    export_parser = subparsers.add_parser("export", help="Re-export a filtered CSV")
    export_parser.add_argument("file", type=Path, help="CSV export to read")
    export_parser.add_argument("--start", type=_start_date, help="First date (ISO format)")
    export_parser.add_argument("--end", type=_end_date, help="Last date, inclusive (ISO format)")
    export_parser.add_argument("--treatment", type=_treatment, help="Treatment type to keep")
    export_parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for the new export (default: configured export_dir)",
        metavar="DIR",
    )

    return parser


def run_classify(args: argparse.Namespace, config: AppConfig) -> int:
    classification = default_classifier.classify(args.url)
    if classification is None:
        console.print(f"[red]Not a usable link:[/red] {args.url}")
        return 1

    provider = classification.provider
    console.print(f"Provider:  {provider.display_name}")
    console.print(f"Original:  {classification.original_url}")
    console.print(f"Canonical: {classification.canonical_url}")

    title = default_classifier.infer_title(provider, classification.canonical_url)
    if args.fetch and config.fetch_metadata:
        service = MusicLinkMetadataService(timeout=config.metadata_timeout)
        try:
            metadata = asyncio.run(service.fetch_metadata(args.url))
        except InvalidLinkError as e:
            console.print(f"[red]{e}[/red]")
            return 1
        title = metadata.title
        if metadata.author_name:
            console.print(f"Author:    {metadata.author_name}")

    console.print(f"Title:     {title or '-'}")
    return 0


def _load_records(table: CSVTable, path: Path):
    if not validate_file_path(path, must_exist=True):
        raise CSVImportError(f"Cannot read {path}")
    return table.import_file(path)


def run_check(args: argparse.Namespace, config: AppConfig) -> int:
    table = CSVTable(encoding=config.csv_encoding)
    records = _load_records(table, args.file)

    console.print(f"{len(records)} sessions in {args.file.name}")
    summary = Table()
    summary.add_column("Date")
    summary.add_column("Treatment")
    summary.add_column("Mood", justify="right")
    summary.add_column("Music")

    for record in records:
        provider = record.music_link_provider
        summary.add_row(
            record.session_date.strftime("%Y-%m-%d %H:%M"),
            record.treatment_type.display_name,
            f"{record.mood_before} → {record.mood_after}",
            provider.display_name if provider else "",
        )

    console.print(summary)
    return 0


def run_export(args: argparse.Namespace, config: AppConfig) -> int:
    table = CSVTable(encoding=config.csv_encoding)
    records = _load_records(table, args.file)

    date_range = None
    if args.start or args.end:
        date_range = (args.start or datetime.min, args.end or datetime.max)

    output_dir = args.output_dir or config.export_dir
    path = table.export_to_file(
        records,
        output_dir,
        date_range=date_range,
        treatment_filter=args.treatment,
    )
    console.print(str(path))
    return 0


COMMANDS = {
    "classify": run_classify,
    "check": run_check,
    "export": run_export,
}


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI application."""

    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        setup_logging(
            logs_dir=config.logs_dir,
            log_level=args.log_level,
        )
    except OSError as e:
        print(f"Failed to set up logging: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info(f"Afterflow v{__version__} running {args.command}")

    try:
        status = COMMANDS[args.command](args, config)
    except (CSVImportError, CSVExportError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    sys.exit(status)


if __name__ == "__main__":
    main()
