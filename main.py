#!/usr/bin/env python3
"""
OneiroMetrics - Dream Journal Metrics

Main entry point for OneiroMetrics. This orchestrator loads configuration,
reads notes from the selected importer, runs the parsing pipeline and prints
entries, diagnostics and metric summaries.
"""

import argparse
import json
import logging
import sys
from typing import Iterable, List, Optional

from oneirometrics import __version__
from oneirometrics.config import ConfigError, ConfigManager, get_config
from oneirometrics.importers import BaseImporter, MockImporter, VaultImporter
from oneirometrics.models import Diagnostic, MetricSummary, ParseResult, Severity, count_by_severity
from oneirometrics.pipeline import parse_notes, summarize


EXIT_FAILURE = 1
EXIT_STRICT_ERRORS = 2

_SEVERITY_LEVELS = {
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.INFO: logging.INFO,
}


def setup_logging(config: ConfigManager):
    """Configure logging for the application."""
    level = getattr(logging, config.log_level, logging.INFO)

    # Output goes to stdout, so log records go to stderr
    logging.basicConfig(
        level=level,
        format=config.log_format,
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(config.log_filename)
        ]
    )


def log_diagnostics(diagnostics: Iterable[Diagnostic], logger: Optional[logging.Logger] = None):
    """
    Write diagnostics to a logger at the level matching their severity.

    Args:
        diagnostics: Diagnostics to log
        logger: Target logger (defaults to the root logger)
    """
    logger = logger or logging.getLogger()
    for diagnostic in diagnostics:
        location = diagnostic.source or "<note>"
        if diagnostic.line_number is not None:
            location = f"{location}:{diagnostic.line_number}"
        logger.log(
            _SEVERITY_LEVELS[diagnostic.severity],
            f"{location} [{diagnostic.code.value}] {diagnostic.message}"
        )


def create_importer(importer_type: str, config: ConfigManager,
                    vault_path: Optional[str] = None) -> BaseImporter:
    """
    Create the note importer selected on the command line.

    Args:
        importer_type: "vault" or "mock"
        config: Loaded configuration
        vault_path: Vault directory overriding the configured one

    Returns:
        A BaseImporter instance
    """
    if importer_type == "mock":
        return MockImporter()

    return VaultImporter(
        vault_path or config.vault_directory,
        excluded_notes=config.excluded_notes,
        excluded_subfolders=config.excluded_subfolders,
        max_files=config.max_files,
    )


def format_value(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_text(result: ParseResult, summaries: Optional[List[MetricSummary]] = None) -> str:
    """Render entries, diagnostics and summaries as plain text."""
    lines = []

    for entry in result.entries:
        lines.append(f"{entry.date}  {entry.title}  ({entry.word_count} words)  [{entry.source.file}]")
        if entry.metrics:
            metrics = ", ".join(f"{name}: {format_value(value)}" for name, value in entry.metrics.items())
            lines.append(f"    {metrics}")

    if result.diagnostics:
        lines.append("")
        lines.append("Diagnostics:")
        for diagnostic in result.diagnostics:
            location = diagnostic.source or ""
            if diagnostic.line_number is not None:
                location = f"{location}:{diagnostic.line_number}"
            lines.append(
                f"  {diagnostic.severity.value.upper():7} {location} "
                f"[{diagnostic.code.value}] {diagnostic.message}"
            )

    if summaries:
        lines.append("")
        lines.append("Summary:")
        for summary in summaries:
            line = (
                f"  {summary.metric_name}: count={summary.count} "
                f"avg={format_value(summary.average)} "
                f"min={format_value(summary.min)} max={format_value(summary.max)}"
            )
            if summary.value_counts:
                values = ", ".join(f"{value}={count}" for value, count in summary.value_counts.items())
                line = f"{line} values: {values}"
            lines.append(line)

    counts = count_by_severity(result.diagnostics)
    lines.append("")
    lines.append(
        f"{len(result.entries)} entries, {counts['error']} errors, "
        f"{counts['warning']} warnings, {counts['info']} info"
    )
    return "\n".join(lines)


def render_json(result: ParseResult, summaries: Optional[List[MetricSummary]] = None) -> str:
    """Render entries, diagnostics and summaries as JSON."""
    payload = result.model_dump(mode="json")
    if summaries is not None:
        payload["summaries"] = [summary.model_dump(mode="json") for summary in summaries]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="OneiroMetrics - Dream Journal Metrics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --importer mock --summary          # Parse the built-in sample notes
  python main.py --vault ~/Vault --format json      # Parse a vault and print JSON
  python main.py --vault ~/Vault --strict           # Exit with status 2 on any error diagnostic
        """
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to the configuration file (default: config.yaml)"
    )

    parser.add_argument(
        "--importer",
        choices=["vault", "mock"],
        default="vault",
        help="Note importer to use (default: vault)"
    )

    parser.add_argument(
        "--vault",
        type=str,
        help="Path to the vault directory (overrides paths.vault_dir)"
    )

    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)"
    )

    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print metric summaries across all entries"
    )

    parser.add_argument(
        "--words",
        action="store_true",
        help="Include a word count summary (implies --summary)"
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 when any error diagnostic is reported"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"OneiroMetrics {__version__}"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        config = get_config(args.config)
        setup_logging(config)
        logging.info("OneiroMetrics - Dream Journal Metrics")

        settings = config.journal_settings
        importer = create_importer(args.importer, config, args.vault)
        notes = importer.get_all_notes()

        result = parse_notes(notes, settings, max_workers=config.max_workers)
        log_diagnostics(result.diagnostics)

        summaries = None
        if args.summary or args.words:
            summaries = summarize(result.entries, include_word_count=args.words)

    except ConfigError as e:
        logging.error(f"Invalid configuration: {e}")
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except OSError as e:
        logging.error(f"Parsing failed: {e}")
        print(f"Parsing failed: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        logging.info("Parsing interrupted by user")
        print("\nParsing interrupted.", file=sys.stderr)
        return EXIT_FAILURE

    if args.format == "json":
        print(render_json(result, summaries))
    else:
        print(render_text(result, summaries))

    if args.strict and any(d.severity == Severity.ERROR for d in result.diagnostics):
        return EXIT_STRICT_ERRORS
    return 0


if __name__ == "__main__":
    sys.exit(main())
