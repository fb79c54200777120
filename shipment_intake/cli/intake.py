"""Command-line access to the intake pipeline.

Usage::

    python -m shipment_intake.cli extract --file /path/to/order.txt
    python -m shipment_intake.cli extract --text "Ship to Jane Doe, 1 Main St"
    python -m shipment_intake.cli extract --file order.eml --json
    python -m shipment_intake.cli stats

``extract`` exits 0 when a shipment was created and 1 on any failure,
which makes it usable from shell scripts and cron jobs.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from shipment_intake.models.extraction import FileSource, TextSource
from shipment_intake.pipeline.orchestrator import IntakeOutcome
from shipment_intake.utils.errors import ShipmentIntakeError

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_outcome(outcome: IntakeOutcome) -> str:
    if outcome.record is not None:
        r = outcome.record
        lines = [
            f"Shipment created: {r.id}",
            f"  Customer:      {r.customer_name}",
            f"  Address:       {r.address}",
            f"  Tracking ID:   {r.tracking_id or '-'}",
            f"  Delivery date: {r.delivery_date.isoformat() if r.delivery_date else '-'}",
            f"  Weight (kg):   {r.package_weight if r.package_weight is not None else '-'}",
            f"  Notes:         {r.notes or '-'}",
            f"  Source:        {r.original_file_name or '-'}",
        ]
        return "\n".join(lines)
    failure = outcome.failure
    if failure is None:
        return "Extraction failed"
    return f"Extraction failed ({failure.reason.value}): {failure.message}\n  Attempt: {failure.attempt_id}"


def _outcome_payload(outcome: IntakeOutcome) -> dict[str, Any]:
    if outcome.record is not None:
        return {
            "success": True,
            "shipmentOrder": outcome.record.model_dump(mode="json"),
            "extractedData": outcome.extracted_data,
        }
    return {
        "success": False,
        "error": outcome.failure.message if outcome.failure else "Extraction failed",
        "reason": outcome.failure.reason.value if outcome.failure else None,
    }


def _suppress_logs() -> None:
    """Send log output to stderr at WARNING+ so stdout carries only results.

    Called before and again after importing ``shipment_intake.main``: that
    import runs ``configure_logging`` against stdout, and structlog caches
    loggers on first use.
    """
    import logging
    import os

    import structlog

    # Settings read LOG_LEVEL when main is imported.
    os.environ["LOG_LEVEL"] = "WARNING"

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _load_build_services(args: argparse.Namespace):
    # Deferred: importing main builds settings and the app.
    from shipment_intake.main import build_services

    if args.quiet or args.json_output:
        _suppress_logs()
    return build_services


async def _run_extract(args: argparse.Namespace) -> int:
    build_services = _load_build_services(args)

    if args.file:
        path = Path(args.file)
        if not path.is_file():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1
        source: FileSource | TextSource = FileSource(data=path.read_bytes(), name=path.name)
    else:
        source = TextSource(content=args.text)

    components = await build_services()
    try:
        outcome = await components["pipeline"].process(source)
    except ShipmentIntakeError as exc:
        if args.json_output:
            print(json.dumps({"success": False, "error": exc.message}, indent=2))
        else:
            print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json_output:
        print(json.dumps(_outcome_payload(outcome), indent=2))
    else:
        print(_format_outcome(outcome))
    return 0 if outcome.success else 1


async def _run_stats(args: argparse.Namespace) -> int:
    build_services = _load_build_services(args)

    components = await build_services()
    stats = await components["monitoring_service"].get_stats()
    if args.json_output:
        print(json.dumps(stats.model_dump(), indent=2))
        return 0

    print(f"Total shipments:     {stats.total_shipments}")
    print(f"Created today:       {stats.today_shipments}")
    print(f"Successful parsing:  {stats.successful_parsing}")
    print(f"Failed parsing:      {stats.failed_parsing}")
    print(f"Still processing:    {stats.processing_parsing}")
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m shipment_intake.cli",
        description="Extract shipment orders from documents and inspect intake statistics.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print machine-readable JSON instead of formatted text.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress log output (implied by --json).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract a shipment from a file or text.")
    group = extract.add_mutually_exclusive_group(required=True)
    group.add_argument("--file", "-f", type=str, help="Path to a document to upload.")
    group.add_argument("--text", "-t", type=str, help="Text to extract from (e.g. an email body).")

    sub.add_parser("stats", help="Print shipment and parsing counters.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, run the chosen command, and exit with its status code."""
    args = _build_parser().parse_args(argv)

    if args.quiet or args.json_output:
        _suppress_logs()

    runner = _run_extract if args.command == "extract" else _run_stats
    sys.exit(asyncio.run(runner(args)))


if __name__ == "__main__":
    main()
