# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command-line entry point.

    modresolve resolve project.yml [more.yml ...] [--json] [--config FILE]

Exit status: 0 when a build plan was produced, 1 on resolution errors,
2 when a manifest or the configuration cannot be loaded.
"""

import argparse
import logging
import sys
import uuid
from pathlib import Path
from typing import List, Optional, TextIO

from modresolve.config import Config, ConfigurationError
from modresolve.diagnostic_logger import DiagnosticLogger
from modresolve.diagnostics import DiagnosticFormatter
from modresolve.log_config import ensure_log_directories, get_default_data_root, get_logs_dir
from modresolve.logging_setup import setup_logging
from modresolve.manifest import ManifestError
from modresolve.resolver import ModuleResolver, ResolutionReport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RESOLUTION_FAILED = 1
EXIT_INPUT_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="modresolve",
        description="Resolve module dependencies, check export visibility, and plan build order",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve modules declared in YAML manifests")
    resolve.add_argument("manifests", nargs="+", type=Path, help="Module manifest files")
    resolve.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file. Default: ./.module_resolver.yml if present",
    )
    resolve.add_argument("--json", action="store_true", help="Print the report as JSON")
    resolve.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help=f"Root directory for log files. Default: {get_default_data_root()}",
    )
    resolve.add_argument(
        "--log-file",
        action="store_true",
        help="Also write structured logs under <data-root>/logs/",
    )
    resolve.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level. Default: WARNING",
    )
    return parser.parse_args(argv)


def render_text(report: ResolutionReport, out: TextIO) -> None:
    """Print a human-readable report."""
    diagnostics = report.diagnostics()
    for diagnostic in diagnostics:
        out.write(DiagnosticFormatter.format_human_readable(diagnostic) + "\n")

    if report.plan is not None:
        out.write("Build order:\n")
        for position, name in enumerate(report.plan.order, start=1):
            visible = ", ".join(sorted(report.plan.visibility.get(name, ()))) or "-"
            out.write(f"  {position:>3}. {name}  (exports: {visible})\n")

    status = "ok" if report.ok else "failed"
    out.write(f"Resolution {status}: {DiagnosticFormatter.format_summary(diagnostics)}\n")


def run_resolve(args: argparse.Namespace, out: TextIO) -> int:
    try:
        config = (
            Config(config_path=args.config, strict=True) if args.config is not None else Config()
        )
    except ConfigurationError as e:
        logger.error(str(e))
        sys.stderr.write(f"error: {e}\n")
        return EXIT_INPUT_ERROR

    diagnostic_logger: Optional[DiagnosticLogger] = None
    if config.enable_diagnostic_logging:
        diagnostic_logger = DiagnosticLogger(session_id=args.session_id, data_root=args.data_root)

    try:
        resolver = ModuleResolver(config, diagnostic_logger=diagnostic_logger)
        report = resolver.resolve_manifests(args.manifests)
    except ManifestError as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_INPUT_ERROR
    finally:
        if diagnostic_logger is not None:
            diagnostic_logger.close()

    if args.json:
        out.write(report.to_json(indent=2) + "\n")
    else:
        render_text(report, out)

    return EXIT_OK if report.ok else EXIT_RESOLUTION_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    # One id per invocation ties the log file records to the diagnostics file
    args.session_id = str(uuid.uuid4())
    level = getattr(logging, args.log_level)

    if args.log_file:
        ensure_log_directories(args.data_root)
        setup_logging(
            log_dir=get_logs_dir(args.data_root), log_level=level, run_id=args.session_id
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if args.command == "resolve":
        return run_resolve(args, sys.stdout)
    return EXIT_INPUT_ERROR


if __name__ == "__main__":
    sys.exit(main())
