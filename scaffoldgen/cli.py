# File: scaffoldgen/cli.py
"""
ScaffoldGen - Command-Line Interface
=====================================

Connection and project settings come from the environment / ``.env``
(see ``scaffoldgen.config``); flags override individual project values.

Usage examples::

    # Generate every table of the configured schema
    scaffoldgen

    # Two tables, with relations, into a custom directory
    scaffoldgen --tables users,posts --relations '*' -o ./apis -v

    # Render everything but write nothing
    scaffoldgen --dry-run

    # Show what the scanner sees
    scaffoldgen --list-tables

    # Serve the HTTP surface
    scaffoldgen --serve

Exit codes:
    0 — success
    1 — configuration error
    2 — connection error
    3 — at least one artifact failed
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from scaffoldgen.config import Settings, load_settings
from scaffoldgen.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    ScaffoldError,
    TableNotFoundError,
)
from scaffoldgen.generator import GenerationReport, ScaffoldGenerator
from scaffoldgen.models import GenerationRequest

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_CONFIG_ERROR: int = 1
EXIT_CONNECTION_ERROR: int = 2
EXIT_ARTIFACT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root scaffoldgen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("scaffoldgen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from scaffoldgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="scaffoldgen",
        description=(
            "ScaffoldGen — schema introspection and template-driven generation.\n\n"
            "Scans a PostgreSQL or MySQL schema, infers entity relations from "
            "foreign keys and renders one set of API-definition files per table."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --tables users,posts --relations '*'\n"
            "  %(prog)s --env-file prod.env -o ./apis --dry-run\n"
            "  %(prog)s --list-tables\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ScaffoldGen v{__version__}",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Settings file to load instead of ./.env.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    exclusive = mode_group.add_mutually_exclusive_group()
    exclusive.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Render every artifact but don't write files to disk.",
    )
    exclusive.add_argument(
        "--list-tables",
        action="store_true",
        default=False,
        help="Print the selected tables and their columns, then exit.",
    )
    exclusive.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Run the HTTP API (API_HOST / API_PORT).",
    )

    # --- Project overrides ---
    project_group = parser.add_argument_group("project overrides")
    project_group.add_argument(
        "--schema",
        type=str,
        default=None,
        metavar="NAME",
        help="Schema to scan (PROJECT_SCHEMA).",
    )
    project_group.add_argument(
        "-t", "--tables",
        type=str,
        default=None,
        metavar="LIST",
        help="Comma-separated tables, or '*' for all (PROJECT_TABLES).",
    )
    project_group.add_argument(
        "-r", "--relations",
        type=str,
        default=None,
        metavar="LIST",
        help="Tables that get relation includes: '*', a list, or '' for none (PROJECT_RELATIONS).",
    )
    project_group.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output root directory (PROJECT_DIR).",
    )
    project_group.add_argument(
        "--file-type",
        type=str,
        default=None,
        metavar="EXT",
        help="Output file type: yaml, json, api or a custom extension (PROJECT_FILE_TYPES).",
    )
    project_group.add_argument(
        "--templates-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Template directory; missing defaults are created there (TEMPLATES_DIR).",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    return parser


# ---------------------------------------------------------------------------
# Request override builder
# ---------------------------------------------------------------------------


def _build_request_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build GenerationRequest overrides from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.schema is not None:
        overrides["schema_name"] = args.schema
    if args.tables is not None:
        overrides["tables"] = args.tables
    if args.relations is not None:
        overrides["relations"] = args.relations
    if args.output is not None:
        overrides["output_dir"] = args.output
    if args.file_type is not None:
        overrides["file_type"] = args.file_type
    if args.templates_dir is not None:
        overrides["templates_dir"] = args.templates_dir
    if args.dry_run:
        overrides["dry_run"] = True

    return overrides


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _run_list_tables(
    generator: ScaffoldGenerator,
    settings: Settings,
    request: GenerationRequest,
) -> int:
    """Print the scanned tables. Returns the appropriate exit code."""
    try:
        result: Dict[str, Any] = generator.introspect(
            settings.connection_config(), request.schema_name, request.tables
        )
    except TableNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    tables: List[Dict[str, Any]] = result["tables"]
    print(f"\n{'='*50}")
    print(f"  Schema {request.schema_name}: {len(tables)} table(s)")
    print(f"{'='*50}")
    for table in tables:
        print(f"  {table['name']}  (pk: {', '.join(table['primary_keys']) or '-'})")
        for fld in table["fields"]:
            flags: str = "".join((
                " PK" if fld["is_primary_key"] else "",
                " FK" if fld["is_foreign_key"] else "",
                " required" if fld["is_required"] else "",
            ))
            print(f"    - {fld['name']:<24s} {fld['type']:<7s} {fld['db_type']}{flags}")
    print(f"{'='*50}\n")
    for warning in result["warnings"]:
        logger.warning("Skipped: %s", warning)
    return EXIT_SUCCESS


def _run_generation(
    generator: ScaffoldGenerator,
    settings: Settings,
    request: GenerationRequest,
) -> int:
    """Run the full generation pipeline. Returns the appropriate exit code."""
    if request.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = generator.generate(settings.connection_config(), request)
    print(report.summary())

    for result in report.results:
        level: int = logging.INFO if result.ok else logging.WARNING
        logger.log(level, "%-7s %s %s", result.status, result.file or result.table, result.message)

    return EXIT_SUCCESS if report.success else EXIT_ARTIFACT_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose

    _setup_logging(verbosity)

    if args.env_file is not None and not Path(args.env_file).is_file():
        logger.error("Environment file not found: %s", args.env_file)
        sys.exit(EXIT_INPUT_ERROR)

    try:
        settings: Settings = load_settings(args.env_file)
        request: GenerationRequest = settings.generation_request(**_build_request_overrides(args))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(EXIT_CONFIG_ERROR)

    if args.serve:
        from scaffoldgen.server import serve

        serve(settings)
        sys.exit(EXIT_SUCCESS)

    logger.info("Schema:  %s", request.schema_name)
    logger.info("Tables:  %s", ", ".join(request.tables))
    logger.info("Output:  %s", Path(request.output_dir).resolve())

    generator: ScaffoldGenerator = ScaffoldGenerator()
    try:
        if args.list_tables:
            exit_code: int = _run_list_tables(generator, settings, request)
        else:
            exit_code = _run_generation(generator, settings, request)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        exit_code = EXIT_CONFIG_ERROR
    except DatabaseConnectionError as exc:
        logger.error("Connection error: %s", exc)
        exit_code = EXIT_CONNECTION_ERROR
    except ScaffoldError as exc:
        logger.error("Generation aborted: %s", exc)
        exit_code = EXIT_ARTIFACT_ERROR

    if exit_code == EXIT_SUCCESS:
        logger.info("Done.")
    else:
        logger.error("Finished with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_CONFIG_ERROR",
    "EXIT_CONNECTION_ERROR",
    "EXIT_ARTIFACT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("scaffoldgen.cli loaded.")
