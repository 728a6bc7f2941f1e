"""Command line interface for the edgeserver deploy step."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .cli_progress import DeployOutput
from .config import load_config, load_env_file, resolve_default_env_file
from .errors import ConfigurationError
from .orchestrator import DEFAULT_ARCHIVE_PATH, DeploymentPipeline

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is
    provided. Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edgeserver-upload",
        description="Package a build directory and deploy it to an edgeserver instance.",
    )
    parser.add_argument(
        "--server",
        default=None,
        help="Deployment server URL (default from EDGESERVER_SERVER or INPUT_SERVER)",
    )
    parser.add_argument(
        "--app-id",
        dest="app_id",
        default=None,
        help="Numeric app id of the target site (default from EDGESERVER_APP_ID or INPUT_APP_ID)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Bearer token (default from EDGESERVER_TOKEN or INPUT_TOKEN)",
    )
    parser.add_argument(
        "--directory",
        default=None,
        help="Build output directory to deploy, e.g. dist (default from EDGESERVER_DIRECTORY or INPUT_DIRECTORY)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=DEFAULT_ARCHIVE_PATH,
        help=f"Archive path (default: {DEFAULT_ARCHIVE_PATH})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Upload timeout in seconds (default: no timeout)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Disable logs")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"edgeserver-upload {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None, console: Optional[Console] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    output = DeployOutput(console)

    used_env_file = args.env_file or resolve_default_env_file()
    if used_env_file is not None:
        try:
            load_env_file(Path(used_env_file))
        except ConfigurationError as exc:
            output.error(exc.message)
            return EXIT_FAILURE

    _setup_logging(debug=args.debug, silent=args.silent, log_level=args.log_level)
    logger = logging.getLogger(__name__)

    output.banner(__version__)

    try:
        config = load_config(
            {
                "server": args.server,
                "app_id": args.app_id,
                "token": args.token,
                "directory": args.directory,
            }
        )
    except ConfigurationError as exc:
        logger.error("Invalid configuration for %s: %s", exc.field, exc.message)
        output.validation_error(exc)
        return EXIT_FAILURE

    output.configuration_summary(
        config,
        {
            "Archive": str(args.output),
            "Env File": str(used_env_file) if used_env_file else "-",
        },
    )

    pipeline = DeploymentPipeline(
        config,
        output,
        archive_path=args.output,
        timeout=args.timeout,
    )
    try:
        result = asyncio.run(pipeline.run())
    except KeyboardInterrupt:
        output.error("Cancelled.")
        return EXIT_INTERRUPTED

    return result.exit_code


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
