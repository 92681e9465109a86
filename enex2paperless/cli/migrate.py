"""Command-line front end for migrating an ENEX export.

Usage::

    enex2paperless notes.enex
    enex2paperless notes.enex -c 4 -t scanned,evernote -T
    enex2paperless notes.enex -o ./attachments --unzip
    enex2paperless notes.enex --list

Connection settings come from ``config.yaml`` (``--config``) and ``E2P_*``
environment variables; flags override both.  When notes fail, the user is
asked before each retry cycle unless ``--yes`` is given.

Exit codes: 0 when every note went through, 1 on configuration or pipeline
errors, or when notes were still failing at the end.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

from enex2paperless.config.loader import load_config
from enex2paperless.main import run_migration
from enex2paperless.models.pipeline import ProcessOptions, RetryPrompt
from enex2paperless.services.note_inspector import summarize
from enex2paperless.utils.errors import ConfigurationError, PipelineError
from enex2paperless.utils.logging import configure_logging, get_logger

# Retry cycles run unattended with --yes before giving up.
_AUTO_RETRY_LIMIT = 3


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="enex2paperless",
        description="Migrate Evernote ENEX exports into Paperless-NGX or a local folder.",
    )
    parser.add_argument("enex_file", type=str, help="Path to the .enex export file.")
    parser.add_argument(
        "--concurrent", "-c",
        type=int,
        default=1,
        help="Number of concurrent upload workers (default: 1).",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--nocolor", "-n",
        action="store_true",
        help="Disable coloured log output.",
    )
    parser.add_argument(
        "--outputfolder", "-o",
        type=str,
        default=None,
        help="Write attachments to this folder instead of Paperless.",
    )
    parser.add_argument(
        "--tags", "-t",
        action="append",
        default=[],
        help="Additional tags for every document (comma-separated, repeatable).",
    )
    parser.add_argument(
        "--use-filename-tag", "-T",
        action="store_true",
        help="Add the ENEX file name (without extension) as a tag.",
    )
    parser.add_argument(
        "--unzip", "-u",
        action="store_true",
        help="Expand .zip attachments and handle their files individually.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to the YAML config file (default: config.yaml).",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Only list the notes in the export; nothing is uploaded.",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help=f"Retry failed notes without asking (at most {_AUTO_RETRY_LIMIT} times).",
    )
    return parser


def _collect_tags(args: argparse.Namespace) -> list[str]:
    tags: list[str] = []
    for value in args.tags:
        tags.extend(part.strip() for part in value.split(",") if part.strip())
    if args.use_filename_tag:
        tags.append(Path(args.enex_file).stem)
    return list(dict.fromkeys(tags))


def interactive_retry_prompt(
    read: Callable[[], str] = input,
    write: Callable[[str], None] = print,
) -> RetryPrompt:
    """Return a prompt that asks on the terminal before each retry cycle."""
    logger = get_logger(__name__)

    def prompt(failed_count: int) -> bool:
        logger.warning("retry_cycle_pending", failed_notes=failed_count)
        write("Press 'x' to exit or any other key to continue.")
        try:
            answer = read()
        except EOFError:
            return False
        if answer.strip()[:1] == "x":
            write("Exiting...")
            return False
        return True

    return prompt


def automatic_retry_prompt(limit: int = _AUTO_RETRY_LIMIT) -> RetryPrompt:
    """Return a prompt that agrees to the first *limit* retry cycles."""
    logger = get_logger(__name__)
    remaining = [limit]

    def prompt(failed_count: int) -> bool:
        if remaining[0] <= 0:
            logger.warning("retry_limit_reached", failed_notes=failed_count, limit=limit)
            return False
        remaining[0] -= 1
        logger.warning("retry_cycle_starting", failed_notes=failed_count)
        return True

    return prompt


async def _run(args: argparse.Namespace) -> int:
    logger = get_logger(__name__)
    enex_path = Path(args.enex_file).resolve()

    if args.list:
        try:
            await asyncio.to_thread(summarize, enex_path)
        except PipelineError as exc:
            logger.error("list_failed", error=str(exc))
            return 1
        return 0

    try:
        settings = load_config(
            args.config,
            output_folder=args.outputfolder or None,
            unzip=True if args.unzip else None,
        )
    except ConfigurationError as exc:
        logger.error("configuration_error", error=str(exc))
        return 1

    if settings.output_folder:
        logger.info("output_to_folder_enabled", folder=settings.output_folder)

    options = ProcessOptions(
        concurrent_workers=args.concurrent,
        output_folder=settings.output_folder,
        retry_prompt=automatic_retry_prompt() if args.yes else interactive_retry_prompt(),
    )

    try:
        result = await run_migration(enex_path, settings, options, extra_tags=_collect_tags(args))
    except PipelineError as exc:
        logger.error("pipeline_failed", error=str(exc))
        return 1

    if result.failed_notes:
        logger.error(
            "notes_still_failing",
            failed_notes=len(result.failed_notes),
            titles=[note.title for note in result.failed_notes],
        )
        return 1

    logger.info("all_notes_processed_successfully")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Exits with the code returned by the run."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        log_level="DEBUG" if args.verbose else "INFO",
        no_color=args.nocolor,
    )

    exit_code = asyncio.run(_run(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
