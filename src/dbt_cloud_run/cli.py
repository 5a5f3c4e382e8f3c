# This is free software for the public good of a permacomputer hosted at
# permacomputer.com, an always-on computer by the people, for the people.
# One which is durable, easy to repair, & distributed like tap water
# for machine learning intelligence.
#
# The permacomputer is community-owned infrastructure optimized around
# four values:
#
#   TRUTH      First principles, math & science, open source code freely distributed
#   FREEDOM    Voluntary partnerships, freedom from tyranny & corporate control
#   HARMONY    Minimal waste, self-renewing systems with diverse thriving connections
#   LOVE       Be yourself without hurting others, cooperation through natural law
#
# This software contributes to that vision by letting CI pipelines trigger, follow and clean up dbt Cloud job runs through a unified interface, accessible to all.
# Code is seeds to sprout on any abandoned technology.

"""
Command line entry point for CI pipelines.

Usage:
    dbt-cloud-run start      # trigger, wait, fetch artifacts
    dbt-cloud-run cleanup    # cancel the run if the pipeline was cancelled

Inputs come from ``INPUT_*`` environment variables (see config.py); the
global flags below take priority over them.

Exit codes:
    0  success (cleanup always exits 0)
    1  the dbt Cloud run failed with failure_on_error set, or the
       integration itself malfunctioned
    2  invalid configuration
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import ActionConfig
from .errors import InputError, RunLifecycleError
from .lifecycle import cleanup, start
from .logging_config import configure_logging
from .models import RunHandle
from .state import StateFile, load_run_handle, save_run_handle, write_outputs


logger = logging.getLogger(__name__)


def _escape_annotation(message: str) -> str:
    """Escape a message for a single-line runner annotation; % must go first."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _report_failure(message: str) -> None:
    """Print a failure so the CI runner marks the step as failed."""
    if os.environ.get("GITHUB_ACTIONS") == "true":
        print(f"::error::{_escape_annotation(message)}")
    else:
        print(f"Error: {message}", file=sys.stderr)


def _cause_chain(exc: BaseException) -> str:
    parts = []
    cause = exc.__cause__
    while cause is not None:
        parts.append(f"  caused by {type(cause).__name__}: {cause}")
        cause = cause.__cause__
    return "\n".join(parts)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbt-cloud-run",
        description="Trigger a dbt Cloud job from CI and follow it to completion",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        default=os.environ.get("RUNNER_DEBUG") == "1",
                        help="Log debug output (on when RUNNER_DEBUG=1)")
    parser.add_argument("--url", help="dbt Cloud base URL (INPUT_DBT_CLOUD_URL)")
    parser.add_argument("--token", help="dbt Cloud API token (INPUT_DBT_CLOUD_TOKEN)")
    parser.add_argument("--account-id", help="dbt Cloud account ID (INPUT_DBT_CLOUD_ACCOUNT_ID)")
    parser.add_argument("--job-id", help="dbt Cloud job ID (INPUT_DBT_CLOUD_JOB_ID)")

    subparsers = parser.add_subparsers(dest="command")

    start_parser = subparsers.add_parser("start", help="Trigger the job and wait for it")
    start_parser.add_argument("--state-file", default=os.environ.get("GITHUB_STATE"),
                              help="File the run ID is saved to for cleanup (default: $GITHUB_STATE)")
    start_parser.add_argument("--output-file", default=os.environ.get("GITHUB_OUTPUT"),
                              help="File outputs are written to (default: $GITHUB_OUTPUT, else stdout)")
    start_parser.add_argument("--artifacts-dir", default="target",
                              help="Directory artifacts are saved in (default: target)")

    cleanup_parser = subparsers.add_parser("cleanup", help="Cancel the run if it is still going")
    cleanup_parser.add_argument("--run-id", type=int,
                                help="Run to clean up (default: $STATE_dbtCloudRunID or the state file)")
    cleanup_parser.add_argument("--state-file", default=os.environ.get("GITHUB_STATE"),
                                help="State file written by the start phase")

    return parser


def _load_config(args: argparse.Namespace) -> ActionConfig:
    cli_values: Dict[str, Any] = {
        "dbt_cloud_url": args.url,
        "dbt_cloud_token": args.token,
        "dbt_cloud_account_id": args.account_id,
        "dbt_cloud_job_id": args.job_id,
    }
    return ActionConfig(**{key: value for key, value in cli_values.items() if value is not None})


async def _handle_start_command(args: argparse.Namespace, config: ActionConfig) -> int:
    """Handle the start phase."""
    state = StateFile(args.state_file) if args.state_file else None

    def on_submitted(handle: RunHandle) -> None:
        # Saved before polling so the cleanup phase can cancel the run
        if state is not None:
            save_run_handle(state, handle)

    try:
        result = await start(config, on_submitted=on_submitted, artifacts_dir=args.artifacts_dir)
    except RunLifecycleError as e:
        _report_failure(f"There has been a problem with running your dbt Cloud job:\n{e}\n{_cause_chain(e)}")
        logger.debug("Start failure", exc_info=True)
        return 1

    outputs = result.outputs()
    logger.info("dbt Cloud Job commit SHA is %s", outputs["git_sha"])

    if args.output_file:
        write_outputs(args.output_file, outputs)
    else:
        for name, value in outputs.items():
            print(f"{name}={'' if value is None else value}")

    if result.failed:
        _report_failure(f"dbt Cloud run {result.handle.run_id} finished with '{result.run.status.label}'")
        return 1
    return 0


async def _handle_cleanup_command(args: argparse.Namespace, config: ActionConfig) -> int:
    """Handle the cleanup phase. Always succeeds."""
    try:
        if args.run_id is not None:
            handle: Optional[RunHandle] = RunHandle(run_id=args.run_id)
        else:
            handle = load_run_handle(StateFile(args.state_file) if args.state_file else None)
    except ValueError as e:
        logger.error("Could not read the saved run ID: %s", e)
        return 0

    if handle is None:
        logger.info("No run was started. Nothing to clean")
        return 0

    outcome = await cleanup(handle, config)
    logger.debug("Cleanup outcome: %s", outcome.value)
    return 0


async def _async_main(argv: Optional[List[str]] = None) -> int:
    """Async main entry point for CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 2

    try:
        config = _load_config(args)
    except (InputError, ValidationError) as e:
        if args.command == "cleanup":
            logger.error("Cannot clean up, invalid configuration:\n%s", e)
            return 0
        _report_failure(str(e) if isinstance(e, InputError) else f"Invalid configuration:\n{e}")
        return 2

    if args.command == "start":
        return await _handle_start_command(args, config)
    return await _handle_cleanup_command(args, config)


def cli_main():
    """Main entry point for CLI - wraps async main."""
    sys.exit(asyncio.run(_async_main()))


if __name__ == "__main__":
    cli_main()
