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
Submit a run and follow it to a terminal state.

    Submitted -> Polling -> Terminal

Polling sleeps ``interval`` seconds before every fetch. A fetch that fails
(get_run returns None) is simply tried again on the next tick; there is no
overall deadline, the loop ends only when dbt Cloud reports the run complete.

When the caller does not wait, the run is treated as terminal right after
submission. Its status and git_sha are then the ones reported at submit time,
not the outcome of the run.
"""

import asyncio
import logging
from typing import Callable, Optional

from .client import DbtCloudClient
from .config import ActionConfig
from .models import Run, RunHandle, RunResult


logger = logging.getLogger(__name__)

ERROR_LOG_DELAY = 5  # seconds for step logs to show up after a failure
STEP_SEPARATOR = "\n************\n"


async def wait_for_run(client: DbtCloudClient, account_id: str, run_id: int, interval: float) -> Run:
    """
    Poll a run until dbt Cloud reports it complete.

    Args:
        client: API client
        account_id: dbt Cloud account ID
        run_id: Run to follow
        interval: Seconds to sleep before each fetch

    Returns:
        The first snapshot whose status is terminal (Success, Error, Cancelled)
    """
    while True:
        await asyncio.sleep(interval)

        run = await client.get_run(account_id, run_id)
        if run is None:
            # Retry if there is no response
            continue

        logger.info("Run: %s - %s", run.id, run.status.label)
        if run.is_complete:
            logger.info("job finished with '%s'", run.status.label)
            return run


def emit_step_logs(run: Run) -> None:
    """Write every step's name and log text, in step order."""
    for step in run.steps:
        logger.info("# %s", step.name)
        logger.info("%s", step.logs)
        logger.info(STEP_SEPARATOR)


async def load_run_logs(client: DbtCloudClient, account_id: str, run: Run) -> Run:
    """
    Give dbt Cloud a moment to publish step logs, then fetch and print them.

    Only one re-fetch is made. If it fails the logs are reported as
    unavailable and the snapshot passed in is returned.
    """
    logger.info("Loading logs...")
    await asyncio.sleep(ERROR_LOG_DELAY)

    refreshed = await client.get_run(account_id, run.id)
    if refreshed is None:
        logger.warning("Run logs are unavailable for run %s", run.id)
        return run

    emit_step_logs(refreshed)
    return refreshed


async def execute_run(
    client: DbtCloudClient,
    config: ActionConfig,
    on_submitted: Optional[Callable[[RunHandle], None]] = None,
) -> RunResult:
    """
    Trigger the configured job and follow it according to ``config``.

    ``on_submitted`` is called with the run handle as soon as the run exists,
    before any polling, so the run can be cancelled even if this process dies.

    Returns:
        RunResult whose ``failed`` flag is set when the run ended in error
        and ``config.failure_on_error`` is on
    """
    account_id = config.dbt_cloud_account_id

    run = await client.submit_run(account_id, config.dbt_cloud_job_id, config.cause, config.overrides)
    logger.info("Triggered job. %s", run.href)

    handle = RunHandle(run_id=run.id)
    if on_submitted is not None:
        on_submitted(handle)

    if config.wait_for_job:
        run = await wait_for_run(client, account_id, run.id, config.interval)
    else:
        logger.info("Not waiting for job to finish. Relevant run logs will be omitted.")

    failed = run.is_error and config.failure_on_error

    if run.is_error:
        run = await load_run_logs(client, account_id, run)

    return RunResult(handle=handle, run=run, failed=failed)
