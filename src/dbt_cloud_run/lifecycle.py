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
Two-phase lifecycle of one CI invocation.

    start(config)            trigger the job, follow it, save artifacts
    cleanup(handle, config)  cancel the run if the pipeline was torn down early

The caller decides which phase to run and carries the RunHandle between them.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .artifacts import ARTIFACTS_DIR, fetch_artifacts
from .client import DbtCloudClient
from .config import ActionConfig
from .errors import RunLifecycleError
from .models import CleanupOutcome, RunHandle, RunResult
from .poller import execute_run


logger = logging.getLogger(__name__)


async def start(
    config: ActionConfig,
    client: Optional[DbtCloudClient] = None,
    on_submitted: Optional[Callable[[RunHandle], None]] = None,
    artifacts_dir: Union[str, Path] = ARTIFACTS_DIR,
) -> RunResult:
    """
    Trigger the job, wait for it as configured and fetch its artifacts.

    A run that ends in error is not an exception here; it is reported
    through ``RunResult.failed``.

    Raises:
        RunLifecycleError: Anything else went wrong talking to dbt Cloud or
            writing artifacts; the original error is chained as the cause
    """
    client = client or DbtCloudClient.from_config(config)

    try:
        result = await execute_run(client, config, on_submitted)

        if config.get_artifacts:
            await fetch_artifacts(client, config.dbt_cloud_account_id, result.handle.run_id, artifacts_dir)
    except Exception as e:
        raise RunLifecycleError(str(e) or type(e).__name__) from e

    return result


async def cleanup(
    handle: RunHandle,
    config: ActionConfig,
    client: Optional[DbtCloudClient] = None,
) -> CleanupOutcome:
    """
    Cancel the run behind ``handle`` if it is still going and we were waiting on it.

    Never raises: the start phase already reported the real result, so
    problems here are logged and returned as CleanupOutcome.FAILED.
    """
    try:
        client = client or DbtCloudClient.from_config(config)
        account_id = config.dbt_cloud_account_id

        run = await client.get_run(account_id, handle.run_id)
        if run is None:
            raise RunLifecycleError(f"Could not fetch run {handle.run_id}")

        if not run.is_complete and config.wait_for_job:
            logger.info("Cancelling job...")
            await client.cancel_run(account_id, handle.run_id)
            return CleanupOutcome.CANCELLED

        logger.info("Nothing to clean")
        return CleanupOutcome.NOTHING_TO_CLEAN
    except Exception as e:
        logger.error("There has been a problem with cleaning up your dbt Cloud job:\n%s", e)
        logger.debug("Cleanup failure", exc_info=True)
        return CleanupOutcome.FAILED
