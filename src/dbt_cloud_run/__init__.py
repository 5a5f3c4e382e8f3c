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
dbt Cloud job runner (asynchronous)

Triggers a dbt Cloud job from a CI pipeline, waits for it, prints step logs
when it fails, saves its artifacts, and cancels it if the pipeline is torn
down first.

Example usage:
    import asyncio
    from dbt_cloud_run import ActionConfig, start, cleanup

    config = ActionConfig(dbt_cloud_account_id="123", dbt_cloud_job_id="456")
    result = asyncio.run(start(config))
    print(result.outputs())

    # later, from the pipeline's teardown hook
    asyncio.run(cleanup(result.handle, config))
"""

from .client import DbtCloudClient
from .config import ActionConfig, RunOverrides, parse_steps_override
from .errors import DbtCloudError, InputError, RunLifecycleError
from .lifecycle import cleanup, start
from .models import (
    ArtifactSet,
    CleanupOutcome,
    Run,
    RunHandle,
    RunResult,
    RunStatus,
    Step,
)
from .retry import RetryPolicy

__version__ = "1.0.0"
__all__ = [
    "DbtCloudClient",
    "ActionConfig",
    "RunOverrides",
    "parse_steps_override",
    "DbtCloudError",
    "InputError",
    "RunLifecycleError",
    "start",
    "cleanup",
    "ArtifactSet",
    "CleanupOutcome",
    "Run",
    "RunHandle",
    "RunResult",
    "RunStatus",
    "Step",
    "RetryPolicy",
]
