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
Exceptions raised by the dbt Cloud job runner.

Transport failures are not wrapped here: they surface as aiohttp.ClientError
or asyncio.TimeoutError so callers can tell a flaky network from a bad input.
"""


class DbtCloudError(Exception):
    """Base class for errors raised by this package."""
    pass


class InputError(DbtCloudError):
    """Raised when a configuration value cannot be interpreted. Never retried."""
    pass


class RunLifecycleError(DbtCloudError):
    """Raised when triggering or following a run fails for reasons other than the run itself."""
    pass
