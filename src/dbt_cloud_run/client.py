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
dbt Cloud API client (asynchronous).

Library Usage:
    import asyncio
    from dbt_cloud_run.client import DbtCloudClient
    from dbt_cloud_run.config import RunOverrides

    async def main():
        client = DbtCloudClient("https://cloud.getdbt.com", token)

        # Trigger a run
        run = await client.submit_run(account_id, job_id, "Triggered by CI", RunOverrides())

        # Fetch its current state (None if the API could not be reached)
        run = await client.get_run(account_id, run.id)

        # Download run_results.json, catalog.json and manifest.json
        artifacts = await client.get_artifacts(account_id, run.id)

        # Cancel it
        await client.cancel_run(account_id, run.id)

    asyncio.run(main())

Request Authentication:
    Authorization: Bearer <token>

Every request has a 5 second timeout and goes through RetryPolicy, so
connection errors are retried up to 3 times before they reach the caller.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from .config import ActionConfig, RunOverrides
from .models import ARTIFACT_NAMES, ArtifactSet, Run
from .retry import RetryPolicy


logger = logging.getLogger(__name__)

API_PATH = "/api/v2"
REQUEST_TIMEOUT = 5  # seconds, per attempt


class DbtCloudClient:
    """Typed operations against the dbt Cloud v2 API."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = REQUEST_TIMEOUT,
        retry: Optional[RetryPolicy] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.retry = retry or RetryPolicy()

    @classmethod
    def from_config(cls, config: ActionConfig) -> "DbtCloudClient":
        return cls(config.dbt_cloud_url, config.dbt_cloud_token)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _send(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Make a single authenticated HTTP request to the API.

        Raises aiohttp.ClientError on network errors and non-2xx replies.
        Raises asyncio.TimeoutError when the request takes too long.
        """
        url = f"{self.base_url}{API_PATH}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession() as session:
            async with session.request(
                method, url, headers=self._headers(), json=data, params=params, timeout=timeout
            ) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)

    async def _make_request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send a request, retrying transport failures."""
        return await self.retry.call(method, self._send, method, path, data, params)

    async def submit_run(
        self,
        account_id: str,
        job_id: str,
        cause: str,
        overrides: Optional[RunOverrides] = None,
    ) -> Run:
        """
        Trigger a new run of a job.

        Args:
            account_id: dbt Cloud account ID
            job_id: Job to run
            cause: Free-text reason shown in dbt Cloud
            overrides: Optional per-run overrides; unset ones are omitted

        Returns:
            The newly created run as reported at submission time

        Raises:
            aiohttp.ClientError: Network errors (after retries)
            asyncio.TimeoutError: API did not answer in time (after retries)
        """
        body: Dict[str, Any] = {"cause": cause}
        if overrides is not None:
            body.update(overrides.to_body())

        logger.debug("Run job body:\n%s", json.dumps(body, indent=2))

        response = await self._make_request("POST", f"/accounts/{account_id}/jobs/{job_id}/run/", body)
        return Run.from_response(response)

    async def get_run(self, account_id: str, run_id: int) -> Optional[Run]:
        """
        Get the current state of a run, including its steps.

        Transport failures are logged and reported as None so that a polling
        caller can try again on its next tick.

        Returns:
            The run, or None if it could not be fetched
        """
        try:
            response = await self._make_request(
                "GET",
                f"/accounts/{account_id}/runs/{run_id}/",
                params={"include_related": '["run_steps"]'},
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error_msg = str(e) or type(e).__name__
            if isinstance(e, asyncio.TimeoutError):
                error_msg += ". The dbt Cloud API is taking too long to respond."
            logger.error("Error getting job information from dbt Cloud. %s", error_msg)
            return None

        return Run.from_response(response)

    async def get_artifacts(self, account_id: str, run_id: int) -> ArtifactSet:
        """
        Fetch run_results.json, catalog.json and manifest.json for a run.

        Documents are fetched one after another; any failure is raised.
        """
        documents = []
        for name in ARTIFACT_NAMES:
            documents.append(
                await self._make_request("GET", f"/accounts/{account_id}/runs/{run_id}/artifacts/{name}")
            )

        run_results, catalog, manifest = documents
        return ArtifactSet(run_results=run_results, catalog=catalog, manifest=manifest)

    async def cancel_run(self, account_id: str, run_id: int) -> Run:
        """Ask dbt Cloud to cancel a run. Errors are raised to the caller."""
        response = await self._make_request("POST", f"/accounts/{account_id}/runs/{run_id}/cancel/")
        return Run.from_response(response)
