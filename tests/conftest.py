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
Pytest configuration and shared fixtures
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from dbt_cloud_run.client import DbtCloudClient
from dbt_cloud_run.config import ActionConfig, RunOverrides
from dbt_cloud_run.retry import RetryPolicy


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the runner's own INPUT_/STATE_/GITHUB_ variables out of the tests."""
    for name in list(os.environ):
        if name.startswith(("INPUT_", "STATE_", "GITHUB_")) or name == "RUNNER_DEBUG":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_config():
    """Config that waits for the job, fails on error and fetches artifacts."""
    return ActionConfig(
        dbt_cloud_url="https://cloud.example.com",
        dbt_cloud_token="test_token",
        dbt_cloud_account_id="123",
        dbt_cloud_job_id="456",
        interval=10,
        overrides=RunOverrides(),
    )


@pytest.fixture
def make_run():
    """Build a run payload the way the API wraps it."""
    def _make_run(run_id=42, status=1, git_sha=None, steps=None):
        return {
            "status": {"code": 200, "is_success": True},
            "data": {
                "id": run_id,
                "status": status,
                "git_sha": git_sha,
                "href": f"https://cloud.example.com/#/accounts/123/runs/{run_id}/",
                "is_complete": status in (10, 20, 30),
                "is_error": status == 20,
                "run_steps": steps,
            },
        }
    return _make_run


@pytest.fixture
def retry_sleep():
    """Sleep used by the retry policy, so tests never wait."""
    return AsyncMock()


@pytest.fixture
def client(retry_sleep):
    return DbtCloudClient("https://cloud.example.com", "test_token", retry=RetryPolicy(sleep=retry_sleep))


@pytest.fixture
def mock_client():
    """Client double with every API call mocked out."""
    mock = MagicMock(spec=DbtCloudClient)
    mock.submit_run = AsyncMock()
    mock.get_run = AsyncMock()
    mock.get_artifacts = AsyncMock()
    mock.cancel_run = AsyncMock()
    return mock
