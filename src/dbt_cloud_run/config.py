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
Typed configuration for triggering a dbt Cloud job.

Values are read from ``INPUT_*`` environment variables, which is how CI
runners expose action inputs. Each optional run override carries its own
coercion rule: empty text means "not set", booleans and integers are parsed
by pydantic, and ``steps_override`` is parsed as YAML.

Example:
    INPUT_DBT_CLOUD_ACCOUNT_ID=123
    INPUT_DBT_CLOUD_JOB_ID=456
    INPUT_STEPS_OVERRIDE='["dbt seed", "dbt run"]'
"""

from typing import Annotated, Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .errors import InputError


DEFAULT_URL = "https://cloud.getdbt.com"
DEFAULT_CAUSE = "Triggered by a CI pipeline"
DEFAULT_INTERVAL = 30

STEPS_OVERRIDE_HELP = (
    "Could not interpret steps_override correctly. Pass valid YAML in a string.\n"
    " Example:\n"
    "  property: '[\"a string\", \"another string\"]'"
)


def parse_steps_override(value: Any) -> Optional[List[str]]:
    """
    Normalize a steps override to a list of commands.

    Accepts YAML text holding either a single string or a sequence of strings,
    or an already-parsed string/list.

    Raises:
        InputError: The text is not valid YAML, or holds something other
            than a string or a list.
    """
    if value is None or value == "":
        return None

    if isinstance(value, str):
        try:
            value = yaml.safe_load(value)
        except yaml.YAMLError as e:
            raise InputError(STEPS_OVERRIDE_HELP) from e

    if value is None:
        return None

    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(step, str) for step in value):
        return list(value)

    raise InputError(STEPS_OVERRIDE_HELP)


class RunOverrides(BaseSettings):
    """Optional per-run overrides for the job definition."""

    model_config = SettingsConfigDict(env_prefix="INPUT_", env_ignore_empty=True, extra="ignore")

    git_sha: Optional[str] = None
    git_branch: Optional[str] = None
    schema_override: Optional[str] = None
    dbt_version_override: Optional[str] = None
    threads_override: Optional[int] = None
    target_name_override: Optional[str] = None
    generate_docs_override: Optional[bool] = None
    timeout_seconds_override: Optional[int] = None
    steps_override: Annotated[Optional[List[str]], NoDecode] = None
    github_pull_request_id: Optional[int] = None

    @field_validator("*", mode="before")
    @classmethod
    def _empty_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("steps_override", mode="before")
    @classmethod
    def _parse_steps(cls, value: Any) -> Any:
        return parse_steps_override(value)

    def to_body(self) -> Dict[str, Any]:
        """Request body fragment; overrides that are not set are left out entirely."""
        return self.model_dump(exclude_none=True)


class ActionConfig(BaseSettings):
    """Everything needed to trigger, follow and clean up one job run."""

    model_config = SettingsConfigDict(env_prefix="INPUT_", env_ignore_empty=True, extra="ignore")

    dbt_cloud_url: str = DEFAULT_URL
    dbt_cloud_token: str = ""
    dbt_cloud_account_id: str
    dbt_cloud_job_id: str

    cause: str = DEFAULT_CAUSE
    interval: float = Field(default=DEFAULT_INTERVAL, ge=0)
    wait_for_job: bool = True
    failure_on_error: bool = True
    get_artifacts: bool = True

    overrides: RunOverrides = Field(default_factory=RunOverrides)
