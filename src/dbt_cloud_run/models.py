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
Typed snapshots of dbt Cloud runs and their artifacts.

The API reports run state with integer status codes:

    1 Queued, 2 Starting, 3 Running, 10 Success, 20 Error, 30 Cancelled

Runs are read-only here; a fresh snapshot is fetched on every poll.
"""

from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ARTIFACT_NAMES = ("run_results.json", "catalog.json", "manifest.json")


class RunStatus(IntEnum):
    """Run status as reported by the dbt Cloud API."""

    QUEUED = 1
    STARTING = 2
    RUNNING = 3
    SUCCESS = 10
    ERROR = 20
    CANCELLED = 30

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCESS, RunStatus.ERROR, RunStatus.CANCELLED)

    @property
    def is_error(self) -> bool:
        return self is RunStatus.ERROR

    @property
    def label(self) -> str:
        return self.name.title()


class Step(BaseModel):
    """One named stage of a run, with its log text."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    logs: str = ""
    index: int = 0

    @field_validator("logs", mode="before")
    @classmethod
    def _null_logs(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("index", mode="before")
    @classmethod
    def _null_index(cls, value: Any) -> Any:
        return 0 if value is None else value


class Run(BaseModel):
    """Snapshot of a single job run."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: int
    status: RunStatus
    git_sha: Optional[str] = None
    href: Optional[str] = None
    steps: List[Step] = Field(default_factory=list, alias="run_steps")

    @field_validator("steps", mode="before")
    @classmethod
    def _order_steps(cls, value: Any) -> Any:
        if value is None:
            return []
        # Steps without an index keep their wire order
        return sorted(value, key=lambda step: (step.get("index") or 0) if isinstance(step, dict) else step.index)

    @property
    def is_complete(self) -> bool:
        return self.status.is_terminal

    @property
    def is_error(self) -> bool:
        return self.status.is_error

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "Run":
        """Build a Run from an API reply, unwrapping the ``data`` envelope."""
        return cls.model_validate(response.get("data", response))


class ArtifactSet(BaseModel):
    """The three documents dbt Cloud publishes for a finished run."""

    run_results: Dict[str, Any]
    catalog: Dict[str, Any]
    manifest: Dict[str, Any]

    def documents(self) -> Dict[str, Dict[str, Any]]:
        """Map each artifact file name to its document."""
        return dict(zip(ARTIFACT_NAMES, (self.run_results, self.catalog, self.manifest)))


class RunHandle(BaseModel):
    """Run identifier carried from the start phase to the cleanup phase."""

    model_config = ConfigDict(frozen=True)

    run_id: int


class RunResult(BaseModel):
    """What the start phase hands back to its caller."""

    model_config = ConfigDict(frozen=True)

    handle: RunHandle
    run: Run
    failed: bool = False

    def outputs(self) -> Dict[str, Any]:
        # git_sha reflects the last snapshot, which is the submit reply when not waiting
        return {"git_sha": self.run.git_sha, "run_id": self.handle.run_id}


class CleanupOutcome(str, Enum):
    """What the cleanup phase did."""

    CANCELLED = "cancelled"
    NOTHING_TO_CLEAN = "nothing_to_clean"
    FAILED = "failed"
