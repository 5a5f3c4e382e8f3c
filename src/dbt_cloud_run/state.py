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
Append-only ``key=value`` files shared with the CI runner.

The runner hands the start phase a state file (``$GITHUB_STATE``) and an
output file (``$GITHUB_OUTPUT``). Whatever the start phase saves to the
state file is exposed to the cleanup phase as ``STATE_<key>`` environment
variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .models import RunHandle


RUN_ID_KEY = "dbtCloudRunID"


class StateFile:
    """A file of ``key=value`` lines that is only ever appended to."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, key: str, value: Any) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"{key}={value}{os.linesep}")

    def read(self, key: str) -> Optional[str]:
        """Return the last value written for ``key``, or None."""
        if not self.path.exists():
            return None

        found = None
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                name, sep, value = line.rstrip("\r\n").partition("=")
                if sep and name == key:
                    found = value
        return found


def save_run_handle(state: StateFile, handle: RunHandle) -> None:
    state.append(RUN_ID_KEY, handle.run_id)


def load_run_handle(
    state: Optional[StateFile] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[RunHandle]:
    """
    Find the run started by the start phase, if any.

    Priority:
        1. ``STATE_dbtCloudRunID`` environment variable
        2. The state file
    """
    environ = os.environ if environ is None else environ

    value = environ.get(f"STATE_{RUN_ID_KEY}")
    if not value and state is not None:
        value = state.read(RUN_ID_KEY)
    if not value:
        return None
    return RunHandle(run_id=int(value))


def write_outputs(path: Union[str, Path], outputs: Dict[str, Any]) -> None:
    output_file = StateFile(path)
    for name, value in outputs.items():
        output_file.append(name, "" if value is None else value)
