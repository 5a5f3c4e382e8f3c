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

"""Persist run artifacts to a local directory."""

import json
import logging
from pathlib import Path
from typing import List, Union

from .client import DbtCloudClient
from .models import ArtifactSet


logger = logging.getLogger(__name__)

ARTIFACTS_DIR = Path("target")


def save_artifacts(artifacts: ArtifactSet, target_dir: Union[str, Path] = ARTIFACTS_DIR) -> List[Path]:
    """Write each document as JSON, replacing files left by an earlier fetch."""
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for name, document in artifacts.documents().items():
        path = target_dir / name
        path.write_text(json.dumps(document), encoding="utf-8")
        written.append(path)
    return written


async def fetch_artifacts(
    client: DbtCloudClient,
    account_id: str,
    run_id: int,
    target_dir: Union[str, Path] = ARTIFACTS_DIR,
) -> List[Path]:
    """
    Download all three artifacts of a run and save them under ``target_dir``.

    Nothing is written unless every download succeeds.
    """
    artifacts = await client.get_artifacts(account_id, run_id)

    logger.info("Saving artifacts in %s directory", target_dir)
    return save_artifacts(artifacts, target_dir)
