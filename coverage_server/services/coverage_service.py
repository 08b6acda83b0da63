from pathlib import Path

import structlog

from coverage_server.core.coverage_map import find_uncovered, uncovered_files
from coverage_server.core.exceptions import CommandError, CoverageArtifactError
from coverage_server.core.process import run_command
from coverage_server.core.project import (
    CoverageMap,
    coverage_artifact_path,
    load_coverage_artifact,
    resolve_project_root,
)
from coverage_server.models.schemas import CoverageAnalysis

logger = structlog.get_logger()

VITEST_COVERAGE_COMMAND = ["npx", "vitest", "run", "--coverage", "--reporter=json"]


async def run_coverage(root: Path) -> CoverageMap:
    """Run Vitest with coverage and return the fresh coverage map.

    Vitest exits non-zero on failing tests or unmet thresholds while still
    writing the artifact, so the run only fails when no artifact was produced.
    """
    artifact = coverage_artifact_path(root)
    artifact.unlink(missing_ok=True)

    result = await run_command(VITEST_COVERAGE_COMMAND, cwd=str(root), check=False)
    if not artifact.is_file():
        if result.returncode == 0:
            raise CoverageArtifactError(f"Failed to read coverage file: {artifact} was not written", str(artifact))
        raise CommandError(" ".join(VITEST_COVERAGE_COMMAND), result.returncode, result.stdout, result.stderr)
    return load_coverage_artifact(artifact)


async def analyze_coverage(project_path: str) -> CoverageAnalysis:
    root = resolve_project_root(project_path)
    coverage = await run_coverage(root)
    uncovered = find_uncovered(coverage)
    files = uncovered_files(uncovered)
    logger.info("Coverage analyzed", project=str(root), uncovered_items=len(uncovered), uncovered_files=len(files))
    return CoverageAnalysis(
        uncovered=uncovered,
        uncovered_files=files,
        coverage_path=str(coverage_artifact_path(root)),
    )
