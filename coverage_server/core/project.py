import json
from pathlib import Path
from typing import Any, Dict

import structlog

from coverage_server.config.settings import settings
from coverage_server.core.exceptions import CoverageArtifactError, ProjectNotFoundError

logger = structlog.get_logger()

CoverageMap = Dict[str, Dict[str, Any]]


def resolve_project_root(project_path: str) -> Path:
    """Return the absolute project directory, failing if it does not exist"""
    root = Path(project_path).expanduser().resolve()
    if not root.is_dir():
        raise ProjectNotFoundError(f"Project path does not exist: {project_path}")
    return root


def coverage_dir(root: Path) -> Path:
    return root / settings.coverage_dir


def coverage_artifact_path(root: Path) -> Path:
    return coverage_dir(root) / settings.coverage_file


def load_json_artifact(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CoverageArtifactError(f"Artifact not found: {path}", str(path)) from e
    except (OSError, ValueError) as e:
        logger.error("Failed to read artifact", path=str(path), error=str(e))
        raise CoverageArtifactError(f"Failed to read artifact {path}: {e}", str(path)) from e


def load_coverage_artifact(path: Path) -> CoverageMap:
    """Read a ``coverage-final.json`` file produced by the Istanbul/v8 reporters"""
    try:
        coverage = load_json_artifact(path)
    except CoverageArtifactError as e:
        raise CoverageArtifactError(f"Failed to read coverage file: {e}", str(path)) from e
    if not isinstance(coverage, dict):
        raise CoverageArtifactError(f"Failed to read coverage file: {path} is not a JSON object", str(path))
    return coverage
