from html import escape
from pathlib import Path

import structlog

from coverage_server.core.coverage_map import compute_diff, diff_summary, overall_change
from coverage_server.core.exceptions import CommandError, CoverageArtifactError, InvalidBranchError
from coverage_server.core.process import run_command
from coverage_server.core.project import resolve_project_root
from coverage_server.models.schemas import CoverageDiffResult
from coverage_server.services.coverage_service import run_coverage

logger = structlog.get_logger()

BASE_COMPARISON_ERROR = (
    "Failed to compare with base branch. Ensure you have git history and the base branch exists."
)

BADGE_COLORS = {
    "brightgreen": "#4c1",
    "red": "#e05d44",
    "lightgrey": "#9f9f9f",
}


async def validate_branch_name(root: Path, branch: str) -> None:
    """Reject names git would parse as options or that are not valid branch names"""
    if not branch or branch.startswith("-"):
        raise InvalidBranchError(f"Invalid base branch name: {branch!r}")
    result = await run_command(["git", "check-ref-format", "--branch", branch], cwd=str(root), check=False)
    if result.returncode != 0:
        raise InvalidBranchError(f"Invalid base branch name: {branch!r}")


async def generate_coverage_diff(project_path: str, base_branch: str = "main") -> CoverageDiffResult:
    """Compare coverage of the working tree against ``base_branch``.

    The base branch is checked out for the second run and the previous branch
    is restored afterwards. If the base cannot be measured, the result carries
    the current coverage and ``success=False``.
    """
    root = resolve_project_root(project_path)
    await validate_branch_name(root, base_branch)
    current = await run_coverage(root)

    switched = False
    try:
        await run_command(["git", "checkout", base_branch, "--"], cwd=str(root))
        switched = True
        base = await run_coverage(root)
    except (CommandError, CoverageArtifactError) as e:
        logger.warning("Base branch coverage unavailable", base_branch=base_branch, error=str(e))
        return CoverageDiffResult(success=False, error=BASE_COMPARISON_ERROR, current_coverage=current)
    finally:
        if switched:
            await run_command(["git", "checkout", "-"], cwd=str(root))

    diff = compute_diff(base, current)
    return CoverageDiffResult(success=True, diff=diff, summary=diff_summary(diff))


def render_badge(label: str, message: str, color: str) -> str:
    """Flat two-segment badge in the shields.io layout"""
    label_width = max(50, len(label) * 7 + 10)
    message_width = max(40, len(message) * 7 + 10)
    width = label_width + message_width
    fill = BADGE_COLORS.get(color, color)
    label, message = escape(label), escape(message)
    return f"""<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="20" role="img" aria-label="{label}: {message}">
  <title>{label}: {message}</title>
  <rect width="{label_width}" height="20" fill="#555"/>
  <rect x="{label_width}" width="{message_width}" height="20" fill="{fill}"/>
  <g fill="#fff" text-anchor="middle" font-family="Verdana,Geneva,DejaVu Sans,sans-serif" font-size="11">
    <text x="{label_width / 2:g}" y="14">{label}</text>
    <text x="{label_width + message_width / 2:g}" y="14">{message}</text>
  </g>
</svg>
"""


async def generate_coverage_badge(project_path: str, base_branch: str = "main") -> str:
    result = await generate_coverage_diff(project_path, base_branch)
    if not result.success:
        return render_badge("coverage", "N/A", "lightgrey")

    change = overall_change(result.diff)
    color = "brightgreen" if change >= 0 else "red"
    return render_badge("coverage", f"Δ {change:.1f}%", color)
