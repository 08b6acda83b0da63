"""
Pure computations over an Istanbul ``coverage-final.json`` map.

The artifact maps each source file to hit counters::

    {"src/App.tsx": {"s": {"0": 3, "1": 0},
                     "b": {"0": [1, 0]},
                     "f": {"0": 2}, ...}}

``s`` holds statement counts, ``b`` one count per branch arm and ``f``
function counts. Missing sections are treated as empty.
"""

import math
from typing import Any, Dict, Iterable, List

from coverage_server.core.project import CoverageMap
from coverage_server.models.schemas import (
    DiffSummary,
    FileCoverageDiff,
    FileCoverageStats,
    UncoveredItem,
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(covered: int, total: int) -> int:
    return round_half_up(covered / total * 100) if total else 0


def _section(file_data: Dict[str, Any], key: str) -> Dict[str, Any]:
    return file_data.get(key) or {}


def find_uncovered(coverage: CoverageMap) -> List[UncoveredItem]:
    """Return every statement, branch and function with a zero hit count.

    A branch is uncovered as soon as one of its arms was never taken.
    """
    uncovered: List[UncoveredItem] = []
    for file, data in coverage.items():
        for stmt_id, count in _section(data, "s").items():
            if count == 0:
                uncovered.append(UncoveredItem(file=file, type="statement", id=str(stmt_id)))
        for branch_id, counts in _section(data, "b").items():
            if any(c == 0 for c in counts):
                uncovered.append(UncoveredItem(file=file, type="branch", id=str(branch_id)))
        for fn_id, count in _section(data, "f").items():
            if count == 0:
                uncovered.append(UncoveredItem(file=file, type="function", id=str(fn_id)))
    return uncovered


def uncovered_files(items: Iterable[UncoveredItem]) -> List[str]:
    """Distinct files of the given items, in first-seen order"""
    return list(dict.fromkeys(item.file for item in items))


def statement_hits(file_data: Dict[str, Any]) -> int:
    return sum(_section(file_data, "s").values())


def branch_hits(file_data: Dict[str, Any]) -> int:
    return sum(sum(counts) for counts in _section(file_data, "b").values())


def file_stats(file_data: Dict[str, Any]) -> FileCoverageStats:
    statements = list(_section(file_data, "s").values())
    arms = [c for counts in _section(file_data, "b").values() for c in counts]
    functions = list(_section(file_data, "f").values())

    covered_statements = sum(1 for c in statements if (c or 0) > 0)
    covered_branches = sum(1 for c in arms if (c or 0) > 0)
    covered_functions = sum(1 for c in functions if (c or 0) > 0)

    return FileCoverageStats(
        total_statements=len(statements),
        covered_statements=covered_statements,
        uncovered_statements=len(statements) - covered_statements,
        total_branches=len(arms),
        covered_branches=covered_branches,
        total_functions=len(functions),
        covered_functions=covered_functions,
        statement_coverage=percentage(covered_statements, len(statements)),
        branch_coverage=percentage(covered_branches, len(arms)),
        function_coverage=percentage(covered_functions, len(functions)),
    )


def compute_diff(base: CoverageMap, current: CoverageMap) -> Dict[str, FileCoverageDiff]:
    """Per-file statement and branch hit totals of two coverage maps.

    A file present on one side only counts as zero hits on the other.
    """
    result: Dict[str, FileCoverageDiff] = {}
    for file in dict.fromkeys([*base, *current]):
        base_data = base.get(file) or {}
        current_data = current.get(file) or {}
        base_statements = statement_hits(base_data)
        current_statements = statement_hits(current_data)
        base_branches = branch_hits(base_data)
        current_branches = branch_hits(current_data)
        result[file] = FileCoverageDiff(
            base_statements=base_statements,
            current_statements=current_statements,
            statement_change=current_statements - base_statements,
            base_branches=base_branches,
            current_branches=current_branches,
            branch_change=current_branches - base_branches,
        )
    return result


def diff_summary(diff: Dict[str, FileCoverageDiff]) -> DiffSummary:
    improved = sum(1 for entry in diff.values() if entry.statement_change > 0)
    degraded = sum(1 for entry in diff.values() if entry.statement_change < 0)
    return DiffSummary(
        total_files=len(diff),
        improved_files=improved,
        degraded_files=degraded,
        unchanged_files=len(diff) - improved - degraded,
        total_statement_change=sum(entry.statement_change for entry in diff.values()),
    )


def overall_change(diff: Dict[str, FileCoverageDiff]) -> float:
    """Relative change of total statement hits, in percent (0 without a base)"""
    base_total = sum(entry.base_statements for entry in diff.values())
    current_total = sum(entry.current_statements for entry in diff.values())
    if not base_total:
        return 0.0
    return (current_total - base_total) / base_total * 100


def coverage_class(percent: int) -> str:
    if percent >= 90:
        return "coverage-high"
    if percent >= 50:
        return "coverage-medium"
    return "coverage-low"
