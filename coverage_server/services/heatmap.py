"""
Coverage heatmap: a self-contained HTML page rendered from ``coverage-final.json``.

Files are listed worst statement coverage first; each expands to its source
lines coloured by the hit counts of the statements starting on them.
"""

from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from coverage_server.core.coverage_map import coverage_class, file_stats, percentage
from coverage_server.core.exceptions import CoverageArtifactError
from coverage_server.core.project import (
    CoverageMap,
    coverage_artifact_path,
    coverage_dir,
    load_coverage_artifact,
    resolve_project_root,
)

logger = structlog.get_logger()

HEATMAP_FILE = "heatmap.html"


def line_hits(file_data: Dict[str, Any]) -> Dict[int, List[int]]:
    """Hit counts of the statements starting on each line"""
    statement_map = file_data.get("statementMap") or {}
    hits: Dict[int, List[int]] = {}
    for stmt_id, count in (file_data.get("s") or {}).items():
        location = statement_map.get(stmt_id) or statement_map.get(str(stmt_id)) or {}
        line = (location.get("start") or {}).get("line")
        if line is None:
            continue
        hits.setdefault(int(line), []).append(count or 0)
    return hits


def line_class(counts: Optional[List[int]]) -> str:
    if not counts:
        return ""
    if all(c > 0 for c in counts):
        return "line-covered"
    if any(c > 0 for c in counts):
        return "line-partial"
    return "line-uncovered"


def _read_source(path: Path) -> Optional[List[str]]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        return None


def render_file_lines(file: str, file_data: Dict[str, Any], root: Optional[Path] = None) -> str:
    """Source lines of ``file`` coloured by hits; relative keys are read from ``root``"""
    hits = line_hits(file_data)
    path = Path(file)
    if root is not None and not path.is_absolute():
        path = root / path
    source = _read_source(path)
    rows = []

    if source is not None:
        numbered = enumerate(source, start=1)
    else:
        # source not available here; show the instrumented lines only
        numbered = ((n, f"// statement hits: {', '.join(map(str, hits[n]))}") for n in sorted(hits))

    for number, text in numbered:
        css = line_class(hits.get(number))
        title = f' title="hits: {", ".join(map(str, hits[number]))}"' if number in hits else ""
        rows.append(
            f'<div class="line {css}"{title}>'
            f'<div class="line-number">{number}</div>'
            f'<div class="line-content">{escape(text)}</div></div>'
        )
    return "\n".join(rows)


def render_heatmap(coverage: CoverageMap, root: Optional[Path] = None) -> str:
    stats = {file: file_stats(data) for file, data in coverage.items()}
    total_statements = sum(s.total_statements for s in stats.values())
    covered_statements = sum(s.covered_statements for s in stats.values())
    overall = percentage(covered_statements, total_statements)

    sections = []
    for file in sorted(coverage, key=lambda f: stats[f].statement_coverage):
        file_stat = stats[file]
        badge = coverage_class(file_stat.statement_coverage)
        expanded = " expanded" if badge == "coverage-low" else ""
        sections.append(f"""
    <div class="file-container" data-file="{escape(file.lower())}">
      <div class="file-header" onclick="toggleFile(this)">
        <span class="file-name">{escape(file)}</span>
        <span>
          <span class="coverage-badge {badge}">{file_stat.statement_coverage}% covered</span>
          <span class="muted">({file_stat.uncovered_statements} uncovered statements,
            branches {file_stat.branch_coverage}%, functions {file_stat.function_coverage}%)</span>
        </span>
      </div>
      <div class="file-content{expanded}">
{render_file_lines(file, coverage[file], root)}
      </div>
    </div>""")
    files_html = "".join(sections)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Coverage Heatmap</title>
<style>
  body {{
    font-family: 'Monaco', 'Menlo', 'Ubuntu Mono', monospace;
    margin: 0;
    padding: 20px;
    background-color: #1e1e1e;
    color: #d4d4d4;
  }}
  .header, .legend {{
    background-color: #2d2d30;
    padding: 20px;
    border-radius: 8px;
    margin-bottom: 20px;
  }}
  .header h1, .legend h3 {{ color: #4ec9b0; margin: 0 0 10px 0; }}
  .stats, .legend-items {{ display: flex; gap: 20px; margin-top: 15px; }}
  .stat {{ background-color: #3c3c3c; padding: 10px 15px; border-radius: 5px; }}
  .legend-item {{ display: flex; align-items: center; gap: 8px; }}
  .legend-color {{ width: 20px; height: 20px; border-radius: 3px; }}
  .file-container {{
    background-color: #252526;
    border-radius: 8px;
    margin-bottom: 20px;
    overflow: hidden;
  }}
  .file-header {{
    background-color: #2d2d30;
    padding: 15px 20px;
    cursor: pointer;
    display: flex;
    justify-content: space-between;
    align-items: center;
  }}
  .file-header:hover {{ background-color: #37373d; }}
  .file-name {{ color: #569cd6; font-weight: bold; }}
  .muted {{ color: #858585; }}
  .coverage-badge {{
    padding: 4px 8px;
    border-radius: 12px;
    font-size: 12px;
    font-weight: bold;
  }}
  .coverage-high {{ background-color: #0f5132; color: #d1e7dd; }}
  .coverage-medium {{ background-color: #664d03; color: #fff3cd; }}
  .coverage-low {{ background-color: #842029; color: #f8d7da; }}
  .file-content {{ max-height: 600px; overflow-y: auto; display: none; }}
  .file-content.expanded {{ display: block; }}
  .line {{ display: flex; border-bottom: 1px solid #3c3c3c; }}
  .line-number {{
    background-color: #2d2d30;
    color: #858585;
    padding: 4px 8px;
    min-width: 50px;
    text-align: right;
    border-right: 1px solid #3c3c3c;
  }}
  .line-content {{ padding: 4px 8px; flex: 1; white-space: pre-wrap; word-break: break-all; }}
  .line-covered, .legend-covered {{ background-color: rgba(76, 175, 80, 0.15); }}
  .line-uncovered, .legend-uncovered {{ background-color: rgba(244, 67, 54, 0.25); }}
  .line-partial, .legend-partial {{ background-color: rgba(255, 193, 7, 0.15); }}
  .toolbar {{ display: flex; margin-bottom: 20px; }}
  .search-input {{
    background-color: #3c3c3c;
    border: 1px solid #555;
    color: #d4d4d4;
    padding: 10px;
    border-radius: 5px;
    width: 300px;
  }}
  .expand-all {{
    background-color: #0e639c;
    color: white;
    border: none;
    padding: 8px 16px;
    border-radius: 5px;
    cursor: pointer;
    margin-left: auto;
  }}
</style>
</head>
<body>
  <div class="header">
    <h1>Coverage Heatmap</h1>
    <p>Interactive visualization of code coverage across your project</p>
    <div class="stats">
      <div class="stat"><strong>Files:</strong> {len(coverage)}</div>
      <div class="stat"><strong>Overall Coverage:</strong> {overall}%</div>
      <div class="stat"><strong>Statements:</strong> {covered_statements} / {total_statements}</div>
    </div>
  </div>

  <div class="legend">
    <h3>Coverage Legend</h3>
    <div class="legend-items">
      <div class="legend-item"><div class="legend-color legend-covered"></div><span>Fully Covered</span></div>
      <div class="legend-item"><div class="legend-color legend-partial"></div><span>Partially Covered</span></div>
      <div class="legend-item"><div class="legend-color legend-uncovered"></div><span>Not Covered</span></div>
    </div>
  </div>

  <div class="toolbar">
    <input type="text" id="searchInput" class="search-input" placeholder="Search files...">
    <button class="expand-all" onclick="toggleAllFiles()">Expand All</button>
  </div>

  <div id="files-container">{files_html}
  </div>

<script>
  function toggleFile(header) {{
    header.nextElementSibling.classList.toggle('expanded');
  }}

  function toggleAllFiles() {{
    const contents = document.querySelectorAll('.file-content');
    const expand = contents.length > 0 && !contents[0].classList.contains('expanded');
    contents.forEach(content => content.classList.toggle('expanded', expand));
  }}

  document.getElementById('searchInput').addEventListener('input', event => {{
    const term = event.target.value.toLowerCase();
    document.querySelectorAll('.file-container').forEach(container => {{
      container.style.display = container.dataset.file.includes(term) ? 'block' : 'none';
    }});
  }});
</script>
</body>
</html>
"""


def heatmap_path(root: Path) -> Path:
    return coverage_dir(root) / HEATMAP_FILE


def generate_coverage_heatmap(project_path: str) -> Path:
    """Render the heatmap for the last coverage run and write it next to the artifact"""
    root = resolve_project_root(project_path)
    artifact = coverage_artifact_path(root)
    if not artifact.is_file():
        raise CoverageArtifactError(
            "Coverage file not found. Run coverage analysis first: npx vitest run --coverage",
            str(artifact),
        )

    coverage = load_coverage_artifact(artifact)
    out_path = heatmap_path(root)
    out_path.write_text(render_heatmap(coverage, root), encoding="utf-8")
    logger.info("Coverage heatmap generated", path=str(out_path), files=len(coverage))
    return out_path
