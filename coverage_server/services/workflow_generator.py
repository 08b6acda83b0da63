from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from coverage_server.config.settings import CoverageThresholds
from coverage_server.core.exceptions import UnsupportedPlatformError
from coverage_server.core.project import resolve_project_root
from coverage_server.models.schemas import CISetupCheck, WorkflowResult

logger = structlog.get_logger()

GITHUB_WORKFLOW_PATH = Path(".github") / "workflows" / "vitest-coverage.yml"
GITLAB_CONFIG_PATH = Path(".gitlab-ci.yml")
SUPPORTED_PLATFORMS = ("github", "gitlab")
NODE_VERSIONS = ["18.x", "20.x"]


def github_workflow(thresholds: CoverageThresholds) -> Dict[str, Any]:
    return {
        "name": "Vitest Coverage CI",
        "on": {
            "push": {"branches": ["main", "develop"]},
            "pull_request": {},
        },
        "jobs": {
            "coverage": {
                "runs-on": "ubuntu-latest",
                "strategy": {"matrix": {"node-version": NODE_VERSIONS}},
                "steps": [
                    {"name": "Checkout code", "uses": "actions/checkout@v4"},
                    {
                        "name": "Use Node.js ${{ matrix.node-version }}",
                        "uses": "actions/setup-node@v4",
                        "with": {"node-version": "${{ matrix.node-version }}", "cache": "npm"},
                    },
                    {"name": "Install dependencies", "run": "npm ci"},
                    {"name": "Run Vitest with coverage", "run": "npx vitest run --coverage"},
                    {
                        "name": "Upload coverage reports to Codecov",
                        "uses": "codecov/codecov-action@v4",
                        "with": {"token": "${{ secrets.CODECOV_TOKEN }}"},
                    },
                    {
                        "name": "Upload coverage artifacts",
                        "uses": "actions/upload-artifact@v4",
                        "with": {
                            "name": "coverage-report-${{ matrix.node-version }}",
                            "path": "coverage/",
                        },
                    },
                    {
                        "name": "Comment PR with coverage",
                        "if": "github.event_name == 'pull_request'",
                        "uses": "5monkeys/cobertura-action@master",
                        "with": {
                            "path": "coverage/coverage-final.xml",
                            "minimum_coverage": thresholds.lines,
                            "fail_below_threshold": True,
                        },
                    },
                ],
            }
        },
    }


def gitlab_pipeline() -> Dict[str, Any]:
    node_image = "node:$NODE_VERSION"
    return {
        "stages": ["install", "test", "coverage"],
        "variables": {"NODE_VERSION": "18"},
        "cache": {"paths": ["node_modules/"]},
        "install": {
            "stage": "install",
            "image": node_image,
            "script": ["npm ci"],
            "artifacts": {"paths": ["node_modules/"], "expire_in": "1 hour"},
        },
        "test": {
            "stage": "test",
            "image": node_image,
            "script": ["npx vitest run --reporter=verbose"],
            "artifacts": {
                "when": "always",
                "paths": ["coverage/"],
                "reports": {"junit": "coverage/junit.xml"},
            },
        },
        "coverage": {
            "stage": "coverage",
            "image": node_image,
            "script": ["npx vitest run --coverage"],
            "coverage": r"/Lines\s*:\s*(\d+.\d+%)/",
            "artifacts": {
                "paths": ["coverage/"],
                "reports": {
                    "coverage_report": {
                        "coverage_format": "cobertura",
                        "path": "coverage/coverage-final.xml",
                    }
                },
            },
        },
    }


def render_yaml(document: Dict[str, Any]) -> str:
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False, width=120)


def write_github_workflow(root: Path, thresholds: CoverageThresholds) -> Path:
    path = root / GITHUB_WORKFLOW_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_yaml(github_workflow(thresholds)), encoding="utf-8")
    return path


def write_gitlab_pipeline(root: Path) -> Path:
    path = root / GITLAB_CONFIG_PATH
    path.write_text(render_yaml(gitlab_pipeline()), encoding="utf-8")
    return path


def ci_readme_section(platform: str, project_name: Optional[str] = None) -> str:
    name = project_name or "your-project"
    node_versions = " and ".join(NODE_VERSIONS)

    if platform == "github":
        return f"""## GitHub Actions CI

This project uses GitHub Actions for continuous integration:

- **Triggers**: Push to `main`/`develop` branches and pull requests
- **Node versions**: Tests run on Node.js {node_versions}
- **Coverage**: Enforces the configured coverage threshold
- **Artifacts**: Coverage reports are uploaded as build artifacts

### Setup Instructions

1. The workflow file is generated at `{GITHUB_WORKFLOW_PATH.as_posix()}`
2. (Optional) Add a `CODECOV_TOKEN` secret to your repository for enhanced coverage reporting
3. Push to trigger the workflow

### Coverage Badge

Add this badge to your README:
```markdown
![Coverage](https://github.com/your-username/{name}/workflows/Vitest%20Coverage%20CI/badge.svg)
```
"""

    return f"""## GitLab CI

This project uses GitLab CI for continuous integration:

- **Stages**: install -> test -> coverage
- **Node version**: Tests run on Node.js 18.x
- **Coverage**: Reports coverage in job output and artifacts
- **Artifacts**: Coverage reports are preserved for download

### Setup Instructions

1. The configuration is generated at `{GITLAB_CONFIG_PATH.as_posix()}`
2. Commit and push to trigger pipeline
3. View coverage reports in job artifacts

### Coverage Badge

Add this badge to your README:
```markdown
![Coverage](https://gitlab.com/your-username/{name}/-/jobs/artifacts/main/raw/coverage/badge.svg?job=coverage)
```
"""


def generate_ci_config(
    project_path: str,
    platform: str = "github",
    project_name: Optional[str] = None,
    thresholds: Optional[CoverageThresholds] = None,
) -> WorkflowResult:
    """Write the CI configuration for ``platform`` into the project"""
    if platform not in SUPPORTED_PLATFORMS:
        raise UnsupportedPlatformError('Unsupported platform. Use "github" or "gitlab".')

    root = resolve_project_root(project_path)
    if platform == "github":
        config_path = write_github_workflow(root, thresholds or CoverageThresholds())
    else:
        config_path = write_gitlab_pipeline(root)

    logger.info("CI configuration generated", platform=platform, path=str(config_path))
    readme = ci_readme_section(platform, project_name)
    return WorkflowResult(
        platform=platform,
        config_path=str(config_path),
        readme_section=readme,
        instructions=readme,
        message=f"Generated {platform} CI configuration",
    )


def check_ci_setup(project_path: str) -> Dict[str, CISetupCheck]:
    root = Path(project_path)
    workflows_dir = root / GITHUB_WORKFLOW_PATH.parent
    gitlab_config = root / GITLAB_CONFIG_PATH
    return {
        "githubActions": CISetupCheck(available=workflows_dir.is_dir(), path=str(workflows_dir)),
        "gitlabCI": CISetupCheck(available=gitlab_config.is_file(), path=str(gitlab_config)),
    }
