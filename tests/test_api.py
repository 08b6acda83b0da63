import copy

import pytest
from fastapi.testclient import TestClient

from main import create_app
from tests.conftest import SAMPLE_COVERAGE, write_coverage


def test_health_check(test_client, default_project):
    """Test health check endpoint"""
    response = test_client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["uptime"] >= 0
    assert data["config"]["projectRoot"] == str(default_project)
    assert data["features"]["pluginsLoaded"] >= 5


def test_readiness_check(test_client, default_project):
    """Test readiness check endpoint"""
    response = test_client.get("/health/readiness")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["projectRoot"] == "ok"


def test_api_info_lists_routes_and_plugins(test_client):
    response = test_client.get("/api")
    assert response.status_code == 200

    data = response.json()
    paths = {endpoint["path"] for endpoint in data["endpoints"]}
    assert {"/analyze-coverage", "/generate-tests", "/coverage-diff", "/generate-workflow"} <= paths
    assert set(data["plugins"]) >= {
        "ai-test-writer", "coverage-diff", "test-profiler", "coverage-heatmap", "ci-generator"
    }


@pytest.mark.parametrize("path", ["/setup-vitest", "/analyze-coverage", "/generate-tests", "/ai-generate-tests"])
def test_missing_project_path_is_rejected(test_client, fake_llm, path):
    response = test_client.post(path, json={})
    assert response.status_code == 400

    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Missing projectPath"
    assert "timestamp" in data


def test_unknown_project_path_is_rejected(test_client, tmp_path):
    response = test_client.post("/analyze-coverage", json={"projectPath": str(tmp_path / "missing")})
    assert response.status_code == 400
    assert "does not exist" in response.json()["error"]


def test_setup_vitest(test_client, project_dir, fake_runner):
    response = test_client.post("/setup-vitest", json={"projectPath": str(project_dir)})
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert (project_dir / "vitest.config.ts").is_file()
    assert (project_dir / "src" / "setupTests.ts").is_file()
    assert fake_runner.calls[-1][:3] == ["npm", "install", "--save-dev"]


def test_analyze_coverage(test_client, project_dir, fake_runner):
    response = test_client.post("/analyze-coverage", json={"projectPath": str(project_dir)})
    assert response.status_code == 200

    data = response.json()
    assert data["uncoveredFiles"] == ["src/App.tsx"]
    assert {(item["type"], item["id"]) for item in data["uncovered"]} == {("statement", "1"), ("branch", "0")}
    assert data["coveragePath"].endswith("coverage-final.json")


def test_analyze_coverage_without_artifact_fails(test_client, project_dir, fake_runner):
    fake_runner.coverage_by_branch = {}
    response = test_client.post("/analyze-coverage", json={"projectPath": str(project_dir)})
    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["error"].startswith("Failed to read coverage file")


def test_generate_tests_for_given_files(test_client, project_dir):
    response = test_client.post(
        "/generate-tests",
        json={"projectPath": str(project_dir), "uncoveredFiles": ["src/Button.tsx", "README.md"]}
    )
    assert response.status_code == 200

    data = response.json()
    assert data["generatedTestFiles"] == [str(project_dir.resolve() / "__tests__" / "src" / "Button.test.tsx")]


def test_generate_tests_analyzes_when_no_files_given(test_client, project_dir, fake_runner):
    response = test_client.post("/generate-tests", json={"projectPath": str(project_dir)})
    assert response.status_code == 200

    assert (project_dir / "__tests__" / "src" / "App.test.tsx").is_file()
    assert any("--coverage" in call for call in fake_runner.calls)


def test_ai_generate_tests(test_client, project_dir, fake_llm):
    response = test_client.post(
        "/ai-generate-tests",
        json={"projectPath": str(project_dir), "uncoveredFiles": [{"file": "src/App.tsx", "type": "statement"}]}
    )
    assert response.status_code == 200

    data = response.json()
    assert data["provider"] == "fake"
    written = project_dir / "__tests__" / "ai-generated" / "App.test.tsx"
    assert data["generatedTestFiles"] == [str(written.resolve())]
    assert written.read_text(encoding="utf-8") == "test('works', () => {});\n"


def test_ai_generate_tests_requires_configured_backend(test_client, project_dir, fake_llm):
    fake_llm.configured = False
    response = test_client.post(
        "/ai-generate-tests",
        json={"projectPath": str(project_dir), "uncoveredFiles": ["src/App.tsx"]}
    )
    assert response.status_code == 400
    assert fake_llm.prompts == []


def test_ai_health(test_client, fake_llm):
    assert test_client.get("/ai-health").json()["status"] == "healthy"

    fake_llm.healthy = False
    assert test_client.get("/ai-health").json()["status"] == "unhealthy"

    fake_llm.configured = False
    data = test_client.get("/ai-health").json()
    assert data["status"] == "not_configured"
    assert data["provider"] == "fake"


@pytest.mark.asyncio
async def test_coverage_diff(client, default_project, fake_runner):
    base = copy.deepcopy(SAMPLE_COVERAGE)
    base["src/App.tsx"]["s"] = {"0": 1, "1": 0, "2": 1}
    fake_runner.coverage_by_branch = {"feature": SAMPLE_COVERAGE, "main": base}

    response = await client.post("/coverage-diff", json={})
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["diff"]["src/App.tsx"]["statementChange"] == 2
    assert data["summary"]["improvedFiles"] == 1
    assert data["summary"]["unchangedFiles"] == 1
    assert fake_runner.branch == "feature"


@pytest.mark.asyncio
async def test_coverage_diff_without_base_branch(client, default_project, fake_runner):
    fake_runner.fail_checkout = True

    response = await client.post("/coverage-diff", json={"baseBranch": "nope"})
    assert response.status_code == 400

    data = response.json()
    assert data["success"] is False
    assert "base branch" in data["error"]
    assert "src/App.tsx" in data["currentCoverage"]


@pytest.mark.asyncio
@pytest.mark.parametrize("branch", ["-f", "--orphan=x", "bad..name"])
async def test_coverage_diff_rejects_option_like_branch(client, default_project, fake_runner, branch):
    response = await client.post("/coverage-diff", json={"baseBranch": branch})
    assert response.status_code == 400
    assert "Invalid base branch name" in response.json()["error"]
    assert not any(call[:2] == ["git", "checkout"] for call in fake_runner.calls)


def test_coverage_badge_rejects_option_like_branch(test_client, default_project, fake_runner):
    response = test_client.get("/coverage-badge.svg", params={"baseBranch": "-f"})
    assert response.status_code == 400
    assert not any(call[:2] == ["git", "checkout"] for call in fake_runner.calls)


def test_coverage_badge(test_client, default_project, fake_runner):
    base = copy.deepcopy(SAMPLE_COVERAGE)
    base["src/App.tsx"]["s"] = {"0": 1, "1": 0, "2": 1}
    fake_runner.coverage_by_branch = {"feature": SAMPLE_COVERAGE, "main": base}

    response = test_client.get("/coverage-badge.svg")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    svg = response.content.decode("utf-8")
    assert "Δ 28.6%" in svg
    assert "#4c1" in svg


def test_coverage_badge_when_comparison_fails(test_client, default_project, fake_runner):
    fake_runner.fail_checkout = True
    response = test_client.get("/coverage-badge.svg")
    assert response.status_code == 200
    assert "N/A" in response.text


def test_profile_tests(test_client, project_dir, fake_runner):
    fake_runner.test_report = {
        "testResults": [
            {
                "name": "src/App.test.tsx",
                "assertionResults": [
                    {"title": "renders App", "fullName": "App renders App", "duration": 5, "status": "passed"},
                    {"title": "handles click", "fullName": "App handles click", "duration": 20, "status": "passed"},
                    {"title": "loads data", "fullName": "App loads data", "duration": 3000, "status": "passed"},
                ],
            }
        ]
    }
    response = test_client.get("/profile-tests", params={"projectPath": str(project_dir)})
    assert response.status_code == 200

    data = response.json()
    assert data["summary"]["totalTests"] == 3
    assert data["slowestTests"][0]["fullName"] == "App loads data"
    assert data["slowTests"][0]["fullName"] == "App loads data"
    assert {rec["type"] for rec in data["recommendations"]} == {"completeness"}

    report = test_client.get("/test-analysis", params={"projectPath": str(project_dir)}).json()["report"]
    assert report.startswith("# Test Performance Report")
    assert "App loads data" in report


def test_profile_tests_without_report_fails(test_client, project_dir, fake_runner):
    response = test_client.get("/profile-tests", params={"projectPath": str(project_dir)})
    assert response.status_code == 500
    assert "Failed to read test report" in response.json()["error"]


def test_heatmap(test_client, project_dir):
    write_coverage(project_dir, SAMPLE_COVERAGE)

    response = test_client.get("/generate-heatmap", params={"projectPath": str(project_dir)})
    assert response.status_code == 200
    assert response.json()["url"] == "/coverage/heatmap.html"
    assert (project_dir / "coverage" / "heatmap.html").is_file()

    page = test_client.get("/coverage-heatmap.html", params={"projectPath": str(project_dir)})
    assert page.status_code == 200
    assert page.headers["content-type"].startswith("text/html")
    assert "Coverage Heatmap" in page.text


def test_heatmap_page_serves_existing_file(test_client, project_dir):
    heatmap = project_dir / "coverage" / "heatmap.html"
    heatmap.parent.mkdir()
    heatmap.write_text("<html>previous run</html>", encoding="utf-8")

    page = test_client.get("/coverage-heatmap.html", params={"projectPath": str(project_dir)})
    assert page.status_code == 200
    assert page.text == "<html>previous run</html>"
    assert heatmap.read_text(encoding="utf-8") == "<html>previous run</html>"


def test_heatmap_page_without_heatmap_or_coverage(test_client, project_dir):
    page = test_client.get("/coverage-heatmap.html", params={"projectPath": str(project_dir)})
    assert page.status_code == 404
    assert "Run coverage analysis first" in page.json()["error"]


def test_coverage_directory_served_when_created_after_startup(default_project):
    assert not (default_project / "coverage").exists()
    client = TestClient(create_app())

    write_coverage(default_project, SAMPLE_COVERAGE)
    (default_project / "coverage" / "heatmap.html").write_text("<html>heatmap</html>", encoding="utf-8")

    response = client.get("/coverage/heatmap.html")
    assert response.status_code == 200
    assert response.text == "<html>heatmap</html>"


def test_heatmap_requires_coverage(test_client, project_dir):
    response = test_client.get("/generate-heatmap", params={"projectPath": str(project_dir)})
    assert response.status_code == 404
    assert "Run coverage analysis first" in response.json()["error"]


def test_generate_workflow(test_client, project_dir):
    response = test_client.post(
        "/generate-workflow",
        json={"projectPath": str(project_dir), "platform": "gitlab", "projectName": "demo"}
    )
    assert response.status_code == 200
    assert (project_dir / ".gitlab-ci.yml").is_file()
    assert "demo" in response.json()["readmeSection"]


def test_generate_workflow_rejects_unknown_platform(test_client, project_dir):
    response = test_client.post(
        "/generate-workflow", json={"projectPath": str(project_dir), "platform": "jenkins"}
    )
    assert response.status_code == 400
    assert "Unsupported platform" in response.json()["error"]


def test_generate_all_workflows_and_ci_health(test_client, default_project):
    assert test_client.get("/ci-health").json()["checks"]["githubActions"]["available"] is False

    response = test_client.post("/generate-all-workflows", json={})
    assert response.status_code == 200
    assert response.json()["github"]["platform"] == "github"

    checks = test_client.get("/ci-health").json()["checks"]
    assert checks["githubActions"]["available"] is True
    assert checks["gitlabCI"]["available"] is True
