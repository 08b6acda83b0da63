import json
import subprocess
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from fastapi.testclient import TestClient

from main import app
from coverage_server.config.settings import settings
from coverage_server.core.dependencies import get_llm_service
from coverage_server.core.exceptions import CommandError

SAMPLE_COVERAGE = {
    "src/App.tsx": {
        "s": {"0": 3, "1": 0, "2": 1},
        "b": {"0": [1, 0]},
        "f": {"0": 2},
        "statementMap": {
            "0": {"start": {"line": 1, "column": 0}, "end": {"line": 1, "column": 20}},
            "1": {"start": {"line": 3, "column": 2}, "end": {"line": 3, "column": 10}},
            "2": {"start": {"line": 4, "column": 0}, "end": {"line": 4, "column": 10}},
        },
    },
    "src/Button.tsx": {
        "s": {"0": 5},
        "b": {},
        "f": {"0": 5},
        "statementMap": {"0": {"start": {"line": 1, "column": 0}, "end": {"line": 1, "column": 30}}},
    },
}


def write_coverage(root: Path, coverage: dict) -> Path:
    artifact = root / "coverage" / "coverage-final.json"
    artifact.parent.mkdir(parents=True, exist_ok=True)
    artifact.write_text(json.dumps(coverage), encoding="utf-8")
    return artifact


class FakeRunner:
    """Stands in for ``run_command``: records calls and simulates vitest and git"""

    def __init__(self, root: Path, coverage_by_branch=None, fail_checkout=False, test_report=None):
        self.root = root
        self.calls = []
        self.branch = "feature"
        self.coverage_by_branch = coverage_by_branch or {"feature": SAMPLE_COVERAGE}
        self.fail_checkout = fail_checkout
        self.test_report = test_report

    async def __call__(self, args, cwd, check=True, input_text=None):
        self.calls.append(list(args))
        if args[:2] == ["git", "check-ref-format"]:
            valid = ".." not in args[-1] and not args[-1].startswith("-")
            return subprocess.CompletedProcess(args, 0 if valid else 1, stdout="", stderr="")
        if args[:2] == ["git", "checkout"]:
            if self.fail_checkout:
                raise CommandError(" ".join(args), 1, stderr="pathspec did not match")
            self.branch = "feature" if args[2] == "-" else args[2]
        elif "--coverage" in args:
            coverage = self.coverage_by_branch.get(self.branch)
            if coverage is not None:
                write_coverage(self.root, coverage)
        elif any(a.startswith("--outputFile=") for a in args) and self.test_report is not None:
            out_file = Path(next(a for a in args if a.startswith("--outputFile=")).split("=", 1)[1])
            out_file.write_text(json.dumps(self.test_report), encoding="utf-8")
        return subprocess.CompletedProcess(args, 0, stdout="ok", stderr="")


class FakeLLMService:
    def __init__(self, reply="```tsx\ntest('works', () => {});\n```", configured=True, healthy=True):
        self.reply = reply
        self.configured = configured
        self.healthy = healthy
        self.prompts = []

    @property
    def is_configured(self):
        return self.configured

    @property
    def provider_name(self):
        return "fake"

    async def check_health(self):
        return self.healthy

    async def generate_completion(self, prompt):
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def project_dir(tmp_path):
    """A small React project with two components"""
    src = tmp_path / "src"
    src.mkdir()
    (src / "App.tsx").write_text("export default function App() {\n  return <div/>;\n}\n", encoding="utf-8")
    (src / "Button.tsx").write_text("export default function Button() { return <button/>; }\n", encoding="utf-8")
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    return tmp_path


@pytest.fixture
def default_project(project_dir, monkeypatch):
    """Point the configured project root at ``project_dir``"""
    monkeypatch.setattr(settings, "project_root", str(project_dir))
    return project_dir


@pytest.fixture
def fake_runner(project_dir, monkeypatch):
    runner = FakeRunner(project_dir)
    for module in (
        "coverage_server.services.coverage_service",
        "coverage_server.services.coverage_diff",
        "coverage_server.services.setup_service",
        "coverage_server.services.test_profiler",
    ):
        monkeypatch.setattr(f"{module}.run_command", runner)
    return runner


@pytest.fixture
def fake_llm():
    llm = FakeLLMService()
    app.dependency_overrides[get_llm_service] = lambda: llm
    yield llm
    app.dependency_overrides.pop(get_llm_service, None)


@pytest_asyncio.fixture
async def client():
    """Async client over the ASGI app"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def test_client():
    """Synchronous test client for simple tests"""
    return TestClient(app)
