from fastapi import FastAPI
from fastapi.testclient import TestClient

from coverage_server.plugins.loader import load_plugins

PLUGIN_WITH_META = '''
from fastapi import APIRouter
from coverage_server.plugins.base import PluginMeta

router = APIRouter()


@router.get("/hello")
async def hello():
    return {"hello": "world"}


plugin = PluginMeta(name="hello", description="Says hello.", router=router)
'''

PLUGIN_WITH_REGISTER = '''
PLUGIN_NAME = "pinger"


def register(app):
    @app.get("/ping")
    async def ping():
        return {"pong": True}
'''


def test_builtin_plugins_are_loaded():
    app = FastAPI()
    loaded = load_plugins(app)

    assert loaded == ["ai-test-writer", "coverage-diff", "coverage-heatmap", "test-profiler", "ci-generator"]
    paths = {route.path for route in app.routes}
    assert {"/ai-generate-tests", "/coverage-badge.svg", "/generate-heatmap", "/test-analysis", "/ci-health"} <= paths


def test_directory_plugins(tmp_path):
    (tmp_path / "hello.py").write_text(PLUGIN_WITH_META, encoding="utf-8")
    (tmp_path / "pinger.py").write_text(PLUGIN_WITH_REGISTER, encoding="utf-8")
    (tmp_path / "_private.py").write_text("raise RuntimeError('should not be imported')\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored\n", encoding="utf-8")

    app = FastAPI()
    assert load_plugins(app, tmp_path) == ["hello", "pinger"]

    client = TestClient(app)
    assert client.get("/hello").json() == {"hello": "world"}
    assert client.get("/ping").json() == {"pong": True}


def test_broken_plugins_are_skipped(tmp_path):
    (tmp_path / "a_broken.py").write_text("import does_not_exist_anywhere\n", encoding="utf-8")
    (tmp_path / "b_empty.py").write_text("VALUE = 1\n", encoding="utf-8")
    (tmp_path / "c_hello.py").write_text(PLUGIN_WITH_META, encoding="utf-8")

    assert load_plugins(FastAPI(), tmp_path) == ["hello"]


def test_missing_directory(tmp_path):
    assert load_plugins(FastAPI(), tmp_path / "nope") == []


def test_prefix_is_applied(tmp_path):
    (tmp_path / "hello.py").write_text(PLUGIN_WITH_META, encoding="utf-8")
    app = FastAPI()
    load_plugins(app, tmp_path, prefix="/tools")

    assert TestClient(app).get("/tools/hello").status_code == 200
