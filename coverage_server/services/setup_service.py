from pathlib import Path
from typing import List

import structlog

from coverage_server.config.settings import CoverageThresholds
from coverage_server.core.process import run_command
from coverage_server.core.project import resolve_project_root
from coverage_server.models.schemas import SetupResponse

logger = structlog.get_logger()

VITEST_DEV_DEPENDENCIES = ["vitest", "@testing-library/react", "@vitejs/plugin-react"]

SETUP_TESTS_SOURCE = "import '@testing-library/jest-dom';\n"


def render_vitest_config(thresholds: CoverageThresholds) -> str:
    return (
        "import { defineConfig } from 'vitest/config';\n"
        "import react from '@vitejs/plugin-react';\n"
        "\n"
        "export default defineConfig({\n"
        "  plugins: [react()],\n"
        "  test: {\n"
        "    globals: true,\n"
        "    environment: 'jsdom',\n"
        "    setupFiles: './src/setupTests.ts',\n"
        "    coverage: {\n"
        "      provider: 'v8',\n"
        "      reporter: ['text', 'json', 'html'],\n"
        "      all: true,\n"
        "      thresholds: {\n"
        f"        statements: {thresholds.statements},\n"
        f"        branches: {thresholds.branches},\n"
        f"        functions: {thresholds.functions},\n"
        f"        lines: {thresholds.lines}\n"
        "      }\n"
        "    }\n"
        "  }\n"
        "});\n"
    )


def install_command(root: Path) -> List[str]:
    """Install the dev dependencies with yarn when the project uses it, npm otherwise"""
    if (root / "yarn.lock").exists():
        return ["yarn", "add", "-D", *VITEST_DEV_DEPENDENCIES]
    return ["npm", "install", "--save-dev", *VITEST_DEV_DEPENDENCIES]


def _write_if_missing(path: Path, content: str, created: List[str]) -> None:
    if path.exists():
        logger.info("Keeping existing file", path=str(path))
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    created.append(str(path))


async def setup_vitest(project_path: str, thresholds: CoverageThresholds) -> SetupResponse:
    """Create a default Vitest config and setup file, then install Vitest"""
    root = resolve_project_root(project_path)
    created: List[str] = []

    _write_if_missing(root / "vitest.config.ts", render_vitest_config(thresholds), created)
    _write_if_missing(root / "src" / "setupTests.ts", SETUP_TESTS_SOURCE, created)

    result = await run_command(install_command(root), cwd=str(root))
    logger.info("Vitest setup complete", project=str(root), created_files=created)
    return SetupResponse(message="Vitest setup complete", created_files=created, stdout=result.stdout)
