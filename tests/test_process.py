import sys

import pytest

from coverage_server.core.exceptions import CommandError
from coverage_server.core.process import run_command


@pytest.mark.asyncio
async def test_run_command_captures_output(tmp_path):
    result = await run_command([sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
                               cwd=str(tmp_path), input_text="vitest")
    assert result.returncode == 0
    assert result.stdout.strip() == "VITEST"


@pytest.mark.asyncio
async def test_failed_command_raises_with_stderr(tmp_path):
    script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
    with pytest.raises(CommandError) as excinfo:
        await run_command([sys.executable, "-c", script], cwd=str(tmp_path))

    assert excinfo.value.returncode == 3
    assert "boom" in str(excinfo.value)


@pytest.mark.asyncio
async def test_unchecked_failure_returns_result(tmp_path):
    result = await run_command([sys.executable, "-c", "raise SystemExit(1)"], cwd=str(tmp_path), check=False)
    assert result.returncode == 1


@pytest.mark.asyncio
async def test_missing_executable(tmp_path):
    with pytest.raises(CommandError) as excinfo:
        await run_command(["definitely-not-a-real-binary-xyz"], cwd=str(tmp_path))
    assert excinfo.value.returncode == -1
