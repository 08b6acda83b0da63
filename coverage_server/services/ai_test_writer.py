import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import structlog

from coverage_server.core.exceptions import LLMNotConfiguredError
from coverage_server.core.project import resolve_project_root
from coverage_server.services.llm_service import LLMService

logger = structlog.get_logger()

AI_TESTS_DIR = Path("__tests__") / "ai-generated"

_FENCED_BLOCK = re.compile(r"```[\w.+-]*[ \t]*\n(.*?)```", re.DOTALL)


def build_test_prompt(file_path: str, source: str) -> str:
    """Build prompt for generating a Vitest file for one component"""
    return f"""You are a senior front-end engineer. Write a **Vitest** test file for the React component located at "{file_path}".
The test must:
1. Import the component with proper relative path.
2. Render it with typical props (use sensible defaults).
3. Check for presence of the main UI element using @testing-library/react.
4. Cover any props that affect rendering (use `screen.getByRole`, `userEvent`, etc.).
5. Use Vitest matchers and @testing-library/react.
6. Include at least one snapshot test (optional).
7. Handle common edge cases for the component.

Return only the TSX/TS code - no markdown, no explanations.
Component source:
```
{source}
```"""


def extract_code(reply: str) -> str:
    """Strip a markdown fence around the model's reply, if it added one anyway"""
    match = _FENCED_BLOCK.search(reply)
    code = match.group(1) if match else reply
    code = code.strip()
    return f"{code}\n" if code else ""


def uncovered_paths(items: Iterable[Union[str, Dict[str, Any]]]) -> List[str]:
    """Distinct file paths from uncovered items (``{file: ...}``) or plain paths"""
    paths = []
    for item in items:
        path = item.get("file") if isinstance(item, dict) else item
        if path:
            paths.append(str(path))
    return list(dict.fromkeys(paths))


async def generate_ai_tests(
    project_path: str,
    uncovered: Iterable[Union[str, Dict[str, Any]]],
    llm_service: LLMService,
    max_files: int = 5,
) -> List[str]:
    """Ask the LLM for a test file per uncovered source file.

    At most ``max_files`` files are handled per call. Output goes to
    ``__tests__/ai-generated`` and existing files are never overwritten.
    """
    root = resolve_project_root(project_path)
    output_dir = root / AI_TESTS_DIR
    generated: List[str] = []

    for file in uncovered_paths(uncovered)[:max_files]:
        source_path = Path(file) if os.path.isabs(file) else root / file
        if not source_path.is_file():
            logger.info("Uncovered file not found, skipping", file=file)
            continue

        test_path = output_dir / f"{source_path.stem}.test{source_path.suffix}"
        if test_path.exists():
            logger.info("AI test already exists, skipping", test_file=str(test_path))
            continue

        try:
            source = source_path.read_text(encoding="utf-8")
            reply = await llm_service.generate_completion(build_test_prompt(str(source_path), source))
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Failed to generate AI test", file=str(source_path), error=str(e))
            continue

        code = extract_code(reply)
        if not code:
            logger.warning("LLM returned an empty test", file=str(source_path))
            continue

        output_dir.mkdir(parents=True, exist_ok=True)
        try:
            with open(test_path, "x", encoding="utf-8") as handle:
                handle.write(code)
        except FileExistsError:
            continue
        generated.append(str(test_path))

    logger.info("Generated AI tests", project=str(root), count=len(generated), provider=llm_service.provider_name)
    return generated
