import json
import os
import shutil

import structlog

from coverage_server.core.exceptions import CommandError
from coverage_server.core.process import run_command
from coverage_server.repositories.interfaces.llm_provider import ILLMProvider, SYSTEM_PROMPT

logger = structlog.get_logger()

PYTHON_EXECUTABLE = "python3"

# Runs in the user's interpreter, where mlx-lm is installed; reads its
# request as JSON on stdin and prints the completion.
MLX_GENERATE_SCRIPT = """
import json
import sys

from mlx_lm import generate, load
from mlx_lm.sample_utils import make_sampler

request = json.load(sys.stdin)
model, tokenizer = load(request["model"])
text = generate(
    model,
    tokenizer,
    prompt=request["prompt"],
    max_tokens=request["max_tokens"],
    sampler=make_sampler(temp=request["temperature"]),
)
print(text)
"""


class MLXProvider(ILLMProvider):
    """Apple MLX models run through a local Python subprocess (no server)"""

    name = "MLX"

    async def is_healthy(self) -> bool:
        return shutil.which(PYTHON_EXECUTABLE) is not None

    async def generate_completion(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> str:
        request = {
            "model": self.config.model,
            "prompt": f"{system_prompt}\n\n{prompt}",
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        try:
            result = await run_command(
                [PYTHON_EXECUTABLE, "-c", MLX_GENERATE_SCRIPT],
                cwd=os.getcwd(),
                input_text=json.dumps(request),
            )
        except CommandError as e:
            raise CommandError(f"MLX generation ({self.config.model})", e.returncode, e.stdout, e.stderr) from e
        return result.stdout.strip()
