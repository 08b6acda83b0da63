import asyncio
import shlex
import subprocess
from typing import List, Optional

import structlog

from coverage_server.core.exceptions import CommandError

logger = structlog.get_logger()


async def run_command(
    args: List[str],
    cwd: str,
    check: bool = True,
    input_text: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """Run an external command without blocking the event loop.

    The command runs in the default executor and blocks only the request that
    awaits it. With ``check`` set, a non-zero exit raises :class:`CommandError`
    carrying the captured stderr.
    """
    command = shlex.join(args)
    logger.info("Running command", command=command, cwd=cwd)

    def sync_call():
        return subprocess.run(args, cwd=cwd, input=input_text, capture_output=True, text=True)

    try:
        result = await asyncio.get_event_loop().run_in_executor(None, sync_call)
    except OSError as e:
        logger.error("Failed to start command", command=command, error=str(e))
        raise CommandError(command, -1, stderr=str(e)) from e

    if result.returncode != 0:
        logger.warning(
            "Command exited with non-zero status",
            command=command,
            returncode=result.returncode,
            stderr=(result.stderr or "")[-2000:],
        )
        if check:
            raise CommandError(command, result.returncode, result.stdout or "", result.stderr or "")
    return result
