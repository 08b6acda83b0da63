from typing import Optional


class CoverageServerError(Exception):
    """Base class for errors raised by the coverage tools"""


class ProjectNotFoundError(CoverageServerError):
    pass


class CommandError(CoverageServerError):
    """An external command (vitest, npm, git, ...) exited unsuccessfully"""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"Command failed with exit code {returncode}: {command}"
        if stderr:
            message += f"\n{stderr.strip()}"
        super().__init__(message)


class CoverageArtifactError(CoverageServerError):
    """The coverage (or test report) JSON artifact is missing or unreadable"""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class LLMNotConfiguredError(CoverageServerError):
    pass


class UnsupportedPlatformError(CoverageServerError, ValueError):
    pass


class InvalidBranchError(CoverageServerError, ValueError):
    pass
