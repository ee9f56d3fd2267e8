"""Exception hierarchy for deployment runs."""
from typing import List, Optional


class DeployError(Exception):
    """Base class for fatal deployment errors."""
    pass


class ConfigurationError(DeployError):
    """Raised when settings or default values are invalid."""
    pass


class PreconditionError(DeployError):
    """Raised when the host is not in a state the run can proceed from."""
    pass


class CommandError(DeployError):
    """Raised when an external command exits non-zero.

    Attributes:
        description: Human-readable task name
        result: The failed CommandResult
    """

    def __init__(self, description: str, result, hint: Optional[str] = None):
        self.description = description
        self.result = result
        self.hint = hint
        super().__init__(f"Task '{description}' failed (exit code {result.returncode})")

    @property
    def command_line(self) -> str:
        return self.result.command_line

    def tail(self, lines: int = 20) -> List[str]:
        """Return the last lines of the captured output."""
        return self.result.tail(lines)
