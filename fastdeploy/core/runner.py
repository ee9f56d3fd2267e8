"""Command execution for every host-mutating tool call.

All external tools (apt, git, pip, systemctl, nginx, user database) are
invoked through CommandRunner so they can be replaced with fakes in tests.
"""
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastdeploy.core.errors import CommandError
from fastdeploy.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Exit status and combined stdout/stderr of one command."""
    command: List[str]
    returncode: int
    output: str = ""
    user: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        line = shlex.join(self.command)
        if self.user:
            return f"(as {self.user}) {line}"
        return line

    def tail(self, lines: int = 20) -> List[str]:
        return self.output.splitlines()[-lines:]


@dataclass
class CommandRunner:
    """Runs commands synchronously, optionally as another user.

    Attributes:
        extra_env: Environment entries added to every command
    """
    extra_env: Dict[str, str] = field(default_factory=dict)

    def run(
        self,
        command: List[str],
        cwd: Optional[str] = None,
        user: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        check: bool = False,
        description: Optional[str] = None,
    ) -> CommandResult:
        """Run a command and capture its combined output.

        Args:
            command: Argument vector
            cwd: Working directory
            user: Run as this user via runuser
            env: Extra environment variables for this command only
            check: Raise CommandError on non-zero exit
            description: Task name used in error reports

        Returns:
            CommandResult with exit code and combined output

        Raises:
            CommandError: If check is True and the command fails
        """
        merged_env = dict(self.extra_env)
        if env:
            merged_env.update(env)

        result = self._execute(list(command), cwd, user, merged_env)

        if result.ok:
            logger.debug(f"Command succeeded: {result.command_line}")
        else:
            logger.debug(f"Command exited {result.returncode}: {result.command_line}")
            if check:
                raise CommandError(description or result.command_line, result)
        return result

    def execute(self, description: str, command: List[str], announce: bool = True, **kwargs) -> CommandResult:
        """Run a task quietly, reporting only its start, success, or failure.

        Args:
            description: Task name shown to the user
            command: Argument vector
            announce: Log a success line when the task completes

        Raises:
            CommandError: If the command fails
        """
        logger.info(f"{description}...")
        result = self.run(command, check=True, description=description, **kwargs)
        if announce:
            logger.info(f"{description} completed successfully.")
        return result

    def _execute(
        self,
        command: List[str],
        cwd: Optional[str],
        user: Optional[str],
        env: Dict[str, str],
    ) -> CommandResult:
        argv = list(command)
        if user:
            argv = ["runuser", "-u", user, "--"] + argv

        process_env = None
        if env:
            process_env = os.environ.copy()
            process_env.update(env)

        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=process_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(command=command, returncode=127, output=str(e), user=user)

        return CommandResult(
            command=command,
            returncode=completed.returncode,
            output=completed.stdout or "",
            user=user,
        )
