"""Git checkout of the application source."""
from pathlib import Path
from typing import Optional

from fastdeploy.core.errors import CommandError
from fastdeploy.core.logger import get_logger
from fastdeploy.core.runner import CommandResult, CommandRunner

logger = get_logger(__name__)

USERNAME_ENV = "FASTDEPLOY_GIT_USERNAME"
TOKEN_ENV = "FASTDEPLOY_GIT_TOKEN"

# Answers git's "get" request from the environment of this one invocation,
# so the token never appears in argv, the remote URL or .git/config.
CREDENTIAL_HELPER = (
    "!f() { test \"$1\" = get && "
    f"echo \"username=${{{USERNAME_ENV}}}\" && "
    f"echo \"password=${{{TOKEN_ENV}}}\"; }}; f"
)


class GitManager:
    """Manages git operations for app deployment."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def clone_repo(
        self,
        url: str,
        path: Path,
        user: str,
        username: Optional[str] = None,
        token: Optional[str] = None,
        depth: int = 1,
    ) -> CommandResult:
        """Shallow-clone a repository as the application user.

        Args:
            url: Git repository URL
            path: Existing, empty target directory
            user: System user that will own the checkout
            username: Username for private HTTPS repositories
            token: Personal access token for private HTTPS repositories
            depth: History depth to fetch

        Returns:
            CommandResult of the clone

        Raises:
            CommandError: If git exits non-zero
        """
        command = ["git"]
        env = {"GIT_TERMINAL_PROMPT": "0"}

        if url.startswith("https://") and username and token:
            command += ["-c", "credential.helper=", "-c", f"credential.helper={CREDENTIAL_HELPER}"]
            env[USERNAME_ENV] = username
            env[TOKEN_ENV] = token

        command += ["clone", "--depth", str(depth), url, str(path)]

        logger.info(f"Cloning repository from {url} into {path}...")
        result = self.runner.run(command, user=user, env=env)
        if not result.ok:
            raise CommandError(
                "Cloning repository",
                result,
                hint="Check repository URL, permissions, or network connectivity.",
            )
        logger.info("Repository cloned successfully.")
        return result
