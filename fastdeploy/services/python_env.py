"""Virtual environment creation and dependency installation."""
import re
from pathlib import Path
from typing import List, Optional, Sequence

from fastdeploy.core.errors import CommandError
from fastdeploy.core.logger import get_logger
from fastdeploy.core.runner import CommandRunner

logger = get_logger(__name__)

VENV_NAME = "venv"

# pip chatter that does not indicate a problem with the installed packages.
# Heuristic: matched line by line, anything else is shown to the user.
BENIGN_PIP_OUTPUT = (
    re.compile(r"^WARNING: You are using pip version"),
    re.compile(r"^You should consider upgrading via"),
    re.compile(r"^\[notice\] A new release of pip"),
    re.compile(r"^\[notice\] To update, run:"),
)


def significant_output(output: str) -> List[str]:
    """Drop blank lines and known-benign pip notices."""
    lines = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if any(pattern.match(stripped) for pattern in BENIGN_PIP_OUTPUT):
            continue
        lines.append(line)
    return lines


class PythonEnvironment:
    """Builds the isolated runtime for one application."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def create(self, app_dir: Path, user: str) -> Path:
        self.runner.execute(
            f"Creating Python virtual environment in {app_dir / VENV_NAME}",
            ["python3", "-m", "venv", VENV_NAME],
            cwd=str(app_dir),
            user=user,
        )
        return app_dir / VENV_NAME

    def install(
        self,
        app_dir: Path,
        user: str,
        essentials: Sequence[str],
        requirements_file: Optional[str] = None,
    ) -> List[str]:
        """Install project and essential packages into the venv.

        Args:
            app_dir: Application root containing the venv
            user: Owner of the venv
            essentials: Packages the process runner always needs
            requirements_file: Manifest relative to app_dir, or None to skip

        Returns:
            Output lines worth showing the user (empty when pip was silent)

        Raises:
            CommandError: If pip exits non-zero
        """
        pip = [str(app_dir / VENV_NAME / "bin" / "pip"), "install", "--no-cache-dir", "-q"]
        commands = []
        if requirements_file:
            logger.info(f"Project dependencies will be installed from '{requirements_file}' "
                        f"along with essential packages.")
            commands.append(pip + ["-r", requirements_file])
        else:
            logger.info(f"Skipping project-specific dependencies. "
                        f"Installing only essential packages: {' '.join(essentials)}.")
        commands.append(pip + list(essentials))

        logger.info("Installing Python dependencies (using pip -q, this may take a moment)...")
        notices: List[str] = []
        for command in commands:
            result = self.runner.run(command, cwd=str(app_dir), user=user)
            if not result.ok:
                raise CommandError(
                    "Installing Python dependencies",
                    result,
                    hint="Consider running pip without '-q' inside the venv for more details.",
                )
            notices.extend(significant_output(result.output))

        if notices:
            logger.warning("Python dependencies installed. pip produced some output (e.g., warnings):")
        else:
            logger.info("Python dependencies installed successfully.")
        return notices
