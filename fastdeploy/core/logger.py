"""Logging for FastDeploy: rich console output plus a per-host run log."""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console()

LOG_DIR = Path("/var/log/fastdeploy")
LOG_FILE = LOG_DIR / "fastdeploy.log"
FALLBACK_LOG_FILE = Path("/tmp/fastdeploy.log")

PACKAGE_LOGGER = "fastdeploy"

# Shared by every module logger so verbosity is switched in one place
console_handler = RichHandler(console=console, show_path=False)
console_handler.setFormatter(logging.Formatter("%(message)s"))
console_handler.setLevel(logging.INFO)

_file_handler: Optional[logging.FileHandler] = None


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Attach the run log and set console verbosity.

    The run log always records DEBUG, so every command line and exit code
    is available afterwards. verbose only affects the console.

    Args:
        log_file: Path to log file (defaults to /var/log/fastdeploy/fastdeploy.log)
        verbose: Show debug messages on the console too

    Returns:
        Path of the log file in use
    """
    global _file_handler

    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    if _file_handler is not None:
        return Path(_file_handler.baseFilename)

    target = Path(log_file) if log_file else LOG_FILE
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target)
    except PermissionError:
        target = FALLBACK_LOG_FILE
        handler = logging.FileHandler(target)

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    _file_handler = handler

    package_logger.info(f"FastDeploy logging initialized: {target}")
    return target


def get_logger(name: str) -> logging.Logger:
    """Module logger writing to the console and, once set up, the run log."""
    logger = logging.getLogger(name)
    if console_handler not in logger.handlers:
        logger.addHandler(console_handler)
        logger.setLevel(logging.DEBUG)
    return logger
