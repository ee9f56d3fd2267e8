"""Tracking of the application currently being provisioned.

The marker is the only state that decides whether an abnormal exit rolls
anything back: it is armed with a code name before the first host
mutation for that name, and cleared only once the run has succeeded.
"""
import signal
from contextlib import contextmanager
from dataclasses import dataclass

from fastdeploy.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProgressMarker:
    """Code name in flight (empty when idle) and terminal-success flag."""
    code_name: str = ""
    completed: bool = False

    def arm(self, code_name: str) -> None:
        self.code_name = code_name
        self.completed = False

    def complete(self) -> None:
        """Record terminal success; disarms rollback for this run."""
        self.completed = True
        self.code_name = ""

    def release(self) -> None:
        """Drop the code name without claiming an install happened."""
        self.code_name = ""

    @property
    def needs_rollback(self) -> bool:
        return bool(self.code_name) and not self.completed


def _terminate(signum, frame):
    logger.warning("Received termination signal.")
    raise SystemExit(1)


@contextmanager
def rollback_guard(marker: ProgressMarker, cleanup):
    """Run cleanup.rollback(marker) when the block exits abnormally.

    Covers exceptions, typer.Exit/SystemExit and Ctrl+C. SIGTERM is turned
    into SystemExit for the duration of the block so it unwinds the same way.

    Args:
        marker: Progress marker owned by the caller
        cleanup: CleanupProtocol used for rollback
    """
    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        yield marker
    except BaseException:
        if marker.needs_rollback:
            cleanup.rollback(marker)
        raise
    else:
        if marker.needs_rollback:
            logger.warning(f"Run ended without completing '{marker.code_name}'")
            cleanup.rollback(marker)
    finally:
        signal.signal(signal.SIGTERM, previous)
