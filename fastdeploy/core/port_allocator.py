"""Free port discovery for the application's internal listener."""
import random
import shutil
import socket
from typing import Callable, Iterable, Optional

from fastdeploy.core.logger import get_logger
from fastdeploy.core.runner import CommandRunner
from fastdeploy.core.validators import MAX_PORT, MIN_PORT

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 50


class PortProbe:
    """Answers "is something listening on TCP port N" for this host."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_listening(self, port: int) -> bool:
        if shutil.which("lsof"):
            result = self.runner.run(["lsof", "-Pi", f":{port}", "-sTCP:LISTEN", "-t"])
            return result.ok
        return self._connect_probe(port)

    @staticmethod
    def _connect_probe(port: int) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(0.5)
            return sock.connect_ex(("127.0.0.1", port)) == 0


class PortAllocator:
    """Samples random unprivileged ports until one is free.

    The result is advisory: the provisioner re-probes before binding.
    """

    def __init__(
        self,
        is_listening: Callable[[int], bool],
        reserved: Iterable[int] = (),
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        self.is_listening = is_listening
        self.reserved = frozenset(reserved)
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    def allocate(self) -> Optional[int]:
        """Return a free port, or None once max_attempts samples are spent."""
        logger.info("Attempting to find an available random port...")
        for _ in range(self.max_attempts):
            port = self.rng.randint(MIN_PORT, MAX_PORT)
            if port in self.reserved:
                continue
            if not self.is_listening(port):
                return port

        logger.error(f"Could not automatically find an available port after {self.max_attempts} attempts.")
        return None
