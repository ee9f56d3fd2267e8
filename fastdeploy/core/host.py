"""Host facts used to derive defaults."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastdeploy.core.logger import get_logger
from fastdeploy.core.runner import CommandRunner

logger = get_logger(__name__)

FALLBACK_MEMORY_MB = 1024
MIN_MEMORY_MAX_MB = 256
MAX_MEMORY_MAX_MB = 4096


@dataclass(frozen=True)
class HostFacts:
    """CPU and memory figures of the machine being provisioned."""
    cores: int
    total_memory_mb: int

    @property
    def recommended_workers(self) -> int:
        return self.cores * 2 + 1

    @property
    def recommended_memory_max(self) -> str:
        """One eighth of RAM, clamped to 256M..4G."""
        eighth = self.total_memory_mb // 8
        if eighth < MIN_MEMORY_MAX_MB:
            return f"{MIN_MEMORY_MAX_MB}M"
        if eighth > MAX_MEMORY_MAX_MB:
            return "4G"
        return f"{eighth}M"

    @classmethod
    def detect(cls, meminfo: Path = Path("/proc/meminfo")) -> "HostFacts":
        cores = os.cpu_count() or 1
        memory = read_total_memory_mb(meminfo)
        if memory is None:
            logger.warning(
                f"Could not reliably determine total system memory. "
                f"Assuming {FALLBACK_MEMORY_MB}MB for suggestions."
            )
            memory = FALLBACK_MEMORY_MB
        return cls(cores=cores, total_memory_mb=memory)


def read_total_memory_mb(meminfo: Path = Path("/proc/meminfo")) -> Optional[int]:
    """Parse MemTotal from /proc/meminfo, in megabytes."""
    try:
        with open(meminfo) as f:
            for line in f:
                if line.startswith("MemTotal:"):
                    return int(line.split()[1]) // 1024
    except (OSError, ValueError, IndexError):
        return None
    return None


def server_ip(runner: CommandRunner) -> Optional[str]:
    """Best-effort primary address from `hostname -I`."""
    result = runner.run(["hostname", "-I"])
    if not result.ok:
        return None
    addresses = result.output.split()
    return addresses[0] if addresses else None
