"""systemd unit control through systemctl."""
from fastdeploy.core.runner import CommandResult, CommandRunner


class ServiceManager:
    """Thin systemctl wrapper; callers decide which failures are fatal."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def _systemctl(self, *args: str) -> CommandResult:
        return self.runner.run(["systemctl"] + list(args))

    def daemon_reload(self) -> CommandResult:
        return self._systemctl("daemon-reload")

    def enable(self, unit: str) -> CommandResult:
        return self._systemctl("enable", unit)

    def enable_now(self, unit: str) -> CommandResult:
        return self._systemctl("enable", "--now", unit)

    def disable(self, unit: str) -> CommandResult:
        return self._systemctl("disable", unit)

    def start(self, unit: str) -> CommandResult:
        return self._systemctl("start", unit)

    def stop(self, unit: str) -> CommandResult:
        return self._systemctl("stop", unit)

    def restart(self, unit: str) -> CommandResult:
        return self._systemctl("restart", unit)

    def reload(self, unit: str) -> CommandResult:
        return self._systemctl("reload", unit)

    def is_active(self, unit: str) -> bool:
        return self._systemctl("is-active", "--quiet", unit).ok
