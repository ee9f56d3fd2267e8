"""Shared test fixtures for FastDeploy tests."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from fastdeploy.core.config import DeploySettings
from fastdeploy.core.prompter import Prompter
from fastdeploy.core.runner import CommandResult, CommandRunner
from fastdeploy.models.descriptor import DeploymentDescriptor


@dataclass
class FakeCall:
    command: List[str]
    cwd: Optional[str] = None
    user: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def line(self) -> str:
        return " ".join(self.command)


class FakeRunner(CommandRunner):
    """CommandRunner that records commands and simulates the host.

    Tracks system users and active units, and writes repo_files into the
    clone target so later stages find them.
    """

    def __init__(self):
        super().__init__()
        self.calls: List[FakeCall] = []
        self.failures = []
        self.outputs = []
        self.users = set()
        self.active_units = {"nginx"}
        self.repo_files = {"requirements.txt": "fastapi\n"}

    def fail(self, *prefix, returncode=1, output="simulated failure"):
        self.failures.append((list(prefix), returncode, output))

    def respond(self, *prefix, output=""):
        self.outputs.append((list(prefix), output))

    def ran(self, *prefix) -> bool:
        return any(call.command[:len(prefix)] == list(prefix) for call in self.calls)

    def _execute(self, command, cwd, user, env):
        self.calls.append(FakeCall(list(command), cwd, user, dict(env)))

        for prefix, returncode, output in self.failures:
            if command[:len(prefix)] == prefix:
                return CommandResult(command, returncode, output, user)

        returncode = self._simulate(command)
        output = ""
        for prefix, canned in self.outputs:
            if command[:len(prefix)] == prefix:
                output = canned
        return CommandResult(command, returncode, output, user)

    def _simulate(self, command) -> int:
        name = command[0]
        if name == "adduser":
            if command[-1] in self.users:
                return 1
            self.users.add(command[-1])
        elif name == "userdel":
            if command[1] not in self.users:
                return 6
            self.users.discard(command[1])
        elif name == "groupdel":
            return 6
        elif command[:2] == ["systemctl", "is-active"]:
            return 0 if command[-1] in self.active_units else 3
        elif command[:2] == ["systemctl", "start"]:
            self.active_units.add(command[-1])
        elif command[:2] == ["systemctl", "stop"]:
            if command[-1] not in self.active_units:
                return 5
            self.active_units.discard(command[-1])
        elif name == "git" and "clone" in command:
            target = Path(command[-1])
            for relative, content in self.repo_files.items():
                (target / relative).parent.mkdir(parents=True, exist_ok=True)
                (target / relative).write_text(content)
        return 0


class ScriptedPrompter(Prompter):
    """Prompter fed from a list of answers; records everything shown."""

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.prompts = []
        self.messages = []

    def ask(self, text, secret=False):
        self.prompts.append((text, secret))
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {text}")
        return self.answers.pop(0)

    def say(self, message, style=None):
        self.messages.append(message)

    @property
    def output(self) -> str:
        return "\n".join(self.messages)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def settings(tmp_path):
    """Settings with every host path redirected under tmp_path."""
    return DeploySettings(
        apps_base_dir=tmp_path / "www",
        systemd_unit_dir=tmp_path / "systemd",
        nginx_sites_available=tmp_path / "nginx" / "sites-available",
        nginx_sites_enabled=tmp_path / "nginx" / "sites-enabled",
        acme_webroot=tmp_path / "www" / "html",
        log_file=str(tmp_path / "fastdeploy.log"),
    )


@pytest.fixture
def descriptor(settings):
    """The demo_api deployment used across scenarios."""
    return DeploymentDescriptor(
        app_name="Demo API",
        code_name="demo_api",
        repo_url="https://github.com/acme/demo-api.git",
        domain="api.example.com",
        port=9100,
        app_module="main:app",
        workers=5,
        memory_max="512M",
        apps_base_dir=settings.apps_base_dir,
    )


def residue(settings: DeploySettings, runner: FakeRunner, code_name: str) -> List[str]:
    """Artifacts left behind for code_name."""
    leftovers = []
    if settings.app_dir(code_name).exists():
        leftovers.append("app_dir")
    if settings.unit_path(code_name).exists():
        leftovers.append("unit")
    if settings.site_available_path(code_name).exists():
        leftovers.append("site_available")
    if settings.site_enabled_path(code_name).is_symlink() or settings.site_enabled_path(code_name).exists():
        leftovers.append("site_enabled")
    if code_name in runner.users:
        leftovers.append("user")
    return leftovers
