"""End-to-end tests for the interactive CLI."""
from unittest.mock import Mock, patch

import pytest
from typer.testing import CliRunner

from conftest import FakeRunner, residue
from fastdeploy import cli
from fastdeploy.core.config import set_settings
from fastdeploy.core.host import HostFacts

cli_runner = CliRunner()

REPO = "https://github.com/acme/demo-api.git"
GUIDED_INSTALL = f"i\ne\nDemo API\ndemo_api\n{REPO}\n\napi.example.com\n"


@pytest.fixture
def host(monkeypatch, settings):
    """Wire the CLI to a FakeRunner and tmp_path settings as root."""
    fake = FakeRunner()
    probe = Mock()
    probe.is_listening.return_value = False

    monkeypatch.setattr(cli, "build_runner", lambda: fake)
    monkeypatch.setattr(cli, "build_probe", lambda runner: probe)
    monkeypatch.setattr(cli, "detect_host", lambda: HostFacts(cores=2, total_memory_mb=4096))
    monkeypatch.setattr(cli, "is_root", lambda: True)
    set_settings(settings)
    with patch("fastdeploy.services.apt.shutil.which", return_value="/usr/bin/tool"):
        yield fake
    set_settings(None)


class TestHelp:
    """Test help output."""

    def test_main_help(self):
        result = cli_runner.invoke(cli.app, ["--help"])

        assert result.exit_code == 0
        assert "FastDeploy - FastAPI application deployment with Nginx and systemd" in result.stdout


class TestInstall:
    """Test the install path."""

    def test_guided_install(self, host, settings):
        result = cli_runner.invoke(cli.app, [], input=GUIDED_INSTALL)

        assert result.exit_code == 0, result.stdout
        assert "Deployment of 'demo_api' was successful." in result.stdout
        assert "Using default value for NUM_WORKERS: 5" in result.stdout
        assert settings.unit_path("demo_api").exists()
        assert settings.site_enabled_path("demo_api").is_symlink()
        assert "demo_api" in host.users

    def test_explicit_install_abort_rolls_back(self, host, settings):
        host.repo_files = {}
        answers = f"i\na\nDemo API\ndemo_api\n{REPO}\n\napi.example.com\n" + "\n" * 9 + "a\n"

        result = cli_runner.invoke(cli.app, [], input=answers)

        assert result.exit_code == 1
        assert "Aborting installation due to requirements file issue." in result.stdout
        assert residue(settings, host, "demo_api") == []

    def test_failed_stage_reports_command(self, host, settings):
        host.fail("nginx", "-t", output="nginx: [emerg] unknown directive")

        result = cli_runner.invoke(cli.app, [], input=GUIDED_INSTALL)

        assert result.exit_code == 1
        assert "Command executed:" in result.stdout
        assert "unknown directive" in result.stdout
        assert residue(settings, host, "demo_api") == []

    def test_requires_root(self, host, monkeypatch):
        monkeypatch.setattr(cli, "is_root", lambda: False)

        result = cli_runner.invoke(cli.app, [])

        assert result.exit_code == 1
        assert "must be run as root" in result.stdout
        assert host.calls == []


class TestUninstall:
    """Test the uninstall path."""

    def test_confirmed(self, host, settings):
        settings.app_dir("demo_api").mkdir(parents=True)
        host.users.add("demo_api")

        result = cli_runner.invoke(cli.app, [], input="u\ndemo_api\ny\n")

        assert result.exit_code == 0
        assert "Uninstallation complete for 'demo_api'" in result.stdout
        assert residue(settings, host, "demo_api") == []

    def test_cancelled(self, host, settings):
        settings.app_dir("demo_api").mkdir(parents=True)

        result = cli_runner.invoke(cli.app, [], input="u\ndemo_api\n\n")

        assert result.exit_code == 0
        assert "Uninstallation cancelled." in result.stdout
        assert settings.app_dir("demo_api").exists()


class TestInterrupt:
    """Test Ctrl+C at a prompt."""

    def test_abort_before_provisioning(self, host):
        result = cli_runner.invoke(cli.app, [], input="i\ne\nDemo API\n")

        assert result.exit_code == 1
        assert "Interrupted by user." in result.stdout
        assert "Performing cleanup" not in result.stdout
        assert host.calls == []

    def test_abort_mid_install_reports_then_cleans_up(self, host, settings):
        host.repo_files = {}
        answers = f"i\na\nDemo API\ndemo_api\n{REPO}\n\napi.example.com\n" + "\n" * 9

        result = cli_runner.invoke(cli.app, [], input=answers)

        assert result.exit_code == 1
        output = result.stdout
        assert "Interrupted by user." in output
        assert output.index("Interrupted by user.") < output.index("Performing cleanup for 'demo_api'")
        assert residue(settings, host, "demo_api") == []
