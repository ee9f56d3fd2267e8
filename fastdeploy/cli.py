#!/usr/bin/env python3
"""FastDeploy CLI - FastAPI application deployment with Nginx and systemd."""
from enum import Enum

import typer
from rich.console import Console

from fastdeploy.cli_support import (
    is_root,
    print_error,
    print_info,
    print_success,
    print_warning,
    report_error,
)
from fastdeploy.core.cleanup import CleanupProtocol
from fastdeploy.core.config import DeploySettings, get_settings
from fastdeploy.core.errors import ConfigurationError, DeployError, PreconditionError
from fastdeploy.core.host import HostFacts
from fastdeploy.core.logger import get_logger, setup_file_logging
from fastdeploy.core.port_allocator import PortAllocator, PortProbe
from fastdeploy.core.progress import ProgressMarker, rollback_guard
from fastdeploy.core.prompter import ConsolePrompter, Prompter
from fastdeploy.core.provisioner import Provisioner
from fastdeploy.core.resolver import ConfigurationResolver
from fastdeploy.core.runner import CommandRunner
from fastdeploy.core.uninstall import UninstallFlow
from fastdeploy.models.descriptor import InstallMode

app = typer.Typer(
    name="fastdeploy",
    help="""FastDeploy - FastAPI application deployment with Nginx and systemd

Creates a system user, clones the application, builds its virtualenv,
installs a systemd unit running Uvicorn and an Nginx site in front of it.
Everything is undone automatically if a step fails.
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


class Action(Enum):
    INSTALL = "Install"
    UNINSTALL = "Uninstall"


def build_runner() -> CommandRunner:
    return CommandRunner()


def build_probe(runner: CommandRunner) -> PortProbe:
    return PortProbe(runner)


def detect_host() -> HostFacts:
    return HostFacts.detect()


def choose_action(prompter: Prompter) -> Action:
    return prompter.choose(
        "Choose mode (Install/Uninstall) [I/u, default: I]",
        {"i": Action.INSTALL, "u": Action.UNINSTALL},
        default="i",
    )


def choose_mode(prompter: Prompter) -> InstallMode:
    return prompter.choose(
        "Choose Installation Mode (Easy/Advanced) [E/a, default: E]",
        {"e": InstallMode.GUIDED, "a": InstallMode.EXPLICIT},
        default="e",
    )


def install(
    prompter: Prompter,
    runner: CommandRunner,
    settings: DeploySettings,
    marker: ProgressMarker,
) -> str:
    """Collect parameters and provision the application.

    Returns:
        Code name of the deployed application
    """
    print_info(console, "Starting Installation Process...")
    mode = choose_mode(prompter)

    probe = build_probe(runner)
    allocator = PortAllocator(
        probe.is_listening,
        reserved=settings.reserved_ports,
        max_attempts=settings.port_attempts,
    )
    resolver = ConfigurationResolver(
        prompter, mode, settings, detect_host(), allocator, probe.is_listening
    )
    descriptor = resolver.resolve()

    Provisioner(runner, settings, marker, prompter, mode, probe.is_listening).run(descriptor)
    return descriptor.code_name


@app.command()
def deploy():
    """Install or uninstall a FastAPI application interactively."""
    try:
        settings = get_settings()
    except ConfigurationError as err:
        report_error(console, err)
        raise typer.Exit(1)

    setup_file_logging(settings.log_file, verbose=settings.verbose)

    runner = build_runner()
    marker = ProgressMarker()
    cleanup = CleanupProtocol(runner, settings)
    prompter = ConsolePrompter(console)

    console.print("[green]Welcome to FastDeploy - FastAPI Application Deployment![/green]")
    console.print("This tool deploys a FastAPI application with Nginx and systemd.")
    print_warning(console, "Press Ctrl+C at any point to abort. A cleanup will be attempted if necessary.")
    console.print("-" * 74)

    with rollback_guard(marker, cleanup):
        try:
            if not is_root():
                raise PreconditionError("FastDeploy must be run as root (try: sudo fastdeploy).")

            if choose_action(prompter) is Action.UNINSTALL:
                raise typer.Exit(UninstallFlow(prompter, cleanup, marker, settings).run())

            code_name = install(prompter, runner, settings, marker)
        except DeployError as err:
            report_error(console, err)
            raise typer.Exit(1)
        except (KeyboardInterrupt, typer.Abort):
            # Ctrl+C inside a typer prompt arrives as Abort
            console.print()
            print_error(console, "Interrupted by user.")
            raise typer.Exit(1)

    print_success(console, f"Deployment of '{code_name}' was successful.")


if __name__ == "__main__":
    app()
