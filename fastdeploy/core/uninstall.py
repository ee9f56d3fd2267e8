"""Confirmation-gated removal of a deployed application."""
from fastdeploy.core import validators
from fastdeploy.core.cleanup import CleanupProtocol
from fastdeploy.core.config import DeploySettings
from fastdeploy.core.progress import ProgressMarker
from fastdeploy.core.prompter import Prompter


class UninstallFlow:
    """Asks which application to remove, shows what goes, and runs cleanup on 'y'."""

    def __init__(
        self,
        prompter: Prompter,
        cleanup: CleanupProtocol,
        marker: ProgressMarker,
        settings: DeploySettings,
    ):
        self.prompter = prompter
        self.cleanup = cleanup
        self.marker = marker
        self.settings = settings

    def ask_code_name(self) -> str:
        self.prompter.say(
            "Enter the unique 'code name' of the application you wish to uninstall. "
            "It identifies its systemd service, Nginx configuration, system user and "
            f"application directory ({self.settings.apps_base_dir}/<code>).",
            style="green",
        )
        while True:
            code_name = self.prompter.ask("Enter the app code name to uninstall")
            if not code_name:
                self.prompter.error("Input cannot be empty.")
            elif not validators.is_code_name(code_name):
                self.prompter.error("Invalid input. Please try again.")
            else:
                return code_name

    def run(self) -> int:
        """Returns the process exit code (0 for both removal and cancellation)."""
        code_name = self.ask_code_name()
        app_dir = self.settings.app_dir(code_name)

        self.prompter.say(f"You are about to uninstall '{code_name}'. This will remove:", style="yellow")
        self.prompter.say(f"- Systemd service: {code_name}.service")
        self.prompter.say(f"- Nginx site: {code_name}")
        self.prompter.say(f"- System user: {code_name}")
        self.prompter.say(f"- Application directory: {app_dir}")

        try:
            if self.prompter.confirm("Are you sure you want to proceed?"):
                self.cleanup.run(code_name)
                self.prompter.say(f"Uninstallation complete for '{code_name}'", style="green")
            else:
                self.prompter.say("Uninstallation cancelled.", style="yellow")
        finally:
            self.marker.release()
        return 0
