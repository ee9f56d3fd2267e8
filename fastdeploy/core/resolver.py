"""Interactive collection of deployment parameters.

The resolver asks for every field through a Prompter, applies the
mode-dependent defaults and returns a DeploymentDescriptor.
"""
import textwrap
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import ValidationError

from fastdeploy.core import validators
from fastdeploy.core.config import DeploySettings
from fastdeploy.core.errors import ConfigurationError, PreconditionError
from fastdeploy.core.host import HostFacts
from fastdeploy.core.logger import get_logger
from fastdeploy.core.port_allocator import PortAllocator
from fastdeploy.core.prompter import Prompter
from fastdeploy.models.descriptor import DeploymentDescriptor, InstallMode

logger = get_logger(__name__)

DEFAULT_APP_MODULE = "main:app"
DEFAULT_CONCURRENCY_LIMIT = "1000"
DEFAULT_BACKLOG = "2048"
DEFAULT_NICE = "0"
DEFAULT_CPU_QUOTA = "80%"
DEFAULT_GZIP_LEVEL = "6"


@dataclass
class FieldSpec:
    """How one descriptor field is asked for."""
    name: str
    prompt: str
    explanation: str = ""
    validator: Optional[Callable[[str], bool]] = None
    default: Optional[str] = None
    secret: bool = False
    optional: bool = False


class ConfigurationResolver:
    """Builds a DeploymentDescriptor from user answers and host-derived defaults."""

    def __init__(
        self,
        prompter: Prompter,
        mode: InstallMode,
        settings: DeploySettings,
        facts: HostFacts,
        allocator: PortAllocator,
        is_listening: Callable[[int], bool],
    ):
        self.prompter = prompter
        self.mode = mode
        self.settings = settings
        self.facts = facts
        self.allocator = allocator
        self.is_listening = is_listening

    def collect(self, spec: FieldSpec) -> str:
        """Collect one field.

        Guided mode takes an available default without asking. Otherwise the
        user is prompted; empty input falls back to the default, and answers
        failing the validator are asked again.

        Raises:
            ConfigurationError: If a guided-mode default fails its validator
        """
        if self.mode is InstallMode.GUIDED and spec.default is not None:
            if spec.validator and not spec.validator(spec.default):
                raise ConfigurationError(f"Default value '{spec.default}' for {spec.name} is invalid")
            self.prompter.say(f"Using default value for {spec.name}: {spec.default}")
            return spec.default

        if spec.explanation:
            self.prompter.say(textwrap.dedent(spec.explanation).strip(), style="green")

        if spec.default is not None:
            if spec.secret:
                prompt = f"{spec.prompt} (default is set, input hidden)"
            else:
                prompt = f"{spec.prompt} (default: {spec.default})"
            value = self.prompter.ask(prompt, secret=spec.secret) or spec.default
        elif spec.optional:
            value = self.prompter.ask(spec.prompt, secret=spec.secret)
        else:
            value = self._ask_non_empty(spec)

        if spec.validator:
            while not spec.validator(value):
                self.prompter.error("Invalid input. Please try again.")
                value = self.prompter.ask(self._plain_prompt(spec), secret=spec.secret)
                if not value and spec.default is not None:
                    value = spec.default
                while not value:
                    self.prompter.error("Input cannot be empty.")
                    value = self.prompter.ask(self._plain_prompt(spec), secret=spec.secret)

        self._report(spec, value)
        return value

    def _ask_non_empty(self, spec: FieldSpec) -> str:
        while True:
            value = self.prompter.ask(self._plain_prompt(spec), secret=spec.secret)
            if value:
                return value
            self.prompter.error("Input cannot be empty.")

    @staticmethod
    def _plain_prompt(spec: FieldSpec) -> str:
        return f"{spec.prompt} (input hidden)" if spec.secret else spec.prompt

    def _report(self, spec: FieldSpec, value: str) -> None:
        if spec.secret:
            self.prompter.say(f"{spec.name} has been set (value hidden).", style="yellow")
        else:
            self.prompter.say(f"{spec.name} set to: {value}", style="yellow")
        logger.debug(f"Resolved {spec.name}" + ("" if spec.secret else f" = {value}"))

    def suggest_port(self) -> int:
        port = self.allocator.allocate()
        if port is None:
            logger.warning(
                f"Falling back to default port {self.settings.fallback_port} "
                f"as an available one could not be automatically determined."
            )
            return self.settings.fallback_port
        logger.info(f"Suggested available port for the app (Uvicorn): {port}")
        return port

    def resolve(self) -> DeploymentDescriptor:
        """Ask for every field in order and build the descriptor.

        Raises:
            PreconditionError: If the chosen port is already in use
            ConfigurationError: If the collected values do not form a valid descriptor
        """
        cores = self.facts.cores

        app_name = self.collect(FieldSpec(
            "APP_NICE_NAME", "Enter the Nice name of the app",
            """
            Enter a descriptive, human-readable name for your application.
            It is used in the description of the systemd service.
            Example: `Customer Data API`, `Internal Reporting Service`.
            """,
            validators.is_not_empty,
        ))

        code_name = self.collect(FieldSpec(
            "APP_CODE_NAME", "Enter the code name of the app",
            f"""
            Enter a short, unique 'code name' for this application. It names the
            system user and group, the systemd service (`<code>.service`), the Nginx
            site and the application directory ({self.settings.apps_base_dir}/<code>).
            Rules: letters, numbers, hyphens, underscores and periods only,
            starting with a letter, number or underscore.
            Examples: `my_cool_api`, `projectx-backend`, `webapp01`.
            """,
            validators.is_code_name,
        ))

        repo_url = self.collect(FieldSpec(
            "GITHUB_REPO", "Enter the GitHub repo URL (HTTPS or SSH)",
            """
            Enter the full Git repository URL for your FastAPI application.
            HTTPS: `https://github.com/your_username/your_repository.git`
                (For private HTTPS, you'll be asked for a username and token.)
            SSH:   `git@github.com:your_username/your_repository.git`
                (Requires SSH key setup on this server for the application user.)
            The repository is cloned shallowly (`--depth 1`).
            """,
            validators.is_repo_url,
        ))

        git_username = None
        git_token = None
        if validators.is_https_url(repo_url):
            git_username = self.collect(FieldSpec(
                "GITHUB_USERNAME", "Enter your GitHub username (optional, for private HTTPS repos)",
                """
                If the repository is private, enter your GitHub username.
                Public repository: leave this blank and press Enter.
                """,
                optional=True,
            )) or None
            if git_username:
                git_token = self.collect(FieldSpec(
                    "GITHUB_PAT", "Enter your GitHub Personal Access Token (PAT)",
                    """
                    Enter a Personal Access Token with the `repo` scope.
                    It is used only for the clone and is not stored.
                    """,
                    validators.is_not_empty,
                    secret=True,
                ))

        domain = self.collect(FieldSpec(
            "DOMAIN_NAME", "Enter the domain name",
            """
            Enter the domain name (or subdomain) of your application, e.g. `api.example.com`.
            Point its DNS 'A' record at this server after deployment.
            """,
            validators.is_domain_name,
        ))

        suggested_port = self.suggest_port()
        port = self.collect(FieldSpec(
            "APP_PORT", "Enter the port for the app to run on",
            f"""
            Enter the internal port (1024-65535) for Uvicorn. It is not public;
            Nginx proxies requests from port 80 to it.
            Suggested free port: `{suggested_port}`.
            """,
            validators.is_port,
            default=str(suggested_port),
        ))
        if self.is_listening(int(port)):
            raise PreconditionError(f"Port {port} is already in use. Please choose a different port.")

        app_module = self.collect(FieldSpec(
            "UVICORN_APP_MODULE", "Enter Python module and FastAPI instance (e.g., main:app)",
            """
            Module path and application instance for Uvicorn, as `path.to.module:instance`.
            `app = FastAPI()` in `main.py` is `main:app`.
            """,
            validators.is_module_reference,
            default=DEFAULT_APP_MODULE,
        ))

        workers = self.collect(FieldSpec(
            "NUM_WORKERS", "Enter the number of Uvicorn workers",
            f"""
            Number of Uvicorn worker processes. Recommendation: (2 * cores) + 1.
            This server has {cores} core(s), so the recommendation is {self.facts.recommended_workers}.
            Each worker consumes memory.
            """,
            validators.is_positive_integer,
            default=str(self.facts.recommended_workers),
        ))

        concurrency_limit = self.collect(FieldSpec(
            "CONCURRENCY_LIMIT", "Enter Uvicorn concurrency limit",
            f"""
            Maximum concurrent connections each worker handles.
            The default ({DEFAULT_CONCURRENCY_LIMIT}) suits I/O-bound applications.
            """,
            validators.is_positive_integer,
            default=DEFAULT_CONCURRENCY_LIMIT,
        ))

        backlog = self.collect(FieldSpec(
            "BACKLOG_SIZE", "Enter Uvicorn backlog size",
            f"""
            Connections the OS queues while all workers are busy.
            The default ({DEFAULT_BACKLOG}) is common for web servers.
            """,
            validators.is_positive_integer,
            default=DEFAULT_BACKLOG,
        ))

        nice = self.collect(FieldSpec(
            "NICE_VALUE", "Enter systemd Nice value for the app",
            """
            CPU scheduling niceness, from -20 (highest priority) to 19 (lowest).
            0 is normal.
            """,
            validators.is_nice_value,
            default=DEFAULT_NICE,
        ))

        cpu_quota = self.collect(FieldSpec(
            "CPU_QUOTA", "Enter systemd CPUQuota",
            f"""
            CPU limit as a percentage of one core's capacity (0%-100%).
            This server has {cores} core(s).
            """,
            validators.is_percentage,
            default=DEFAULT_CPU_QUOTA,
        ))

        memory_max = self.collect(FieldSpec(
            "MEMORY_MAX", "Enter systemd MemoryMax",
            f"""
            Maximum RAM the application may use, with a K, M or G suffix.
            Suggested {self.facts.recommended_memory_max} based on
            {self.facts.total_memory_mb}MB total RAM.
            """,
            validators.is_memory_size,
            default=self.facts.recommended_memory_max,
        ))

        gzip_level = self.collect(FieldSpec(
            "NGINX_GZIP_COMP_LEVEL", "Enter NGINX gzip compression level (1-9)",
            """
            Gzip level for text responses: 1 is fastest, 9 compresses most.
            4-6 is optimal for most applications.
            """,
            validators.is_gzip_level,
            default=DEFAULT_GZIP_LEVEL,
        ))

        try:
            return DeploymentDescriptor(
                app_name=app_name,
                code_name=code_name,
                repo_url=repo_url,
                git_username=git_username,
                git_token=git_token,
                app_module=app_module,
                domain=domain,
                port=port,
                workers=workers,
                concurrency_limit=concurrency_limit,
                backlog=backlog,
                nice=nice,
                cpu_quota=cpu_quota,
                memory_max=memory_max,
                gzip_level=gzip_level,
                apps_base_dir=self.settings.apps_base_dir,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid deployment parameters: {e}") from e
