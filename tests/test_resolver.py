"""Tests for the configuration resolver."""
import pytest

from conftest import ScriptedPrompter
from fastdeploy.core import validators
from fastdeploy.core.errors import ConfigurationError, PreconditionError
from fastdeploy.core.host import HostFacts
from fastdeploy.core.port_allocator import PortAllocator
from fastdeploy.core.resolver import ConfigurationResolver, FieldSpec
from fastdeploy.models.descriptor import InstallMode

FACTS = HostFacts(cores=2, total_memory_mb=4096)


class FixedAllocator(PortAllocator):
    def __init__(self, port):
        super().__init__(lambda p: False)
        self.port = port

    def allocate(self):
        return self.port


def make_resolver(answers, mode, settings, port=9100, busy=()):
    prompter = ScriptedPrompter(answers)
    resolver = ConfigurationResolver(
        prompter, mode, settings, FACTS, FixedAllocator(port), lambda p: p in busy
    )
    return resolver, prompter


GUIDED_ANSWERS = [
    "Demo API",
    "demo_api",
    "https://github.com/acme/demo-api.git",
    "",  # no username
    "api.example.com",
]


class TestCollect:
    """Test single-field collection."""

    def test_guided_uses_default_without_prompting(self, settings):
        resolver, prompter = make_resolver([], InstallMode.GUIDED, settings)
        value = resolver.collect(FieldSpec("NICE_VALUE", "Nice", validator=validators.is_nice_value, default="0"))

        assert value == "0"
        assert prompter.prompts == []
        assert "Using default value for NICE_VALUE: 0" in prompter.output

    def test_guided_invalid_default_is_fatal(self, settings):
        resolver, _ = make_resolver([], InstallMode.GUIDED, settings)
        with pytest.raises(ConfigurationError):
            resolver.collect(FieldSpec("APP_PORT", "Port", validator=validators.is_port, default="80"))

    def test_explicit_shows_default_and_accepts_empty(self, settings):
        resolver, prompter = make_resolver([""], InstallMode.EXPLICIT, settings)
        value = resolver.collect(FieldSpec("NICE_VALUE", "Nice", validator=validators.is_nice_value, default="0"))

        assert value == "0"
        assert prompter.prompts[0][0] == "Nice (default: 0)"

    def test_reprompts_until_valid(self, settings):
        resolver, prompter = make_resolver(["../etc", "my app", "demo_api"], InstallMode.EXPLICIT, settings)
        value = resolver.collect(FieldSpec("APP_CODE_NAME", "Code", validator=validators.is_code_name))

        assert value == "demo_api"
        assert len(prompter.prompts) == 3
        assert prompter.output.count("Invalid input. Please try again.") == 2

    def test_empty_without_default_reprompts(self, settings):
        resolver, prompter = make_resolver(["", "", "Demo"], InstallMode.GUIDED, settings)
        value = resolver.collect(FieldSpec("APP_NICE_NAME", "Name", validator=validators.is_not_empty))

        assert value == "Demo"
        assert prompter.output.count("Input cannot be empty.") == 2

    def test_empty_reprompt_falls_back_to_default(self, settings):
        resolver, _ = make_resolver(["abc", ""], InstallMode.EXPLICIT, settings)
        value = resolver.collect(FieldSpec("APP_PORT", "Port", validator=validators.is_port, default="9100"))
        assert value == "9100"

    def test_secret_is_hidden_and_never_echoed(self, settings):
        resolver, prompter = make_resolver(["s3cret-token"], InstallMode.GUIDED, settings)
        value = resolver.collect(FieldSpec("GITHUB_PAT", "Token", validator=validators.is_not_empty, secret=True))

        assert value == "s3cret-token"
        assert prompter.prompts[0] == ("Token (input hidden)", True)
        assert "s3cret-token" not in prompter.output
        assert "GITHUB_PAT has been set (value hidden)." in prompter.output


class TestResolve:
    """Test full descriptor resolution."""

    def test_guided_mode_fills_defaults(self, settings):
        resolver, prompter = make_resolver(list(GUIDED_ANSWERS), InstallMode.GUIDED, settings)
        d = resolver.resolve()

        assert d.code_name == "demo_api"
        assert d.port == 9100
        assert d.app_module == "main:app"
        assert d.workers == 5
        assert d.concurrency_limit == 1000
        assert d.backlog == 2048
        assert d.nice == 0
        assert d.cpu_quota == "80%"
        assert d.memory_max == "512M"
        assert d.gzip_level == 6
        assert d.git_username is None
        assert d.app_dir == settings.apps_base_dir / "demo_api"
        assert prompter.answers == []

    def test_explicit_mode_prompts_every_field(self, settings):
        answers = [
            "Demo API", "demo_api", "git@github.com:acme/demo-api.git", "api.example.com",
            "9200", "app.server:api", "3", "500", "1024", "5", "50%", "1G", "4",
        ]
        resolver, prompter = make_resolver(answers, InstallMode.EXPLICIT, settings)
        d = resolver.resolve()

        assert d.port == 9200
        assert d.app_module == "app.server:api"
        assert d.workers == 3
        assert d.concurrency_limit == 500
        assert d.backlog == 1024
        assert d.nice == 5
        assert d.cpu_quota == "50%"
        assert d.memory_max == "1G"
        assert d.gzip_level == 4
        assert prompter.answers == []

    def test_ssh_url_skips_credentials(self, settings):
        answers = ["Demo", "demo_api", "git@github.com:acme/demo-api.git", "api.example.com"]
        resolver, prompter = make_resolver(answers, InstallMode.GUIDED, settings)
        d = resolver.resolve()

        assert d.git_username is None
        assert not any("username" in text for text, _ in prompter.prompts)

    def test_https_credentials_collected(self, settings):
        answers = ["Demo", "demo_api", "https://github.com/acme/private.git", "octocat", "ghp_token",
                   "api.example.com"]
        resolver, prompter = make_resolver(answers, InstallMode.GUIDED, settings)
        d = resolver.resolve()

        assert d.git_username == "octocat"
        assert d.git_token.get_secret_value() == "ghp_token"
        assert d.uses_credentials is True
        assert "ghp_token" not in repr(d)
        assert "ghp_token" not in prompter.output

    def test_occupied_port_is_fatal(self, settings):
        resolver, _ = make_resolver(list(GUIDED_ANSWERS), InstallMode.GUIDED, settings, busy={9100})
        with pytest.raises(PreconditionError, match="9100"):
            resolver.resolve()

    def test_allocation_failure_falls_back(self, settings):
        resolver, _ = make_resolver(list(GUIDED_ANSWERS), InstallMode.GUIDED, settings, port=None)
        assert resolver.resolve().port == settings.fallback_port
