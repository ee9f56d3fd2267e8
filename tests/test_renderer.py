"""Tests for unit and site rendering."""
from pathlib import Path

from fastdeploy.core.renderer import render_site, render_unit


class TestRenderUnit:
    """Test the systemd unit template."""

    def test_demo_api_unit(self, descriptor):
        unit = render_unit(descriptor)

        assert "Description=Demo API API Powered by FastAPI" in unit
        assert "Documentation=https://github.com/acme/demo-api.git" in unit
        assert "--port 9100" in unit
        assert "--host 127.0.0.1" in unit
        assert "--workers 5" in unit
        assert "--limit-concurrency 1000" in unit
        assert "--backlog 2048" in unit
        assert unit.rstrip().endswith("WantedBy=multi-user.target")
        assert "    main:app\n" in unit

    def test_runs_from_venv_as_app_user(self, descriptor):
        unit = render_unit(descriptor)
        venv_bin = descriptor.app_dir / "venv" / "bin"

        assert f"ExecStart={venv_bin}/uvicorn \\\n" in unit
        assert "User=demo_api" in unit
        assert "Group=demo_api" in unit
        assert f"WorkingDirectory={descriptor.app_dir}" in unit
        assert f'Environment="PATH={venv_bin}:$PATH"' in unit

    def test_runtime_flags_and_sandboxing(self, descriptor):
        unit = render_unit(descriptor)

        for flag in ("--loop uvloop", "--http httptools", "--proxy-headers",
                     "--forwarded-allow-ips='*'", "--log-level warning", "--access-log"):
            assert flag in unit
        for directive in ("PrivateTmp=true", "ProtectSystem=full", "NoNewPrivileges=true",
                          "ProtectHome=read-only", "ProtectKernelTunables=true",
                          "ProtectKernelModules=true", "ProtectControlGroups=true"):
            assert directive in unit
        assert "Restart=always" in unit
        assert "RestartSec=15" in unit
        assert "TimeoutStopSec=30" in unit
        assert "KillSignal=SIGINT" in unit

    def test_resource_limits(self, descriptor):
        tuned = descriptor.model_copy(update={"nice": -5, "cpu_quota": "50%", "memory_max": "2G"})
        unit = render_unit(tuned)

        assert "Nice=-5" in unit
        assert "CPUQuota=50%" in unit
        assert "MemoryMax=2G" in unit


class TestRenderSite:
    """Test the nginx site template."""

    def test_demo_api_site(self, descriptor):
        site = render_site(descriptor)

        assert "proxy_pass http://127.0.0.1:9100;" in site
        assert "server_name api.example.com;" in site
        assert "listen 80;" in site
        assert "gzip_comp_level 6;" in site
        assert "gzip_min_length 256;" in site

    def test_acme_challenge_and_dotfiles(self, descriptor):
        site = render_site(descriptor, acme_webroot=Path("/srv/acme"))

        assert "location /.well-known/acme-challenge/ {" in site
        assert "root /srv/acme;" in site
        assert "location ~ /\\.(?!well-known) {" in site

    def test_forwarding_and_upgrade_headers(self, descriptor):
        site = render_site(descriptor)

        for header in ("X-Real-IP $remote_addr", "X-Forwarded-For $proxy_add_x_forwarded_for",
                       "X-Forwarded-Proto $scheme", "X-Forwarded-Host $host",
                       "X-Forwarded-Port $server_port", "Upgrade $http_upgrade",
                       'Connection "upgrade"'):
            assert f"proxy_set_header {header};" in site
        assert "proxy_http_version 1.1;" in site

    def test_balanced_braces(self, descriptor):
        site = render_site(descriptor)
        assert site.count("{") == site.count("}")
