"""Rendering of the systemd unit and nginx site for a deployment."""
from pathlib import Path

from jinja2 import BaseLoader, Environment, StrictUndefined

from fastdeploy.models.descriptor import DeploymentDescriptor

UNIT_TEMPLATE = """\
[Unit]
Description={{ d.app_name }} API Powered by FastAPI
After=network.target
Wants=network-online.target
Documentation={{ d.repo_url }}

[Service]
Type=simple
Restart=always
RestartSec=15
User={{ d.code_name }}
Group={{ d.code_name }}
Environment="PATH={{ d.venv_dir }}/bin:$PATH"
WorkingDirectory={{ d.app_dir }}
ExecStart={{ d.venv_dir }}/bin/uvicorn \\
    --host 127.0.0.1 \\
    --port {{ d.port }} \\
    --loop uvloop \\
    --http httptools \\
    --proxy-headers \\
    --forwarded-allow-ips='*' \\
    --log-level warning \\
    --access-log \\
    --use-colors \\
    --workers {{ d.workers }} \\
    --limit-concurrency {{ d.concurrency_limit }} \\
    --backlog {{ d.backlog }} \\
    {{ d.app_module }}

# Security
PrivateTmp=true
ProtectSystem=full
NoNewPrivileges=true
ProtectHome=read-only
ProtectKernelTunables=true
ProtectKernelModules=true
ProtectControlGroups=true

# Resource management
Nice={{ d.nice }}
CPUQuota={{ d.cpu_quota }}
MemoryMax={{ d.memory_max }}

# Logging
StandardOutput=journal
StandardError=journal

# Graceful shutdown
TimeoutStopSec=30
KillMode=mixed
KillSignal=SIGINT

[Install]
WantedBy=multi-user.target
"""

SITE_TEMPLATE = """\
server {
    listen 80;
    server_name {{ d.domain }};

    # Certbot (Let's Encrypt) HTTP-01 challenges
    location /.well-known/acme-challenge/ {
        root {{ acme_webroot }};
        allow all;
    }

    # Security headers
    add_header X-Frame-Options "SAMEORIGIN" always;
    add_header X-XSS-Protection "1; mode=block" always;
    add_header X-Content-Type-Options "nosniff" always;
    add_header Referrer-Policy "no-referrer-when-downgrade" always;
    add_header Content-Security-Policy "default-src 'self' http: https: data: blob: 'unsafe-inline'; frame-ancestors 'self';" always;

    # Dotfiles, except .well-known
    location ~ /\\.(?!well-known) {
        deny all;
    }

    location / {
        proxy_pass http://127.0.0.1:{{ d.port }};
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
        proxy_set_header X-Forwarded-Host $host;
        proxy_set_header X-Forwarded-Port $server_port;

        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection "upgrade";

        proxy_redirect off;
        proxy_buffering on;

        proxy_connect_timeout 75s;
        proxy_send_timeout 300s;
        proxy_read_timeout 300s;
        send_timeout 300s;

        gzip on;
        gzip_vary on;
        gzip_proxied any;
        gzip_comp_level {{ d.gzip_level }};
        gzip_min_length 256;
        gzip_types text/plain text/css text/xml application/json application/javascript application/rss+xml application/atom+xml image/svg+xml;
    }
}
"""

_env = Environment(
    loader=BaseLoader(),
    autoescape=False,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)


def render_unit(descriptor: DeploymentDescriptor) -> str:
    """Render the systemd unit that runs uvicorn for the application."""
    return _env.from_string(UNIT_TEMPLATE).render(d=descriptor)


def render_site(descriptor: DeploymentDescriptor, acme_webroot: Path = Path("/var/www/html")) -> str:
    """Render the nginx server block proxying the domain to the application."""
    return _env.from_string(SITE_TEMPLATE).render(d=descriptor, acme_webroot=acme_webroot)
