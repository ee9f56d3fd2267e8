"""Completion summary and next-step guidance."""
from typing import List, Optional

from fastdeploy.core.prompter import Prompter
from fastdeploy.models.descriptor import DeploymentDescriptor, InstallMode

RULE = "-" * 74


def artifact_lines(d: DeploymentDescriptor, server_ip: Optional[str]) -> List[str]:
    lines = [
        f"  System Name:    {d.code_name}",
        f"  Domain:         http://{d.domain} (and https://{d.domain} after SSL setup)",
        f"  App Directory:  {d.app_dir}",
        f"  Service Status: sudo systemctl status {d.unit_name}",
        f"  Service Logs:   sudo journalctl -u {d.code_name} -f -e",
    ]
    if server_ip:
        lines.append(f"  Server IP:      {server_ip} (use this for your DNS A record)")
    return lines


def next_steps(d: DeploymentDescriptor, mode: InstallMode, server_ip: Optional[str]) -> List[str]:
    if mode is InstallMode.GUIDED:
        target = server_ip or "this server's public IP address"
        return [
            "Next Steps for Domain and SSL:",
            f"1. Create a DNS 'A' record for '{d.domain}' pointing to {target}.",
            "   DNS propagation can take minutes to hours.",
            "2. Once DNS has propagated, obtain a certificate with Certbot (installed during this setup):",
            f"   sudo certbot --nginx -d {d.domain}",
            f"   Add '-d www.{d.domain}' to also cover the www name.",
            "   Alternatively, put the domain behind Cloudflare with 'Flexible' SSL; traffic between",
            "   Cloudflare and this server then stays unencrypted HTTP.",
            f"3. Visit http://{d.domain} (or https://{d.domain}) to test the application.",
            "4. Monitor the application with the status and log commands above.",
        ]
    return [
        "Next Steps:",
        f"- Ensure '{d.domain}' points to this server's IP address.",
        "- Configure SSL for Nginx (your own certificates, or Let's Encrypt):",
        "    sudo apt update && sudo apt install certbot python3-certbot-nginx",
        f"    sudo certbot --nginx -d {d.domain}",
        f"- Test the application at http://{d.domain}.",
        "- Monitor logs and server resources with the commands above.",
    ]


def print_summary(
    prompter: Prompter,
    d: DeploymentDescriptor,
    mode: InstallMode,
    server_ip: Optional[str] = None,
) -> None:
    """Show what was deployed and what to do next."""
    prompter.say(RULE, style="green")
    prompter.say(
        f"Installation complete! Your FastAPI app '{d.app_name}' should be accessible soon.",
        style="green",
    )
    for line in artifact_lines(d, server_ip):
        prompter.say(line)
    prompter.say(RULE, style="green")
    steps = next_steps(d, mode, server_ip)
    prompter.say(steps[0], style="yellow")
    for line in steps[1:]:
        prompter.say(line)
