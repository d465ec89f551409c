#!/usr/bin/env python3
"""
Contact relay CLI
"""
import sys
from pathlib import Path
from typing import Optional
import platform

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from contactrelay.version import __version__

console = Console()


def show_version_info():
    """Display detailed version information"""
    console.print(f"\n[bold cyan]contactrelay Version Information[/bold cyan]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)

    # Development checkout
    repo_root = Path(__file__).resolve().parent.parent
    if (repo_root / "pyproject.toml").exists():
        table.add_row("Mode", "[yellow]Development[/yellow]")
        table.add_row("Repository", str(repo_root))
    else:
        table.add_row("Mode", "[green]Installed[/green]")

    table.add_row("Python", platform.python_version())

    console.print(table)
    console.print()


def version_callback(ctx, param, value):
    """Callback for --version option"""
    if not value or ctx.resilient_parsing:
        return
    show_version_info()
    ctx.exit()


def load_env_file(env_file: Optional[str]) -> None:
    """Load a .env file into the process environment without overriding it"""
    path = Path(env_file) if env_file else Path.cwd() / ".env"
    if path.exists():
        load_dotenv(path, override=False)
        console.print(f"[dim]Loaded environment from {path}[/dim]")
    elif env_file:
        console.print(f"[red]Environment file not found: {path}[/red]")
        sys.exit(1)


@click.group()
@click.option(
    '--version', '-v',
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help='Show detailed version information'
)
def main():
    """Contact Relay - contact form to email relay for landing pages"""
    pass


@main.command()
def version():
    """Show version information"""
    show_version_info()


@main.command()
@click.option("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port (default: $PORT or 8080)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Path to a .env file")
def serve(host: Optional[str], port: Optional[int], reload: bool, env_file: Optional[str]):
    """Run the HTTP server"""
    import os
    import uvicorn

    load_env_file(env_file)

    host = host or os.environ.get("HOST", "0.0.0.0")
    port = port or int(os.environ.get("PORT", "8080"))

    console.print(f"[bold green]Starting contact relay on http://{host}:{port}[/bold green]")
    uvicorn.run(
        "contactrelay.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("check-config")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Path to a .env file")
def check_config(env_file: Optional[str]):
    """Show the effective configuration without secrets"""
    from contactrelay.config import ConfigLoader
    from contactrelay.errors import ConfigurationError

    load_env_file(env_file)
    loader = ConfigLoader()

    try:
        config = loader.load()
    except ConfigurationError:
        console.print("[red]✗ Configuration is invalid (see log for details)[/red]")
        sys.exit(1)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Service", config.service.service_name)
    table.add_row("Site", config.service.site_name)
    table.add_row("Allowed origin", config.service.allowed_origin)
    table.add_row("Static dir", config.service.static_dir or "-")
    table.add_row("Analytics", "enabled" if config.service.admin_key else "disabled")
    table.add_row(
        "Rate limit",
        f"{config.rate_limit.max_requests} per {config.rate_limit.window_seconds:g}s, "
        f"block {config.rate_limit.block_seconds:g}s",
    )
    table.add_row("Slack", "enabled" if config.notifications.slack_webhook_url else "disabled")
    table.add_row("Auto-response", "enabled" if config.notifications.auto_response_enabled else "disabled")

    smtp_ok = True
    try:
        smtp = loader.load_smtp_config()
        table.add_row("SMTP server", f"{smtp.host}:{smtp.port} ({'TLS' if smtp.use_tls else 'STARTTLS'})")
        table.add_row("SMTP user", smtp.user)
        table.add_row("Deliver to", smtp.to_email)
    except ConfigurationError as e:
        smtp_ok = False
        table.add_row("SMTP", f"[red]missing or invalid: {', '.join(e.missing)}[/red]")

    console.print()
    console.print(table)
    console.print()

    if not smtp_ok:
        console.print("[red]✗ SMTP is not configured[/red]")
        sys.exit(1)

    console.print("[green]✓ Configuration OK[/green]")


if __name__ == "__main__":
    main()
