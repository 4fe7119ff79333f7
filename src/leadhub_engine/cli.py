"""Typer CLI for LeadHub-Engine."""

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="leadhub", help="LeadHub-Engine: multi-tenant CRM inbox backend")
console = Console()


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind host (defaults to LEADHUB_HOST)"),
    port: int = typer.Option(None, help="Bind port (defaults to LEADHUB_PORT)"),
):
    """Start the LeadHub-Engine API server."""
    import uvicorn
    from leadhub_engine.app import create_app
    from leadhub_engine.common.config import get_settings
    from leadhub_engine.common.exceptions import ConfigurationError
    from leadhub_engine.common.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level)
    host = host or settings.host
    port = port or settings.port

    try:
        application = create_app()
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        raise typer.Exit(1)

    console.print(f"[bold green]Starting LeadHub-Engine on {host}:{port}[/bold green]")
    uvicorn.run(application, host=host, port=port)


@app.command()
def token(
    user_id: str = typer.Argument(..., help="External user id to issue a session for"),
):
    """Issue a signed session token (offline, no DB required)."""
    from leadhub_engine.common.security import issue_session_token

    console.print(f"[bold]{issue_session_token(user_id)}[/bold]")


@app.command()
def encrypt(
    plaintext: str = typer.Argument(..., help="Secret to seal with the vault key"),
):
    """Encrypt a secret with LEADHUB_ENCRYPTION_KEY."""
    from leadhub_engine.common.exceptions import ConfigurationError
    from leadhub_engine.deps import get_vault

    try:
        vault = get_vault()
    except ConfigurationError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)
    console.print(vault.encrypt(plaintext))


@app.command("webhook-credentials")
def webhook_credentials():
    """Print a fresh webhook id and signing secret pair."""
    from leadhub_engine.vault.crypto import generate_webhook_id, generate_webhook_secret

    table = Table(show_header=False)
    table.add_row("webhook id", generate_webhook_id())
    table.add_row("secret", generate_webhook_secret())
    console.print(table)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check LeadHub-Engine server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
