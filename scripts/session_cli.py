#!/usr/bin/env python3
"""
Command-line interface for managing the stored cookie session.

Uses typer for clean CLI with subcommands.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

import requests
import typer

# Add project root to path so we can import liaison
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from liaison import AuthError, ChallengeRequiredError, Client, LiaisonError
from liaison.contexts.auth import parse_cookies, SESSION_COOKIE
from liaison.utils import setup_logger

app = typer.Typer(
    add_completion=False,
    help="Session management for the authenticated API",
)


def _build_client(identity: Optional[str], verbose: bool) -> Client:
    setup_logger(level="DEBUG" if verbose else "INFO")
    try:
        return Client(identity=identity)
    except LiaisonError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


@app.command("login")
def login_command(
    identity: Optional[str] = typer.Option(None, "--identity", "-i", help="Login identity (default: LINKEDIN_EMAIL)"),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the stored session and log in again"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on the console"),
):
    """
    Restore the stored session, or log in and store a new one.

    Examples:

        # Reuse the stored session if still valid
        $ session_cli.py login

        # Always run the full login handshake
        $ session_cli.py login --force
    """
    client = _build_client(identity, verbose)
    try:
        if force:
            client.session.authenticate()
        else:
            client.ensure_ready()
    except ChallengeRequiredError as e:
        typer.secho(f"Login requires an interactive challenge ({e.result})", fg=typer.colors.YELLOW, err=True)
        if e.challenge_url:
            typer.echo(f"Resolve it in a browser: {e.challenge_url}", err=True)
        raise typer.Exit(code=1)
    except (AuthError, requests.RequestException) as e:
        typer.secho(f"Login failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"Authenticated as {client.session.identity}", fg=typer.colors.GREEN)


@app.command("status")
def status_command(
    identity: Optional[str] = typer.Option(None, "--identity", "-i", help="Login identity (default: LINKEDIN_EMAIL)"),
):
    """Show the stored session without contacting the service."""
    client = _build_client(identity, verbose=False)
    blob = client.session.store.get(client.session.identity)
    if not blob:
        typer.echo(f"No stored session for {client.session.identity}")
        raise typer.Exit(code=1)

    cookies = parse_cookies(blob)
    session_cookie = cookies.get(SESSION_COOKIE)
    typer.echo(f"Stored session for {client.session.identity}: {len(cookies)} cookies")
    if session_cookie is None:
        typer.secho(f"  {SESSION_COOKIE} missing (next login will be a full handshake)", fg=typer.colors.YELLOW)
    elif session_cookie.is_expired():
        typer.secho(f"  {SESSION_COOKIE} expired at {session_cookie.expires_at.isoformat()}", fg=typer.colors.YELLOW)
    else:
        expires = session_cookie.expires_at.isoformat() if session_cookie.expires_at else "end of session"
        typer.secho(f"  {SESSION_COOKIE} valid until {expires}", fg=typer.colors.GREEN)


@app.command("forget")
def forget_command(
    identity: Optional[str] = typer.Option(None, "--identity", "-i", help="Login identity (default: LINKEDIN_EMAIL)"),
):
    """Delete the stored session."""
    client = _build_client(identity, verbose=False)
    if client.session.forget():
        typer.echo(f"Removed stored session for {client.session.identity}")
    else:
        typer.echo(f"No stored session for {client.session.identity}")


@app.command("get")
def get_command(
    endpoint: str = typer.Argument(..., help="API endpoint relative to the API root (e.g. me)"),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help="Query parameter as key=value"),
    identity: Optional[str] = typer.Option(None, "--identity", "-i", help="Login identity (default: LINKEDIN_EMAIL)"),
    no_throttle: bool = typer.Option(False, "--no-throttle", help="Skip the request delay and rate limit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on the console"),
):
    """GET an API endpoint through the throttled pipeline and print the JSON body."""
    setup_logger(level="DEBUG" if verbose else "INFO")

    params = {}
    for item in param or []:
        key, sep, value = item.partition("=")
        if not sep:
            typer.secho(f"Error: --param expects key=value, got '{item}'", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=2)
        params[key] = value

    try:
        client = Client(identity=identity, throttle=False if no_throttle else None)
        response = client.get(endpoint, params=params or None)
    except (LiaisonError, requests.RequestException) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not response.ok:
        typer.secho(f"HTTP {response.status_code} from {response.url}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        typer.echo(json.dumps(response.json(), indent=2))
    except ValueError:
        typer.echo(response.text)


if __name__ == "__main__":
    app()
