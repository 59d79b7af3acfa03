"""
Current user commands (profile, preferences)
"""
from typing import Optional

import typer

from researchhub_cli.core.session import load_token
from researchhub_cli.core.api import ApiError, api_get_profile, api_get_preferences, api_update_preferences

app = typer.Typer(help="Current user commands (profile, preferences)")


def _require_token() -> str:
    token = load_token()
    if not token:
        typer.echo("No active session. Please login first.")
        raise typer.Exit(code=1)
    return token


@app.command("profile")
def profile():
    """
    Show current user information.
    """
    token = _require_token()
    try:
        info = api_get_profile(token)
    except ApiError as e:
        typer.echo(f"Failed to get profile: {e.message}")
        raise typer.Exit(code=1)

    typer.echo("\nUser Information:")
    typer.echo(f"   ID:          {info.get('id', '-')}")
    typer.echo(f"   Email:       {info.get('email', '-')}")
    typer.echo(f"   Name:        {info.get('fullName', '-')}")
    typer.echo(f"   Institution: {info.get('institution') or '-'}")
    typer.echo(f"   Verified:    {'yes' if info.get('emailVerified') else 'no'}")
    typer.echo(f"   Last login:  {info.get('lastLogin') or '-'}")


@app.command("preferences")
def preferences(
    theme: Optional[str] = typer.Option(None, "--theme", help="dark or light"),
    notifications: Optional[bool] = typer.Option(None, "--notifications/--no-notifications", help="Email notifications"),
):
    """
    Show preferences, or change them when options are given.
    """
    token = _require_token()

    changes = {}
    if theme is not None:
        if theme not in ("dark", "light"):
            typer.echo("Theme must be dark or light.")
            raise typer.Exit(code=1)
        changes["theme"] = theme
    if notifications is not None:
        changes["emailNotifications"] = notifications

    try:
        prefs = api_update_preferences(token, changes) if changes else api_get_preferences(token)
    except ApiError as e:
        typer.echo(f"Failed to load preferences: {e.message}")
        raise typer.Exit(code=1)

    typer.echo("\nPreferences:")
    typer.echo(f"   Theme:         {prefs.get('theme')}")
    typer.echo(f"   Notifications: {'on' if prefs.get('emailNotifications') else 'off'}")
    typer.echo(f"   Categories:    {', '.join(prefs.get('preferredCategories') or []) or '-'}")
    typer.echo(f"   Bookmarks:     {len(prefs.get('bookmarkedResources') or [])}")
