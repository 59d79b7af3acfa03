import getpass
import typer

from researchhub_cli.core.session import save_token, load_token, load_session_token, clear_token, is_logged_in
from researchhub_cli.core.api import (
    ApiError,
    api_forgot_password,
    api_login,
    api_logout,
    api_refresh,
    api_register,
    api_reset_password,
    api_verify_email,
)
from researchhub_cli.core.utils import validate_email, validate_password


app = typer.Typer(help="Authentication commands (register, login, logout, password reset)")


def _prompt_new_password() -> str:
    password = getpass.getpass("New password: ")
    password_confirm = getpass.getpass("Confirm password: ")

    if password != password_confirm:
        typer.echo("Passwords do not match.")
        raise typer.Exit(code=1)

    if not validate_password(password):
        raise typer.Exit(code=1)
    return password


@app.command("register")
def register(
    email: str = typer.Option(None, "--email", "-e", help="Account email"),
    full_name: str = typer.Option(None, "--name", "-n", help="Full name"),
    institution: str = typer.Option(None, "--institution", help="Institution (optional)"),
):
    """
    Create a new account.
    """
    if email is None:
        email = typer.prompt("Email")
    if not validate_email(email):
        raise typer.Exit(code=1)

    if full_name is None:
        full_name = typer.prompt("Full name")
    if not 2 <= len(full_name.strip()) <= 100:
        typer.echo("Full name must be 2-100 characters.")
        raise typer.Exit(code=1)

    password = _prompt_new_password()

    try:
        result = api_register(email, full_name.strip(), password, institution)
    except ApiError as e:
        typer.echo(f"Registration failed: {e.message}")
        raise typer.Exit(code=1)

    typer.echo(f"Account created (user id {result['userId']}).")
    if result.get("emailVerificationRequired"):
        typer.echo("Check your inbox and run 'auth verify-email <token>' before logging in.")


@app.command("login")
def login(
    email: str = typer.Option(None, "--email", "-e", help="Account email"),
    remember: bool = typer.Option(False, "--remember", help="Keep the session for 30 days"),
):
    """
    Login to the platform. Only allowed if no session is active.
    """
    if is_logged_in():
        typer.echo("Session already active. Logout first to remove current session token.")
        raise typer.Exit(code=1)

    if email is None:
        email = typer.prompt("Email")
    if not validate_email(email):
        raise typer.Exit(code=1)

    password = getpass.getpass("Password: ")

    try:
        result = api_login(email, password, remember=remember)
    except ApiError as e:
        if e.reason == "verificationRequired":
            typer.echo("Login failed: verify your email address first.")
        else:
            typer.echo(f"Login failed: {e.message}")
        raise typer.Exit(code=1)

    save_token(result["token"], result.get("sessionToken"))
    typer.echo(f"Login successful as '{result['user']['email']}'.")


@app.command("logout")
def logout():
    """
    End the session on the server and delete the local token.
    """
    token = load_token()
    if token:
        try:
            api_logout(token)
            typer.echo("Logged out from server.")
        except ApiError as e:
            typer.echo(f"Warning: server logout failed ({e.message}). The token may have already expired.")

    clear_token()
    typer.echo("Session ended.")


@app.command("refresh")
def refresh():
    """
    Swap the stored token for a fresh one.
    """
    token = load_token()
    if not token:
        typer.echo("No active session. Please login first.")
        raise typer.Exit(code=1)

    try:
        new_token = api_refresh(token)
    except ApiError as e:
        typer.echo(f"Refresh failed: {e.message}")
        raise typer.Exit(code=1)

    save_token(new_token, load_session_token())
    typer.echo("Token refreshed.")


@app.command("verify-email")
def verify_email(token: str = typer.Argument(..., help="Token from the verification email")):
    try:
        message = api_verify_email(token)
    except ApiError as e:
        typer.echo(f"Verification failed: {e.message}")
        raise typer.Exit(code=1)
    typer.echo(message)


@app.command("forgot-password")
def forgot_password(email: str = typer.Option(None, "--email", "-e", help="Account email")):
    """
    Ask for a password reset email.
    """
    if email is None:
        email = typer.prompt("Email")
    if not validate_email(email):
        raise typer.Exit(code=1)

    try:
        message = api_forgot_password(email)
    except ApiError as e:
        typer.echo(f"Request failed: {e.message}")
        raise typer.Exit(code=1)
    typer.echo(message)


@app.command("reset-password")
def reset_password(token: str = typer.Argument(..., help="Token from the reset email")):
    """
    Choose a new password using a reset token.
    """
    password = _prompt_new_password()
    try:
        message = api_reset_password(token, password)
    except ApiError as e:
        typer.echo(f"Reset failed: {e.message}")
        raise typer.Exit(code=1)
    typer.echo(message)
