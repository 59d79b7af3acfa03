import logging

import typer
from researchhub_cli.auth.commands import app as auth_app
from researchhub_cli.users.commands import app as users_app

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")

app = typer.Typer(help="Research Hub command-line client")
app.add_typer(auth_app, name="auth")
app.add_typer(users_app, name="users")

if __name__ == "__main__":
    app()
