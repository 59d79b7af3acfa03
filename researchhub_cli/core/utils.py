import re
import typer

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Same floor the API enforces on register and reset-password
MIN_PASSWORD_LENGTH = 8

def validate_password(password: str) -> bool:
    if len(password) < MIN_PASSWORD_LENGTH:
        typer.echo(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        return False
    return True

def validate_email(email: str) -> bool:
    if not EMAIL_REGEX.match(email.strip()):
        typer.echo("Invalid email address.")
        return False
    return True
