"""Maintenance commands for the account database."""

import typer

from account_core.db.migrations import run_migrations
from account_core.db.session import SessionLocal
from account_core.services.auth import AuthService
from account_core.services.results import Failure

app = typer.Typer(help="Account maintenance commands.")


@app.command("sweep-verification-tokens")
def sweep_verification_tokens():
    """Mark pending email verification tokens past their expiry as EXPIRED."""
    db = SessionLocal()
    try:
        result = AuthService(db).expire_stale_verification_tokens()
    finally:
        db.close()

    if isinstance(result, Failure):
        typer.echo(f"Error: {result.error}")
        raise typer.Exit(code=1)
    typer.echo(f"Expired {result.value} verification token(s).")


@app.command()
def migrate():
    """Apply pending database migrations."""
    run_migrations()
    typer.echo("Database is up to date.")


if __name__ == "__main__":
    app()
