"""``stockledger`` command: serve the API and inspect or operate the ledger from a shell."""

from __future__ import annotations

from typing import Optional

import typer
import uvicorn

from . import accounts, schemas
from .config import Settings, get_settings
from .database import Database
from .exceptions import StockLedgerError
from .ledger import StockLedger
from .logging_config import configure_logging
from .operations import validate_operation
from .seed import seed_demo_data

app = typer.Typer(help="Manage and run the stock ledger service.")


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _resolve() -> tuple[Settings, Database]:
    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    database = Database(settings.database_url, echo=settings.echo_sql)
    database.create_all()
    return settings, database


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Serve the stock ledger API with uvicorn."""

    settings = get_settings()

    uvicorn.run(
        "stockledger.app:create_configured_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload if reload is None else reload,
        log_level=(log_level or settings.log_level).lower(),
        factory=True,
    )


@app.command()
def init_db() -> None:
    """Create the database tables."""

    settings, _ = _resolve()
    typer.echo(f"Database initialised at {settings.database_url}")


@app.command()
def seed() -> None:
    """Insert the demo warehouse, default operation types and demo products."""

    _, database = _resolve()
    with database.session_scope() as session:
        seed_demo_data(session)
    typer.secho("Demo data ready", fg=typer.colors.GREEN)


@app.command()
def create_user(
    username: str = typer.Argument(..., help="Unique login name"),
    password: Optional[str] = typer.Option(
        None,
        "--password",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="Password for the new user",
    ),
    email: Optional[str] = typer.Option(None, help="Contact email"),
    role: str = typer.Option("staff", help="Role name, e.g. staff or manager"),
) -> None:
    """Create a staff account in the database."""

    _, database = _resolve()
    with database.session_scope() as session:
        if password is None:
            typer.secho("Password is required", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        try:
            user = accounts.create_user(
                session,
                schemas.UserCreate(username=username, password=password, email=email, role=role),
            )
        except StockLedgerError as exc:
            typer.secho(exc.message, fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc
        typer.secho(f"Created user {user.username} (id={user.id})", fg=typer.colors.GREEN)


@app.command("list-users")
def list_users() -> None:
    """Print the staff accounts stored in the database."""

    _, database = _resolve()
    with database.session_scope() as session:
        users = accounts.list_users(session)
        if not users:
            typer.echo("No users found.")
            return
        _print_header("Staff accounts")
        for user in users:
            typer.echo(f"- #{user.id} {user.username} | role={user.role} | active={user.is_active}")


@app.command("stock-levels")
def stock_levels() -> None:
    """Print non-zero stock per product and location."""

    _, database = _resolve()
    with database.session_scope() as session:
        levels = StockLedger(session).stock_levels()
        if not levels:
            typer.echo("No stock on hand.")
            return
        _print_header("Stock levels")
        for level in levels:
            typer.echo(f"- {level.product.sku} @ {level.location.name}: {level.quantity:g}")


@app.command()
def ledger(
    product_id: Optional[int] = typer.Option(None, help="Only moves of this product"),
    limit: int = typer.Option(50, help="Number of entries to show"),
) -> None:
    """Print committed moves, newest first."""

    _, database = _resolve()
    with database.session_scope() as session:
        moves = StockLedger(session).history(product_id=product_id)[:limit]
        if not moves:
            typer.echo("Ledger is empty.")
            return
        _print_header("Stock ledger")
        for move in moves:
            typer.echo(
                f"- {move.done_at:%Y-%m-%d %H:%M} {move.operation.reference} {move.product.sku} "
                f"{move.quantity:g} {move.location_src.name} -> {move.location_dest.name}"
            )


@app.command()
def validate(operation_id: int = typer.Argument(..., help="Operation to validate")) -> None:
    """Validate an operation, committing its moves."""

    settings, database = _resolve()
    with database.session() as session:
        try:
            operation = validate_operation(
                session, operation_id, negative_stock_policy=settings.negative_stock_policy
            )
        except StockLedgerError as exc:
            typer.secho(f"{exc.code}: {exc.message}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc
        typer.secho(f"{operation.reference} is now {operation.status}", fg=typer.colors.GREEN)


@app.command()
def show_config() -> None:
    """Print the effective configuration."""

    settings = get_settings()
    for key, value in settings.model_dump().items():
        typer.echo(f"{key}: {value}")


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
