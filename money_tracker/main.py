from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, Optional

import typer

from money_tracker.config import get_settings
from money_tracker.domain.models import RecordInput
from money_tracker.infrastructure.db_factory import PoolManager
from money_tracker.service import OperationResult, RecordService
from money_tracker.utils.logging import configure_logging

app = typer.Typer(help="Money Tracker CLI.")


def _service_factory() -> RecordService:
    return RecordService(PoolManager(get_settings()))


def _run(operation: Callable[[RecordService], Awaitable[OperationResult]]) -> None:
    """Run one service operation, print its result and close the pool."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    async def runner() -> OperationResult:
        service = _service_factory()
        try:
            return await operation(service)
        finally:
            await service.close()

    result = asyncio.run(runner())
    typer.echo(json.dumps(result, indent=2, default=str))
    if not result.get("ok"):
        raise typer.Exit(code=1)


def _record_input(
    name: str, amount: str, date: str, notes: str, attachment: str
) -> RecordInput:
    try:
        return RecordInput(
            name=name, amount=Decimal(amount), date=date, notes=notes, attachment=attachment
        )
    except (ArithmeticError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values (without the password).
    """
    settings = get_settings()
    target = (
        f"socket={settings.instance_unix_socket}"
        if settings.uses_unix_socket
        else f"{settings.db_host}:{settings.db_port}"
    )
    typer.echo(
        f"DB={settings.db_user}@{target}/{settings.db_name} | "
        f"pool={settings.db_pool_min_size}..{settings.db_pool_max_size} "
        f"connect_timeout={settings.db_connect_timeout}s "
        f"acquire_timeout={settings.db_acquire_timeout}s "
        f"queue_limit={settings.db_pool_queue_limit or 'unbounded'} | "
        f"secret={'yes' if settings.db_password_secret else 'no'}"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Resolve credentials, open the pool and create the records table.
    """
    _run(lambda service: service.ready())


@app.command()
def dashboard(
    as_of: Optional[datetime] = typer.Option(
        None, "--as-of", help="Any timestamp inside the month to summarise (default: now)."
    ),
) -> None:
    """
    Show this month's record count and the overall balance.
    """
    _run(lambda service: service.dashboard(as_of))


@app.command("list")
def list_records(
    recent: bool = typer.Option(False, "--recent", help="Only the 10 most recent records."),
    top_expenses: bool = typer.Option(
        False, "--top-expenses", help="Only the 10 largest expenses."
    ),
) -> None:
    """
    List records.
    """
    if recent and top_expenses:
        raise typer.BadParameter("--recent and --top-expenses are mutually exclusive")
    if recent:
        _run(lambda service: service.list_recent())
    elif top_expenses:
        _run(lambda service: service.top_expenses())
    else:
        _run(lambda service: service.list_records())


@app.command()
def get(record_id: int = typer.Argument(..., help="Record id.")) -> None:
    """
    Show a single record.
    """
    _run(lambda service: service.get_record(record_id))


@app.command()
def search(term: str = typer.Argument(..., help="Text to look for in name or notes.")) -> None:
    """
    Search records by name or notes (case-insensitive).
    """
    _run(lambda service: service.search_records(term))


@app.command()
def add(
    name: str = typer.Option(..., "--name", "-n"),
    amount: str = typer.Option(..., "--amount", "-a", help="Negative for expenses."),
    date: str = typer.Option(..., "--date", "-d", help="ISO date or timestamp."),
    notes: str = typer.Option("", "--notes"),
    attachment: str = typer.Option("", "--attachment", help="URL of an uploaded file."),
) -> None:
    """
    Insert a record.
    """
    record = _record_input(name, amount, date, notes, attachment)
    _run(lambda service: service.insert_record(record))


@app.command()
def edit(
    record_id: int = typer.Argument(..., help="Record id."),
    name: str = typer.Option(..., "--name", "-n"),
    amount: str = typer.Option(..., "--amount", "-a"),
    date: str = typer.Option(..., "--date", "-d"),
    notes: str = typer.Option("", "--notes"),
    attachment: str = typer.Option("", "--attachment"),
) -> None:
    """
    Replace every field of a record.
    """
    record = _record_input(name, amount, date, notes, attachment)
    _run(lambda service: service.update_record(record_id, record))


@app.command()
def delete(record_id: int = typer.Argument(..., help="Record id.")) -> None:
    """
    Delete a record.
    """
    _run(lambda service: service.delete_record(record_id))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
