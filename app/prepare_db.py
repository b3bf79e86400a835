"""
Prepare the database: drop and recreate the prices table.

Usage:
    python -m app.prepare_db [--database-url URL] [--keep]
"""
from __future__ import annotations

import logging
from typing import Optional

import typer

from app.config import settings
from app.database import build_engine, create_tables, reset_tables

app = typer.Typer(help="Create or reset the prices table.")


@app.command()
def main(
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Database URL (defaults to DATABASE_URL from settings).",
    ),
    keep: bool = typer.Option(
        False,
        "--keep",
        help="Only create missing tables; keep existing rows.",
    ),
) -> None:
    """
    Drop and recreate the prices table, or just ensure it exists with --keep.
    """
    engine = build_engine(database_url or settings.DATABASE_URL)
    try:
        if keep:
            create_tables(engine)
            typer.echo("Table 'prices' ensured.")
        else:
            reset_tables(engine)
            typer.echo("Table 'prices' dropped and recreated.")
    finally:
        engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    app()
