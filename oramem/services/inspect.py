"""Read-only views over the PICO_* tables."""

from __future__ import annotations

import oracledb
from rich.console import Console
from rich.table import Table

from oramem.stores.connection import ConnectionManager

# (table, label) in display order
OVERVIEW_TABLES: tuple[tuple[str, str], ...] = (
    ("PICO_MEMORIES", "Memories"),
    ("PICO_SESSIONS", "Sessions"),
    ("PICO_TRANSCRIPTS", "Transcripts"),
    ("PICO_STATE", "State"),
    ("PICO_DAILY_NOTES", "Daily Notes"),
    ("PICO_PROMPTS", "Prompts"),
    ("PICO_CONFIG", "Config"),
    ("PICO_META", "Meta"),
)


def table_counts(db: ConnectionManager) -> dict[str, int | None]:
    """Row count per table; ``None`` for a table that could not be read."""
    counts: dict[str, int | None] = {}
    for table, _label in OVERVIEW_TABLES:
        try:
            row = db.query_one(f"SELECT COUNT(*) FROM {table}")
        except oracledb.Error:
            counts[table] = None
            continue
        counts[table] = int(row[0]) if row else 0
    return counts


def render_overview(counts: dict[str, int | None], console: Console | None = None) -> Table:
    table = Table(title="Oracle Database Overview")
    table.add_column("Table", style="cyan")
    table.add_column("Contents")
    table.add_column("Rows", justify="right")

    for name, label in OVERVIEW_TABLES:
        count = counts.get(name)
        cell = "[red]error[/red]" if count is None else str(count)
        table.add_row(name, label, cell)

    if console is not None:
        console.print(table)
    return table
