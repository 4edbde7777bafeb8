"""Tests for the table overview."""

from __future__ import annotations

import io

from rich.console import Console

from oramem.services.inspect import OVERVIEW_TABLES, render_overview, table_counts
from tests.conftest import ora_error


class TestTableCounts:
    def test_counts_every_table(self, db, fake_db):
        fake_db.on(r"COUNT\(\*\) FROM PICO_MEMORIES$", rows=[(12,)])
        fake_db.on(r"COUNT\(\*\) FROM PICO_CONFIG$", error=ora_error(942))
        fake_db.on(r"COUNT\(\*\)", rows=[(0,)])

        counts = table_counts(db)
        assert list(counts) == [table for table, _ in OVERVIEW_TABLES]
        assert counts["PICO_MEMORIES"] == 12
        assert counts["PICO_CONFIG"] is None
        assert counts["PICO_META"] == 0


class TestRenderOverview:
    def test_table_rows(self):
        counts = {table: 1 for table, _ in OVERVIEW_TABLES}
        table = render_overview(counts)
        assert table.title == "Oracle Database Overview"
        assert table.row_count == len(OVERVIEW_TABLES)
        assert [c.header for c in table.columns] == ["Table", "Contents", "Rows"]

    def test_prints_to_console(self):
        buf = io.StringIO()
        console = Console(file=buf, width=100, no_color=True)
        counts = {table: 3 for table, _ in OVERVIEW_TABLES}
        counts["PICO_STATE"] = None
        render_overview(counts, console)
        output = buf.getvalue()
        assert "PICO_MEMORIES" in output
        assert "Daily Notes" in output
        assert "error" in output
        assert "[red]" not in output
