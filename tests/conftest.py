"""Shared test fixtures and helpers.

``FakeDatabase`` stands in for a python-oracledb pool: it records every
statement with its binds and answers from regex-matched rules, so tests can
assert on the SQL a store issues without a live database.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import oracledb
import pytest

from oramem.embeddings import EmbeddingService
from oramem.stores.connection import ConnectionManager


def normalize(sql: str) -> str:
    return " ".join(sql.split())


class _OraErrorInfo:
    """Mimics the ``_Error`` object python-oracledb puts in ``exc.args[0]``."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.full_code = f"ORA-{code:05d}"
        self.message = f"{self.full_code}: {message}"

    def __str__(self) -> str:
        return self.message


def ora_error(code: int, message: str = "simulated failure") -> oracledb.DatabaseError:
    return oracledb.DatabaseError(_OraErrorInfo(code, message))


@dataclass
class _Rule:
    pattern: re.Pattern[str]
    rows: list[tuple]
    rowcount: int | None
    error: BaseException | None
    times: int | None


class FakeCursor:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db
        self._rows: list[tuple] = []
        self.rowcount = 0

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *args: object) -> None:
        pass

    def execute(self, sql: str, binds: dict[str, Any] | None = None) -> None:
        self._rows, self.rowcount = self._db._respond(sql, binds)

    def fetchall(self) -> list[tuple]:
        return list(self._rows)

    def fetchone(self) -> tuple | None:
        return self._rows[0] if self._rows else None


class FakeConnection:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db
        self.outputtypehandler: Callable[..., Any] | None = None

    def __enter__(self) -> FakeConnection:
        return self

    def __exit__(self, *args: object) -> None:
        self._db.released += 1

    def cursor(self) -> FakeCursor:
        return FakeCursor(self._db)

    def commit(self) -> None:
        self._db.commits += 1

    def rollback(self) -> None:
        if self._db.rollback_error is not None:
            raise self._db.rollback_error
        self._db.rollbacks += 1

    def ping(self) -> None:
        if self._db.ping_error is not None:
            raise self._db.ping_error


class FakeDatabase:
    """Scripted stand-in for an ``oracledb.ConnectionPool``."""

    def __init__(self) -> None:
        self.statements: list[tuple[str, dict[str, Any]]] = []
        self._rules: list[_Rule] = []
        self.commits = 0
        self.rollbacks = 0
        self.released = 0
        self.closed = 0
        self.connections: list[FakeConnection] = []
        self.ping_error: BaseException | None = None
        self.rollback_error: BaseException | None = None

    def on(
        self,
        pattern: str,
        *,
        rows: list[tuple] | None = None,
        rowcount: int | None = None,
        error: BaseException | None = None,
        times: int | None = None,
    ) -> None:
        """Answer statements matching *pattern* (searched in whitespace-normalized SQL).

        Earlier rules win; a rule with *times* stops matching once used up.
        """
        self._rules.append(_Rule(re.compile(pattern), rows or [], rowcount, error, times))

    def _respond(self, sql: str, binds: dict[str, Any] | None) -> tuple[list[tuple], int]:
        text = normalize(sql)
        self.statements.append((text, dict(binds or {})))
        for rule in self._rules:
            if rule.times is not None and rule.times <= 0:
                continue
            if not rule.pattern.search(text):
                continue
            if rule.times is not None:
                rule.times -= 1
            if rule.error is not None:
                raise rule.error
            rowcount = rule.rowcount if rule.rowcount is not None else len(rule.rows) or 1
            return list(rule.rows), rowcount
        return [], 1

    def acquire(self) -> FakeConnection:
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    def close(self) -> None:
        self.closed += 1

    @property
    def sql(self) -> list[str]:
        return [text for text, _ in self.statements]

    def matching(self, pattern: str) -> list[tuple[str, dict[str, Any]]]:
        regex = re.compile(pattern)
        return [(text, binds) for text, binds in self.statements if regex.search(text)]


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def db(fake_db) -> ConnectionManager:
    return ConnectionManager(fake_db)


def embedding_transport(
    vectors: list[list[float]] | Callable[[httpx.Request], httpx.Response],
) -> httpx.MockTransport:
    """Mock ``/embeddings`` endpoint; returns *vectors* in turn (the last one repeats)."""
    if callable(vectors):
        return httpx.MockTransport(vectors)

    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        vec = vectors[min(calls["n"], len(vectors) - 1)]
        calls["n"] += 1
        return httpx.Response(
            200,
            json={
                "data": [{"embedding": vec, "index": 0}],
                "model": "text-embedding-3-small",
                "usage": {"prompt_tokens": 1, "total_tokens": 1},
            },
        )

    return httpx.MockTransport(handler)


def make_api_embedding(
    vectors: list[list[float]] | Callable[[httpx.Request], httpx.Response],
    *,
    db: ConnectionManager | None = None,
) -> EmbeddingService:
    client = httpx.Client(transport=embedding_transport(vectors))
    return EmbeddingService.api(
        "https://embed.test/v1", "sk-test", "text-embedding-3-small", db=db, client=client
    )
