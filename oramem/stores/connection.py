"""Pooled Oracle connection handling and the scoped-transaction helper."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import oracledb

from oramem._log import get_logger
from oramem.agent.schema.database import DatabaseConfig
from oramem.stores.base import ConnectionFailedError, RollbackError

logger = get_logger("oracle")

_T = TypeVar("_T")

Binds = dict[str, Any] | None


def build_dsn(config: DatabaseConfig) -> str:
    """Return the connect descriptor for *config*.

    A full ``dsn`` under adb mode is passed through verbatim (wallet-less TLS).
    A wallet path under adb mode yields an Easy Connect ``tcps`` descriptor
    carrying the wallet location. Anything else is a plain local descriptor.
    """
    if config.uses_tls:
        return config.dsn
    if config.uses_wallet:
        return (
            f"tcps://{config.host}:{config.port}/{config.service}"
            f"?wallet_location={config.wallet_path}"
        )
    return oracledb.makedsn(config.host, config.port, service_name=config.service)


def _run(cursor: Any, sql: str, binds: Binds) -> None:
    if binds:
        cursor.execute(sql, binds)
    else:
        cursor.execute(sql)


_LOB_AS_TEXT = {
    oracledb.DB_TYPE_CLOB: oracledb.DB_TYPE_LONG,
    oracledb.DB_TYPE_NCLOB: oracledb.DB_TYPE_LONG_NVARCHAR,
    oracledb.DB_TYPE_BLOB: oracledb.DB_TYPE_LONG_RAW,
}


def _lob_as_text(cursor: Any, metadata: Any) -> Any:
    """Output type handler fetching LOB columns as str/bytes instead of LOB locators."""
    fetch_type = _LOB_AS_TEXT.get(metadata.type_code)
    if fetch_type is None:
        return None
    return cursor.var(fetch_type, arraysize=cursor.arraysize)


class Transaction:
    """Statement helpers bound to one connection inside :meth:`ConnectionManager.transaction`."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def execute(self, sql: str, binds: Binds = None) -> int:
        with self._conn.cursor() as cur:
            _run(cur, sql, binds)
            return cur.rowcount

    def query(self, sql: str, binds: Binds = None) -> list[tuple]:
        with self._conn.cursor() as cur:
            _run(cur, sql, binds)
            return list(cur.fetchall())

    def query_one(self, sql: str, binds: Binds = None) -> tuple | None:
        with self._conn.cursor() as cur:
            _run(cur, sql, binds)
            return cur.fetchone()


class ConnectionManager:
    """Owns the connection pool shared by every store of one process.

    Single statements run on a pooled connection and commit immediately;
    multi-statement units of work go through :meth:`transaction`.
    """

    def __init__(self, pool: Any) -> None:
        self._pool = pool
        self._closed = False

    @property
    def pool(self) -> Any:
        return self._pool

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Borrow a connection; blocks while the pool is exhausted."""
        with self._pool.acquire() as conn:
            conn.outputtypehandler = _lob_as_text
            yield conn

    def execute(self, sql: str, binds: Binds = None) -> int:
        """Run one DML/DDL statement, commit, and return the affected row count."""
        with self.connection() as conn:
            with conn.cursor() as cur:
                _run(cur, sql, binds)
                rowcount = cur.rowcount
            conn.commit()
        return rowcount

    def query(self, sql: str, binds: Binds = None) -> list[tuple]:
        with self.connection() as conn:
            with conn.cursor() as cur:
                _run(cur, sql, binds)
                return list(cur.fetchall())

    def query_one(self, sql: str, binds: Binds = None) -> tuple | None:
        with self.connection() as conn:
            with conn.cursor() as cur:
                _run(cur, sql, binds)
                return cur.fetchone()

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Scope a unit of work: commit on success, roll back on any error.

        The original error propagates unchanged unless the rollback fails too,
        in which case a :class:`RollbackError` carrying both is raised.
        """
        with self.connection() as conn:
            try:
                yield Transaction(conn)
            except Exception as exc:
                try:
                    conn.rollback()
                except Exception as rb_exc:
                    raise RollbackError(rb_exc, exc) from exc
                raise
            conn.commit()

    def run_in_transaction(self, fn: Callable[[Transaction], _T]) -> _T:
        with self.transaction() as tx:
            return fn(tx)

    def ping(self) -> None:
        with self.connection() as conn:
            conn.ping()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pool.close()
        logger.info("Oracle connection pool closed")

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def connect(config: DatabaseConfig) -> ConnectionManager:
    """Create the pool for *config* and verify it with a ping.

    Raises :class:`ConnectionFailedError` (pool already released) when the
    database cannot be reached.
    """
    dsn = build_dsn(config)
    params: dict[str, Any] = {
        "user": config.user,
        "password": config.resolve_password(),
        "dsn": dsn,
        "min": config.pool_max_idle,
        "max": config.pool_max_open,
        "increment": 1,
        "max_lifetime_session": config.conn_max_lifetime,
    }
    if config.uses_wallet:
        params["config_dir"] = config.wallet_path
        params["wallet_location"] = config.wallet_path
        wallet_password = config.resolve_wallet_password()
        if wallet_password:
            params["wallet_password"] = wallet_password

    try:
        pool = oracledb.create_pool(**params)
    except oracledb.Error as exc:
        raise ConnectionFailedError(f"failed to open Oracle connection: {exc}") from exc

    db = ConnectionManager(pool)
    try:
        db.ping()
    except oracledb.Error as exc:
        db.close()
        raise ConnectionFailedError(f"failed to ping Oracle: {exc}") from exc

    logger.info(
        "Connected to Oracle Database (mode=%s, pool max_open=%d max_idle=%d)",
        config.mode,
        config.pool_max_open,
        config.pool_max_idle,
    )
    return db
