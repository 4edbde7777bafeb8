"""Idempotent schema provisioning for the PICO_* tables."""

from __future__ import annotations

from enum import StrEnum

import oracledb

from oramem._log import get_logger
from oramem.stores.base import SchemaError
from oramem.stores.connection import ConnectionManager

logger = get_logger("oracle")

SCHEMA_VERSION = "1.0.0"

TABLE_DDL: dict[str, str] = {
    "PICO_META": """CREATE TABLE PICO_META (
        meta_key   VARCHAR2(255) PRIMARY KEY,
        meta_value VARCHAR2(4000),
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    "PICO_MEMORIES": """CREATE TABLE PICO_MEMORIES (
        memory_id    VARCHAR2(64) PRIMARY KEY,
        agent_id     VARCHAR2(64) NOT NULL,
        content      CLOB,
        embedding    VECTOR,
        importance   NUMBER(3,2) DEFAULT 0.5,
        category     VARCHAR2(255),
        access_count NUMBER DEFAULT 0,
        created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        accessed_at  TIMESTAMP,
        updated_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    "PICO_DAILY_NOTES": """CREATE TABLE PICO_DAILY_NOTES (
        note_id    VARCHAR2(64) PRIMARY KEY,
        agent_id   VARCHAR2(64) NOT NULL,
        note_date  DATE NOT NULL,
        content    CLOB,
        embedding  VECTOR,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    "PICO_SESSIONS": """CREATE TABLE PICO_SESSIONS (
        session_key VARCHAR2(255) PRIMARY KEY,
        agent_id    VARCHAR2(64) NOT NULL,
        messages    CLOB,
        summary     CLOB,
        created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    "PICO_STATE": """CREATE TABLE PICO_STATE (
        state_key   VARCHAR2(255) NOT NULL,
        agent_id    VARCHAR2(64) NOT NULL,
        state_value VARCHAR2(4000),
        updated_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (state_key, agent_id)
    )""",
    "PICO_CONFIG": """CREATE TABLE PICO_CONFIG (
        config_key   VARCHAR2(255) PRIMARY KEY,
        agent_id     VARCHAR2(64) NOT NULL,
        config_value CLOB,
        updated_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    "PICO_PROMPTS": """CREATE TABLE PICO_PROMPTS (
        prompt_name VARCHAR2(255) NOT NULL,
        agent_id    VARCHAR2(64) NOT NULL,
        content     CLOB,
        updated_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (prompt_name, agent_id)
    )""",
    "PICO_TRANSCRIPTS": """CREATE TABLE PICO_TRANSCRIPTS (
        id           NUMBER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        session_key  VARCHAR2(255),
        agent_id     VARCHAR2(64),
        sequence_num NUMBER,
        role         VARCHAR2(32),
        content      CLOB,
        created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
}

# No foreign keys between tables, so this order only fixes log output.
TABLE_ORDER: tuple[str, ...] = (
    "PICO_META",
    "PICO_MEMORIES",
    "PICO_DAILY_NOTES",
    "PICO_SESSIONS",
    "PICO_STATE",
    "PICO_CONFIG",
    "PICO_PROMPTS",
    "PICO_TRANSCRIPTS",
)

INDEX_DDL: tuple[str, ...] = (
    "CREATE INDEX IDX_PICO_MEMORIES_AGENT ON PICO_MEMORIES(agent_id)",
    "CREATE INDEX IDX_PICO_DAILY_AGENT_DATE ON PICO_DAILY_NOTES(agent_id, note_date)",
    "CREATE INDEX IDX_PICO_SESSIONS_AGENT ON PICO_SESSIONS(agent_id)",
    "CREATE INDEX IDX_PICO_TRANSCRIPTS_SESSION ON PICO_TRANSCRIPTS(session_key)",
    "CREATE INDEX IDX_PICO_STATE_AGENT ON PICO_STATE(agent_id)",
)

VECTOR_INDEX_DDL: tuple[str, ...] = (
    """CREATE VECTOR INDEX IDX_PICO_MEMORIES_VEC ON PICO_MEMORIES(embedding)
     ORGANIZATION NEIGHBOR PARTITIONS
     DISTANCE COSINE
     WITH TARGET ACCURACY 95""",
    """CREATE VECTOR INDEX IDX_PICO_DAILY_NOTES_VEC ON PICO_DAILY_NOTES(embedding)
     ORGANIZATION NEIGHBOR PARTITIONS
     DISTANCE COSINE
     WITH TARGET ACCURACY 95""",
)

_SET_VERSION_SQL = """
    MERGE INTO PICO_META m
    USING (SELECT 'schema_version' AS meta_key FROM DUAL) s
    ON (m.meta_key = s.meta_key)
    WHEN MATCHED THEN
        UPDATE SET meta_value = :version, updated_at = CURRENT_TIMESTAMP
    WHEN NOT MATCHED THEN
        INSERT (meta_key, meta_value) VALUES ('schema_version', :version)
"""

_GET_VERSION_SQL = "SELECT meta_value FROM PICO_META WHERE meta_key = 'schema_version'"


class DdlErrorKind(StrEnum):
    ALREADY_EXISTS = "already_exists"  # ORA-00955: name is already used by an existing object
    ALREADY_INDEXED = "already_indexed"  # ORA-01408: such column list already indexed
    DUPLICATE_KEY = "duplicate_key"  # ORA-00001: unique constraint violated
    OTHER = "other"


_KIND_BY_CODE = {
    955: DdlErrorKind.ALREADY_EXISTS,
    1408: DdlErrorKind.ALREADY_INDEXED,
    1: DdlErrorKind.DUPLICATE_KEY,
}

_TOLERATED_DDL = (DdlErrorKind.ALREADY_EXISTS, DdlErrorKind.ALREADY_INDEXED)


def error_code(exc: BaseException) -> int | None:
    """Return the numeric ORA code carried by a python-oracledb exception, if any."""
    if not exc.args:
        return None
    code = getattr(exc.args[0], "code", None)
    return code if isinstance(code, int) else None


def classify_ddl_error(exc: BaseException) -> DdlErrorKind:
    code = error_code(exc)
    if code is None:
        return DdlErrorKind.OTHER
    return _KIND_BY_CODE.get(code, DdlErrorKind.OTHER)


def _create(db: ConnectionManager, ddl: str, name: str) -> bool:
    """Run one CREATE statement; return False when the object already existed."""
    try:
        db.execute(ddl)
    except oracledb.DatabaseError as exc:
        kind = classify_ddl_error(exc)
        if kind not in _TOLERATED_DDL:
            raise SchemaError(f"failed to create {name}: {exc}") from exc
        logger.debug("%s already present (%s)", name, kind)
        return False
    return True


def _index_name(ddl: str) -> str:
    words = ddl.split()
    return words[words.index("INDEX") + 1]


def init_schema(db: ConnectionManager) -> None:
    """Create every table and index, then stamp the schema version.

    Safe to run repeatedly, including from several processes at once:
    already-existing objects are skipped. Any other DDL failure aborts with
    :class:`SchemaError`.
    """
    logger.info("Initializing Oracle schema...")

    for table in TABLE_ORDER:
        if _create(db, TABLE_DDL[table], f"table {table}"):
            logger.info("Created table %s", table)

    for ddl in INDEX_DDL + VECTOR_INDEX_DDL:
        name = _index_name(ddl)
        if _create(db, ddl, f"index {name}"):
            logger.debug("Created index %s", name)

    _stamp_version(db)

    logger.info("Schema initialization complete (version %s)", SCHEMA_VERSION)


def _stamp_version(db: ConnectionManager) -> None:
    """Upsert the version marker.

    Two processes can both take the MERGE insert branch; the loser gets
    ORA-00001 after the winner has stamped the same version.
    """
    try:
        db.execute(_SET_VERSION_SQL, {"version": SCHEMA_VERSION})
    except oracledb.Error as exc:
        if classify_ddl_error(exc) != DdlErrorKind.DUPLICATE_KEY:
            raise SchemaError(f"failed to set schema version: {exc}") from exc
        logger.debug("Schema version stamped by another process: %s", exc)


def get_schema_version(db: ConnectionManager) -> str | None:
    """Return the stamped schema version, or None when absent or unreadable."""
    try:
        row = db.query_one(_GET_VERSION_SQL)
    except oracledb.Error as exc:
        logger.debug("Cannot read schema version: %s", exc)
        return None
    return row[0] if row else None
