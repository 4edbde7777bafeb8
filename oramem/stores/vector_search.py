"""Cosine nearest-neighbour search over any table with an agent-scoped VECTOR column."""

from __future__ import annotations

from collections.abc import Sequence

import oracledb

from oramem.stores._helpers import format_vector, safe_identifier
from oramem.stores.base import StoreError, VectorSearchResult
from oramem.stores.connection import ConnectionManager

QUERY_VECTOR_EXPR = "TO_VECTOR(:query_vec)"


def build_vector_query(
    table: str,
    id_col: str,
    text_col: str,
    embedding_col: str,
    *,
    query_expr: str = QUERY_VECTOR_EXPR,
    extra_cols: Sequence[str] = (),
) -> str:
    """Return the nearest-neighbour SELECT for *table*.

    Rows come back as ``(id, text, *extra_cols, distance)`` ordered by
    ascending cosine distance. Binds: ``:agent_id``, ``:max_results`` and
    whatever *query_expr* references (``:query_vec`` by default).
    """
    columns = [safe_identifier(id_col), safe_identifier(text_col)]
    columns += [safe_identifier(c) for c in extra_cols]
    embedding_col = safe_identifier(embedding_col)
    return (
        f"SELECT {', '.join(columns)}, "
        f"VECTOR_DISTANCE({embedding_col}, {query_expr}, COSINE) AS distance "
        f"FROM {safe_identifier(table)} "
        f"WHERE agent_id = :agent_id AND {embedding_col} IS NOT NULL "
        "ORDER BY distance ASC "
        "FETCH FIRST :max_results ROWS ONLY"
    )


def similarity(distance: float) -> float:
    """Convert a cosine distance in [0, 2] to a similarity score."""
    return 1.0 - float(distance)


def vector_search(
    db: ConnectionManager,
    table: str,
    id_col: str,
    text_col: str,
    embedding_col: str,
    agent_id: str,
    query_vector: Sequence[float],
    max_results: int,
    min_score: float,
) -> list[VectorSearchResult]:
    """Return the rows closest to *query_vector*, dropping those scoring below *min_score*."""
    sql = build_vector_query(table, id_col, text_col, embedding_col)
    binds = {
        "query_vec": format_vector(query_vector),
        "agent_id": agent_id,
        "max_results": max_results,
    }
    try:
        rows = db.query(sql, binds)
    except oracledb.Error as exc:
        raise StoreError(f"vector search failed on {table}: {exc}") from exc

    results: list[VectorSearchResult] = []
    for row_id, text, distance in rows:
        score = similarity(distance)
        if score < min_score:
            continue
        results.append(
            VectorSearchResult(id=row_id, text=text or "", distance=float(distance), score=score)
        )
    return results
