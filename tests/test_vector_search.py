"""Tests for the generic cosine vector search helper."""

from __future__ import annotations

import pytest

from oramem.stores.base import StoreError
from oramem.stores.vector_search import build_vector_query, similarity, vector_search
from tests.conftest import ora_error


class TestBuildVectorQuery:
    def test_default_shape(self):
        sql = build_vector_query("PICO_MEMORIES", "memory_id", "content", "embedding")
        assert sql == (
            "SELECT memory_id, content, "
            "VECTOR_DISTANCE(embedding, TO_VECTOR(:query_vec), COSINE) AS distance "
            "FROM PICO_MEMORIES "
            "WHERE agent_id = :agent_id AND embedding IS NOT NULL "
            "ORDER BY distance ASC FETCH FIRST :max_results ROWS ONLY"
        )

    def test_extra_columns_before_distance(self):
        sql = build_vector_query(
            "PICO_MEMORIES", "memory_id", "content", "embedding", extra_cols=("importance",)
        )
        assert sql.startswith("SELECT memory_id, content, importance, VECTOR_DISTANCE(")

    def test_custom_query_expression(self):
        sql = build_vector_query(
            "PICO_DAILY_NOTES",
            "note_id",
            "content",
            "embedding",
            query_expr="VECTOR_EMBEDDING(M USING :query AS DATA)",
        )
        assert "VECTOR_DISTANCE(embedding, VECTOR_EMBEDDING(M USING :query AS DATA), COSINE)" in sql

    @pytest.mark.parametrize(
        "args",
        [
            ("T; DROP TABLE X", "id", "text", "emb"),
            ("T", "id--", "text", "emb"),
            ("T", "id", "text", "emb OR 1=1"),
        ],
    )
    def test_rejects_unsafe_identifiers(self, args):
        with pytest.raises(ValueError, match="Invalid SQL identifier"):
            build_vector_query(*args)


class TestSimilarity:
    @pytest.mark.parametrize(
        ("distance", "expected"), [(0.0, 1.0), (0.25, 0.75), (1.0, 0.0), (2.0, -1.0)]
    )
    def test_one_minus_distance(self, distance, expected):
        assert similarity(distance) == pytest.approx(expected)


class TestVectorSearch:
    def test_binds_and_filtering(self, db, fake_db):
        fake_db.on(
            r"VECTOR_DISTANCE",
            rows=[("n1", "close", 0.1), ("n2", None, 0.4), ("n3", "far", 0.9)],
        )
        results = vector_search(
            db, "PICO_DAILY_NOTES", "note_id", "content", "embedding", "a1", [0.5, -1.0], 3, 0.5
        )
        assert [r.id for r in results] == ["n1", "n2"]
        assert results[0].score == pytest.approx(0.9)
        assert results[0].distance == pytest.approx(0.1)
        assert results[1].text == ""

        _, binds = fake_db.statements[-1]
        assert binds == {"query_vec": "[0.5,-1.0]", "agent_id": "a1", "max_results": 3}

    def test_results_in_ascending_distance(self, db, fake_db):
        fake_db.on(r"VECTOR_DISTANCE", rows=[("a", "x", 0.05), ("b", "y", 0.2)])
        results = vector_search(db, "T", "id", "txt", "emb", "a1", [1.0], 5, 0.0)
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    def test_error_names_table(self, db, fake_db):
        fake_db.on(r"VECTOR_DISTANCE", error=ora_error(942, "table or view does not exist"))
        with pytest.raises(StoreError, match="vector search failed on PICO_TRANSCRIPTS"):
            vector_search(db, "PICO_TRANSCRIPTS", "id", "content", "emb", "a1", [1.0], 5, 0.0)
