"""Tests for the cached, Oracle-persisted session store."""

from __future__ import annotations

import json
import threading
from datetime import datetime

import pytest

from oramem.stores.base import Message, StoreError, ToolCall
from oramem.stores.session_store import OracleSessionStore
from tests.conftest import ora_error

LOAD = r"FROM PICO_SESSIONS WHERE agent_id = :agent_id"
SAVE = r"^MERGE INTO PICO_SESSIONS"


@pytest.fixture()
def store(db):
    return OracleSessionStore(db, "agent-1")


class TestPreload:
    def test_loads_existing_sessions(self, db, fake_db):
        created = datetime(2026, 1, 2, 3, 4, 5)
        fake_db.on(
            LOAD,
            rows=[
                ("cli:1", json.dumps([{"role": "user", "content": "hi"}]), "summary", created, created),
                ("cli:2", "not json", None, created, created),
            ],
        )
        store = OracleSessionStore(db, "agent-1")

        assert sorted(store.keys()) == ["cli:1", "cli:2"]
        assert store.get_history("cli:1") == [Message(role="user", content="hi")]
        assert store.get_summary("cli:1") == "summary"
        assert store.get_history("cli:2") == []
        assert store.get_summary("cli:2") == ""
        assert fake_db.statements[0][1] == {"agent_id": "agent-1"}

    def test_load_failure_starts_empty(self, db, fake_db):
        fake_db.on(LOAD, error=ora_error(942))
        store = OracleSessionStore(db, "agent-1")
        assert store.keys() == []


class TestCacheOperations:
    def test_get_or_create(self, store):
        session = store.get_or_create("s1")
        assert session.key == "s1"
        assert session.messages == []
        assert session.created is not None
        assert store.keys() == ["s1"]

    def test_get_or_create_returns_snapshot(self, store):
        store.add_message("s1", "user", "hello")
        snapshot = store.get_or_create("s1")
        snapshot.messages.append(Message(role="user", content="sneaky"))
        assert len(store.get_history("s1")) == 1

    def test_add_message_creates_session(self, store):
        store.add_message("s1", "user", "hello")
        store.add_message("s1", "assistant", "hi there")
        assert [m.content for m in store.get_history("s1")] == ["hello", "hi there"]

    def test_add_full_message_keeps_tool_calls(self, store):
        msg = Message(
            role="assistant",
            content="",
            tool_calls=[ToolCall(id="c1", name="recall", arguments={"query": "go"})],
        )
        store.add_full_message("s1", msg)
        msg.tool_calls[0].name = "mutated"
        history = store.get_history("s1")
        assert history[0].tool_calls[0].name == "recall"

    def test_history_is_a_copy(self, store):
        store.add_message("s1", "user", "hello")
        history = store.get_history("s1")
        history[0].content = "changed"
        history.append(Message(role="user", content="extra"))
        assert [m.content for m in store.get_history("s1")] == ["hello"]

    def test_unknown_key(self, store):
        assert store.get_history("nope") == []
        assert store.get_summary("nope") == ""

    def test_set_history_replaces(self, store):
        store.add_message("s1", "user", "old")
        store.set_history("s1", [Message(role="user", content="new")])
        assert [m.content for m in store.get_history("s1")] == ["new"]

    def test_set_history_unknown_key_is_noop(self, store):
        store.set_history("nope", [Message(role="user", content="x")])
        assert store.keys() == []

    def test_summary(self, store):
        store.get_or_create("s1")
        store.set_summary("s1", "talked about Go")
        assert store.get_summary("s1") == "talked about Go"

    def test_set_summary_unknown_key_is_noop(self, store):
        store.set_summary("nope", "x")
        assert store.get_summary("nope") == ""

    @pytest.mark.parametrize(
        ("keep_last", "expected"), [(2, ["c", "d"]), (10, ["a", "b", "c", "d"]), (0, []), (-1, [])]
    )
    def test_truncate_history(self, store, keep_last, expected):
        for content in "abcd":
            store.add_message("s1", "user", content)
        store.truncate_history("s1", keep_last)
        assert [m.content for m in store.get_history("s1")] == expected

    def test_mutations_do_not_touch_database(self, store, fake_db):
        before = len(fake_db.statements)
        store.add_message("s1", "user", "hello")
        store.set_summary("s1", "x")
        store.truncate_history("s1", 1)
        assert len(fake_db.statements) == before


class TestSave:
    def test_upserts_session(self, store, fake_db):
        store.add_message("s1", "user", "hello")
        store.set_summary("s1", "greeting")
        store.save("s1")

        sql, binds = fake_db.matching(SAVE)[0]
        assert "WHEN MATCHED THEN UPDATE SET messages = :messages" in sql
        assert binds["session_key"] == "s1"
        assert binds["agent_id"] == "agent-1"
        assert binds["summary"] == "greeting"
        assert json.loads(binds["messages"]) == [{"role": "user", "content": "hello"}]
        assert fake_db.commits == 1

    def test_serialized_tool_calls(self, store, fake_db):
        store.add_full_message(
            "s1",
            Message(
                role="assistant",
                tool_calls=[ToolCall(id="c1", name="remember", arguments={"text": "x"})],
            ),
        )
        store.add_full_message("s1", Message(role="tool", content="ok", tool_call_id="c1"))
        store.save("s1")
        payload = json.loads(fake_db.matching(SAVE)[0][1]["messages"])
        assert payload[0]["tool_calls"][0]["name"] == "remember"
        assert payload[1]["tool_call_id"] == "c1"

    def test_unknown_key_is_noop(self, store, fake_db):
        store.save("nope")
        assert not fake_db.matching(SAVE)

    def test_round_trip_through_reload(self, db, fake_db):
        store = OracleSessionStore(db, "agent-1")
        store.add_message("s1", "user", "persist me")
        store.save("s1")
        saved = fake_db.matching(SAVE)[0][1]

        fake_db.on(LOAD, rows=[("s1", saved["messages"], saved["summary"], None, None)])
        reloaded = OracleSessionStore(db, "agent-1")
        assert reloaded.get_history("s1") == [Message(role="user", content="persist me")]

    def test_db_error(self, store, fake_db):
        store.get_or_create("s1")
        fake_db.on(SAVE, error=ora_error(12899, "value too large"))
        with pytest.raises(StoreError, match="session save failed"):
            store.save("s1")


class TestConcurrency:
    def test_parallel_appends(self, store):
        def worker(n: int) -> None:
            for i in range(50):
                store.add_message("shared", "user", f"{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.get_history("shared")) == 400
