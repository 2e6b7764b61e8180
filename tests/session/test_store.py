"""Tests for the bounded session store."""

import json
import threading
from datetime import datetime

import pytest

from perflog.session.formatter import format_logs
from perflog.session.models import DeviceContext, LogEntry, LogSession
from perflog.session.store import SessionStore, estimate_session_size

CONTEXT = DeviceContext(
    device_model="Linux x86_64",
    os_version="6.1.0",
    app_version="0.1.0",
    timestamp=datetime(2025, 1, 1, 12, 0, 0),
)


def make_session(*operations: str) -> LogSession:
    session = LogSession(device_context=CONTEXT)
    for name in operations:
        session = session.with_entry(LogEntry(name, datetime.now(), 0.1, CONTEXT))
    return session.completed()


class TestSizeEstimate:
    """Test the deterministic size estimate."""

    def test_deterministic(self):
        session = make_session("Capture")
        assert estimate_session_size(session) == estimate_session_size(session)

    def test_grows_with_entries_and_names(self):
        assert estimate_session_size(make_session("A", "B")) > estimate_session_size(
            make_session("A")
        )
        assert estimate_session_size(make_session("A" * 50)) > estimate_session_size(
            make_session("A")
        )


class TestSessionStore:
    """Test insertion, eviction and queries."""

    def test_rejects_active_sessions(self):
        store = SessionStore()
        with pytest.raises(ValueError):
            store.insert(LogSession(device_context=CONTEXT))

    def test_recent_sessions_most_recent_first(self):
        store = SessionStore()
        sessions = [make_session(f"Op {i}") for i in range(3)]
        for session in sessions:
            store.insert(session)

        recent = store.get_recent_sessions(2)

        assert [s.session_id for s in recent] == [
            sessions[2].session_id,
            sessions[1].session_id,
        ]
        assert len(store.get_recent_sessions(10)) == 3
        assert store.get_recent_sessions(0) == []

    def test_count_eviction_keeps_newest(self):
        store = SessionStore(max_sessions=5)
        sessions = [make_session("Op") for _ in range(8)]
        store.insert_many(sessions)

        assert len(store) == 5
        assert sessions[0].session_id not in store
        assert sessions[-1].session_id in store

    def test_size_eviction(self):
        single = estimate_session_size(make_session("Op"))
        store = SessionStore(max_sessions=50, max_size_bytes=single * 3 + single // 2)

        for _ in range(10):
            store.insert(make_session("Op"))

        info = store.get_storage_info()
        assert info.session_count == 3
        assert info.estimated_size_bytes <= info.max_size_bytes

    def test_duplicate_insert_is_ignored(self):
        store = SessionStore()
        session = make_session("Op")
        store.insert(session)
        store.insert(session)
        assert len(store) == 1

    def test_clear_all(self):
        store = SessionStore()
        store.insert_many([make_session("Op") for _ in range(4)])

        assert store.clear_all() == 4
        assert len(store) == 0
        assert store.get_storage_info().estimated_size_bytes == 0

    def test_clear_old_logs_only_under_limits_is_noop(self):
        store = SessionStore()
        store.insert_many([make_session("Op") for _ in range(4)])

        assert store.clear_old_logs_only() == 0
        assert len(store) == 4

    def test_clear_old_logs_only_after_lowering_limit(self):
        store = SessionStore()
        sessions = [make_session("Op") for _ in range(10)]
        store.insert_many(sessions)

        store.max_sessions = 4
        assert store.clear_old_logs_only() == 6
        assert [s.session_id for s in store.get_recent_sessions()] == [
            s.session_id for s in reversed(sessions[-4:])
        ]

    def test_concurrent_inserts_respect_caps(self):
        store = SessionStore(max_sessions=20)
        violations = []

        def writer():
            for _ in range(25):
                store.insert(make_session("Op"))

        def reader():
            for _ in range(200):
                if store.get_storage_info().session_count > 20:
                    violations.append(True)

        threads = [threading.Thread(target=writer) for _ in range(4)]
        threads.append(threading.Thread(target=reader))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not violations
        assert len(store) == 20


class TestSessionStorePersistence:
    """Test loading and writing the persisted store."""

    def test_persists_and_reloads(self, tmp_path):
        path = tmp_path / "sessions.json"
        store = SessionStore(persist_path=path)
        session = make_session("Capture", "Extract")
        store.insert(session)

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert len(data["sessions"]) == 1

        reloaded = SessionStore(persist_path=path)
        assert reloaded.get_recent_sessions() == [session]

    def test_corrupted_record_is_discarded(self, tmp_path):
        path = tmp_path / "sessions.json"
        good = make_session("Capture")
        path.write_text(
            json.dumps(
                {
                    "version": 1,
                    "sessions": [{"session_id": "broken"}, good.to_dict()],
                }
            )
        )

        store = SessionStore(persist_path=path)

        assert [s.session_id for s in store.get_recent_sessions()] == [good.session_id]
        # The rewritten file no longer holds the broken record
        assert len(json.loads(path.read_text())["sessions"]) == 1

    @pytest.mark.parametrize(
        "field,value", [("operation", 123), ("operation", "  "), ("duration", -5)]
    )
    def test_record_with_invalid_entry_is_discarded(self, tmp_path, field, value):
        path = tmp_path / "sessions.json"
        good = make_session("Capture")
        bad = make_session("Extract").to_dict()
        bad["entries"][0][field] = value
        path.write_text(json.dumps({"version": 1, "sessions": [bad, good.to_dict()]}))

        store = SessionStore(persist_path=path)

        sessions = store.get_recent_sessions()
        assert [s.session_id for s in sessions] == [good.session_id]
        assert "- Capture: 0.100s" in format_logs(sessions, CONTEXT)

    def test_invalid_json_is_discarded(self, tmp_path):
        path = tmp_path / "sessions.json"
        path.write_text("not json")

        store = SessionStore(persist_path=path)

        assert len(store) == 0
        store.insert(make_session("Capture"))
        assert len(SessionStore(persist_path=path)) == 1

    def test_caps_enforced_on_load(self, tmp_path):
        path = tmp_path / "sessions.json"
        big = SessionStore(persist_path=path)
        big.insert_many([make_session("Op") for _ in range(10)])

        small = SessionStore(max_sessions=3, persist_path=path)

        assert len(small) == 3
        assert len(json.loads(path.read_text())["sessions"]) == 3

    def test_clear_all_persists(self, tmp_path):
        path = tmp_path / "sessions.json"
        store = SessionStore(persist_path=path)
        store.insert(make_session("Op"))
        store.clear_all()

        assert json.loads(path.read_text())["sessions"] == []

    def test_write_failure_is_logged_not_raised(self, tmp_path, monkeypatch):
        store = SessionStore(persist_path=tmp_path / "sessions.json")

        def fail(payload):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_atomic", fail)
        store.insert(make_session("Op"))

        assert len(store) == 1
