"""
Unit tests for the append-only audit log.
"""

import threading
from datetime import datetime, timezone

import pytest

from finvault.audit import AuditLog
from finvault.models import Severity


def test_append_assigns_unique_non_empty_ids(clock):
    log = AuditLog(clock=clock)
    a = log.append("a", "LOGIN", "Alice logged in")
    b = log.append("a", "LOGIN", "Alice logged in")
    assert a.id and b.id
    assert a.id != b.id


def test_append_grows_log_by_one(clock):
    log = AuditLog(clock=clock)
    assert len(log) == 0
    log.append("a", "LOGIN", "x")
    assert len(log) == 1
    assert len(log.list()) == 1


def test_entry_fields(clock):
    log = AuditLog(clock=clock)
    entry = log.append("a", "IMPERSONATION_START", "Alice as Bob",
                       severity=Severity.WARNING, acting_as_id="b")
    assert entry.actor_id == "a"
    assert entry.acting_as_id == "b"
    assert entry.target_id is None
    assert entry.severity is Severity.WARNING
    assert entry.timestamp == clock.now
    assert entry.timestamp_iso == "2024-03-20T09:00:00+00:00"


def test_severity_accepts_token_string(clock):
    log = AuditLog(clock=clock)
    assert log.append("a", "X", "y", severity="CRITICAL").severity is Severity.CRITICAL


def test_list_newest_first(clock):
    log = AuditLog(clock=clock)
    first = log.append("a", "ONE", "1")
    clock.advance(5)
    second = log.append("a", "TWO", "2")
    clock.advance(5)
    third = log.append("a", "THREE", "3")
    assert [e.id for e in log.list()] == [third.id, second.id, first.id]


def test_explicit_timestamps_sorted_by_instant_not_insertion(clock):
    log = AuditLog(clock=clock)
    late = log.append("a", "LATE", "", timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc))
    early = log.append("a", "EARLY", "", timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert [e.id for e in log.list()] == [late.id, early.id]


def test_equal_timestamps_break_ties_by_insertion(clock):
    log = AuditLog(clock=clock)
    entries = [log.append("a", f"E{i}", "") for i in range(5)]
    listed = log.list()
    assert [e.id for e in listed] == [e.id for e in reversed(entries)]
    assert [e.sequence for e in listed] == [5, 4, 3, 2, 1]


def test_entries_for_matches_any_role(clock):
    log = AuditLog(clock=clock)
    log.append("a", "IMPERSONATION_START", "", acting_as_id="b")
    log.append("d", "IMPERSONATION_DENIED", "", target_id="b")
    log.append("c", "LOGIN", "")
    assert len(log.entries_for("b")) == 2
    assert len(log.entries_for("c")) == 1
    assert log.entries_for("zzz") == []


def test_naive_timestamp_rejected(clock):
    log = AuditLog(clock=clock)
    with pytest.raises(ValueError, match="timezone-aware"):
        log.append("a", "LOGIN", "", timestamp=datetime(2024, 1, 1))
    assert len(log) == 0


def test_naive_clock_rejected():
    log = AuditLog(clock=lambda: datetime(2024, 1, 1))
    with pytest.raises(ValueError, match="timezone-aware"):
        log.append("a", "LOGIN", "")


def test_concurrent_appends_keep_every_entry(clock):
    log = AuditLog(clock=clock)

    def worker(n):
        for i in range(250):
            log.append(f"actor-{n}", "LOGIN", str(i))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    entries = log.list()
    assert len(log) == 1000
    assert len({e.id for e in entries}) == 1000
    assert sorted(e.sequence for e in entries) == list(range(1, 1001))
