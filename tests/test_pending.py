from __future__ import annotations

from memory_grove_tracker.pending import PendingSet


def test_consume_removes_only_once() -> None:
    pending = PendingSet()
    pending.mark("a")

    assert "a" in pending
    assert pending.consume("a") is True
    assert pending.consume("a") is False
    assert len(pending) == 0


def test_marking_twice_needs_one_echo() -> None:
    pending = PendingSet()
    pending.mark("a")
    pending.mark("a")

    pending.consume("a")

    assert "a" not in pending


def test_discard_and_clear() -> None:
    pending = PendingSet()
    for record_id in ("b", "a", "c"):
        pending.mark(record_id)

    pending.discard("missing")
    pending.discard("b")

    assert list(pending) == ["a", "c"]
    pending.clear()
    assert len(pending) == 0
