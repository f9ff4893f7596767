"""Tests for BatchCoalescer."""

from __future__ import annotations

import time

from fswatch.watchdog.debounce import BatchCoalescer
from fswatch.watchdog.events import EventType, WatchEvent


def modify(path: str) -> WatchEvent:
    return WatchEvent(EventType.MODIFY, path)


def test_consecutive_repeats_are_merged() -> None:
    coalescer = BatchCoalescer(debounce_delay=0)
    events = coalescer.coalesce([modify("a"), modify("a"), modify("a")])

    assert len(events) == 1
    assert events[0].count == 3
    assert str(events[0]) == "modify (ct=3): a"
    assert coalescer.stats["coalesced_events"] == 2


def test_runs_are_not_merged_across_other_events() -> None:
    coalescer = BatchCoalescer(debounce_delay=0)
    events = coalescer.coalesce([
        modify("a"),
        modify("b"),
        modify("a"),
        WatchEvent(EventType.DELETE, "a"),
        WatchEvent(EventType.DELETE, "a"),
    ])

    assert [(e.kind, e.path, e.count) for e in events] == [
        ("modify", "a", 1),
        ("modify", "b", 1),
        ("modify", "a", 1),
        ("delete", "a", 2),
    ]


def test_disabled_passes_through() -> None:
    coalescer = BatchCoalescer(debounce_delay=0, enabled=False)
    batch = [modify("a"), modify("a")]

    assert coalescer.coalesce(batch) == batch
    assert coalescer.get_stats()["enabled"] is False


def test_empty_batch() -> None:
    coalescer = BatchCoalescer()
    assert coalescer.coalesce([]) == []
    assert coalescer.stats["batches"] == 1


def test_wait_sleeps_for_delay() -> None:
    coalescer = BatchCoalescer(debounce_delay=0.05)
    start = time.monotonic()
    coalescer.wait()
    assert time.monotonic() - start >= 0.04


def test_single_event_str() -> None:
    assert str(WatchEvent(EventType.CREATE, "foo/a.txt")) == "create: foo/a.txt"
