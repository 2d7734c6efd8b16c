"""Unit tests for in-process telemetry"""

from __future__ import annotations

from mailsift.observability.telemetry import (
    counter,
    get_counter,
    get_latencies,
    reset_counters,
    snapshot,
    time_block,
)


class TestCounters:
    def test_counter_accumulates(self):
        assert counter("watcher.events") == 1
        assert counter("watcher.events", 2) == 3
        assert get_counter("watcher.events") == 3
        assert get_counter("never.touched") == 0

    def test_reset(self):
        counter("store.unavailable")
        with time_block("summarize.remote"):
            pass
        reset_counters()
        assert get_counter("store.unavailable") == 0
        assert get_latencies("summarize.remote") == []


class TestSnapshot:
    def test_snapshot_sorted_counters_and_latency_summary(self):
        counter("summarize.local")
        counter("extractor.duplicate_ids")
        with time_block("summarize.remote"):
            pass
        with time_block("summarize.remote"):
            pass

        data = snapshot()
        assert list(data["counters"]) == ["extractor.duplicate_ids", "summarize.local"]
        assert data["latencies"]["summarize.remote"]["count"] == 2
        assert data["latencies"]["summarize.remote"]["avg_seconds"] >= 0.0

    def test_time_block_records_on_error(self):
        try:
            with time_block("summarize.remote"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert len(get_latencies("summarize.remote")) == 1
