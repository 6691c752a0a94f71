from __future__ import annotations

import json
import logging

from conversion_scripts.util.observability import EventLogger, MetricsCollector


def test_metrics_collector_snapshot() -> None:
    metrics = MetricsCollector()
    metrics.increment("scripts.run", 2)
    metrics.record_duration("scripts.duration", 1.5)

    snapshot = metrics.snapshot()

    assert snapshot["counters"]["scripts.run"] == 2
    assert snapshot["durations"]["scripts.duration"]["count"] == 1.0
    assert snapshot["durations"]["scripts.duration"]["avg_s"] == 1.5


def test_event_logger_emits_json(caplog) -> None:
    logger = EventLogger("test.events", context={"runner": "word"})
    caplog.set_level(logging.INFO, logger="test.events")

    logger.log("script.finished", {"exit_code": 0})

    assert caplog.records
    payload = json.loads(caplog.records[-1].message)
    assert payload["event_type"] == "script.finished"
    assert payload["payload"]["exit_code"] == 0
    assert payload["context"] == {"runner": "word"}

