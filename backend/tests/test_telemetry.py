from __future__ import annotations

import logging
from datetime import datetime, timezone

from learnpath.models import AdjustedSkillLevel
from learnpath.telemetry import TelemetryEvent, clear_listeners, emit_event, register_listener


def test_listeners_receive_plain_payload(events) -> None:
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    emit_event(
        "cache_evicted",
        key="quiz-a",
        at=moment,
        tags={"b", "a"},
        level=AdjustedSkillLevel(overall=3, by_area={"Syntax": 4}),
    )

    assert events == [
        TelemetryEvent(
            name="cache_evicted",
            payload={
                "key": "quiz-a",
                "at": "2024-05-01T12:00:00+00:00",
                "tags": ["a", "b"],
                "level": {"overall": 3.0, "byArea": {"Syntax": 4}},
            },
        )
    ]


def test_unsubscribe_stops_delivery() -> None:
    received = []
    unsubscribe = register_listener(received.append)
    emit_event("generation_cache_hit", key="one")
    unsubscribe()
    unsubscribe()
    emit_event("generation_cache_hit", key="two")

    assert [event.payload["key"] for event in received] == ["one"]


def test_failing_listener_does_not_stop_fan_out(caplog) -> None:
    received = []

    def broken(_: TelemetryEvent) -> None:
        raise RuntimeError("listener bug")

    register_listener(broken)
    register_listener(received.append)
    try:
        with caplog.at_level(logging.DEBUG, logger="learnpath.telemetry"):
            emit_event("generation_cache_hit", key="quiz-x")
    finally:
        clear_listeners()

    assert [event.name for event in received] == ["generation_cache_hit"]
    assert "Telemetry listener failed" in caplog.text
    assert 'TELEMETRY {"event": "generation_cache_hit", "key": "quiz-x"}' in caplog.text


def test_failures_are_logged_as_warnings(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="learnpath.telemetry"):
        emit_event("generation_failed", kind="quiz", error="QuizValidationError")
        emit_event("cache_evicted", key="quiz-a")

    records = [record for record in caplog.records if record.name == "learnpath.telemetry"]
    assert [record.levelno for record in records] == [logging.WARNING]
