from __future__ import annotations

from datetime import datetime, timezone

from careerplan.career_models import StepStatus
from careerplan.telemetry import clear_listeners, emit_event, register_listener


def test_listeners_receive_sanitized_payload() -> None:
    received = []
    clear_listeners()
    register_listener(received.append)
    try:
        emit_event(
            "step_transition",
            to_status=StepStatus.COMPLETED,
            at=datetime(2026, 10, 19, tzinfo=timezone.utc),
        )
    finally:
        clear_listeners()

    assert received[0].name == "step_transition"
    assert received[0].payload == {"to_status": "COMPLETED", "at": "2026-10-19T00:00:00+00:00"}


def test_failing_listener_does_not_break_emission() -> None:
    received = []

    def broken(event) -> None:
        raise RuntimeError("listener down")

    clear_listeners()
    register_listener(broken)
    register_listener(received.append)
    try:
        emit_event("plan_cache_hit", user_id="ada")
    finally:
        clear_listeners()
    assert [event.name for event in received] == ["plan_cache_hit"]
