from __future__ import annotations

from sqlalchemy import create_engine, text

from careerplan.db import monitoring


def test_instrument_engine_emits_pool_status(monkeypatch) -> None:
    emitted: list[tuple[str, dict[str, object]]] = []

    def record(event_name: str, **payload: object) -> None:
        emitted.append((event_name, payload))

    monkeypatch.setattr(monitoring, "_TELEMETRY_INTERVAL", 0)
    monkeypatch.setattr(monitoring, "emit_event", record)

    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        monitoring.instrument_engine(engine)
        monitoring.instrument_engine(engine)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))

        names = [name for name, _ in emitted]
        assert names and set(names) == {"db_pool_status"}
        assert emitted[0][1]["trigger"] == "connect"
        snapshot = monitoring.get_pool_snapshot(engine)
        assert snapshot["connects"] >= 1
        assert snapshot["checkouts"] >= 1
        assert snapshot["checkins"] >= 1
    finally:
        engine.dispose()


def test_emission_is_throttled(monkeypatch) -> None:
    emitted: list[str] = []
    monkeypatch.setattr(monitoring, "_TELEMETRY_INTERVAL", 3600)
    monkeypatch.setattr(monitoring, "emit_event", lambda name, **_: emitted.append(name))

    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        monitoring.instrument_engine(engine)
        for _ in range(3):
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        assert len(emitted) == 1
        assert monitoring.get_pool_snapshot(engine)["checkouts"] >= 3
    finally:
        engine.dispose()


def test_snapshot_for_uninstrumented_engine() -> None:
    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        snapshot = monitoring.get_pool_snapshot(engine)
        assert snapshot["connects"] == 0
        assert isinstance(snapshot["status"], str)
    finally:
        engine.dispose()
