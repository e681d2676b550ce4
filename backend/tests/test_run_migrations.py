from __future__ import annotations

import pytest
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from scripts import run_migrations as runner


def _config(url: str = runner.URL_PLACEHOLDER) -> Config:
    config = Config()
    config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    config.set_main_option("script_location", str(runner.BACKEND_ROOT / "alembic"))
    return config


def test_resolve_database_url_prefers_env(monkeypatch) -> None:
    monkeypatch.setenv("CAREERPLAN_DATABASE_URL", "sqlite://")
    config = _config()
    assert runner.resolve_database_url(config) == "sqlite://"
    assert config.get_main_option("sqlalchemy.url") == "sqlite://"


def test_resolve_database_url_requires_setting(monkeypatch) -> None:
    monkeypatch.delenv("CAREERPLAN_DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        runner.resolve_database_url(_config())


def test_explicit_url_is_kept(monkeypatch) -> None:
    monkeypatch.setenv("CAREERPLAN_DATABASE_URL", "sqlite://")
    assert runner.resolve_database_url(_config("postgresql://db/careers")) == "postgresql://db/careers"


def test_wait_for_database_succeeds_with_sqlite(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'ready.sqlite'}"
    assert runner.wait_for_database(url, runner.ReadinessPolicy(timeout=2, poll_interval=0.1)) == 1


def test_wait_for_database_times_out(monkeypatch) -> None:
    attempts: list[int] = []

    class UnreachableEngine:
        def connect(self):
            attempts.append(1)
            raise runner.OperationalError("SELECT 1", {}, Exception("connection refused"))

        def dispose(self) -> None:
            pass

    monkeypatch.setattr(runner, "create_engine", lambda *_, **__: UnreachableEngine())
    with pytest.raises(RuntimeError):
        runner.wait_for_database("postgresql://example", runner.ReadinessPolicy(timeout=0, poll_interval=0))
    assert attempts == [1]


def test_run_migrations_waits_then_upgrades(monkeypatch) -> None:
    monkeypatch.setenv("CAREERPLAN_DATABASE_URL", "sqlite://")
    recorded: dict[str, object] = {}

    monkeypatch.setattr(runner, "wait_for_database", lambda url, policy: recorded.setdefault("wait", url))
    monkeypatch.setattr(
        runner.command,
        "upgrade",
        lambda cfg, revision, **kwargs: recorded.setdefault("revision", revision),
    )

    runner.run_migrations("head", policy=runner.ReadinessPolicy(timeout=1, poll_interval=0), config=_config())

    assert recorded == {"wait": "sqlite://", "revision": "head"}


def test_migration_upgrades_empty_database(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.sqlite'}"
    monkeypatch.setenv("CAREERPLAN_DATABASE_URL", url)
    runner.run_migrations("head", policy=runner.ReadinessPolicy(timeout=1, poll_interval=0.1), config=_config())

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        step_columns = {column["name"] for column in inspector.get_columns("plan_steps")}
        notification_key = inspector.get_pk_constraint("notifications")["constrained_columns"]
    finally:
        engine.dispose()
    assert {"user_profiles", "career_plans", "plan_steps", "step_progress", "notifications"} <= tables
    assert "details" in step_columns
    assert notification_key == ["seq"]


def test_main_reports_failure(monkeypatch) -> None:
    monkeypatch.delenv("CAREERPLAN_DATABASE_URL", raising=False)
    monkeypatch.setattr(runner, "load_config", lambda path: _config())
    assert runner.main(["--timeout", "0"]) == 1
