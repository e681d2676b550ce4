from __future__ import annotations

import pytest

from careerplan.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_use_model_config_dict() -> None:
    assert "Config" not in vars(Settings)
    assert Settings.model_config["case_sensitive"] is True
    assert Settings.model_config["env_file_encoding"] == "utf-8"


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("CAREERPLAN_PLAN_REUSE_POLICY", "latest")
    monkeypatch.setenv("CAREERPLAN_PLAN_FRESHNESS_HOURS", "6")
    monkeypatch.setenv("careerplan_database_echo", "true")

    settings = get_settings()

    assert settings.plan_reuse_policy == "latest"
    assert settings.plan_freshness_hours == 6.0
    assert settings.database_echo is False


def test_invalid_configuration_is_reported(monkeypatch) -> None:
    monkeypatch.setenv("CAREERPLAN_PLAN_TIMEOUT_SECONDS", "0")

    with pytest.raises(RuntimeError, match="Invalid backend configuration"):
        get_settings()
