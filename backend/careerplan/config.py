import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    plan_agent_model: str = Field("gpt-5", alias="CAREERPLAN_AGENT_MODEL")
    plan_agent_reasoning: Literal["minimal", "low", "medium", "high"] = Field(
        "medium", alias="CAREERPLAN_AGENT_REASONING"
    )
    plan_generation_timeout_seconds: float = Field(60.0, gt=0, alias="CAREERPLAN_PLAN_TIMEOUT_SECONDS")
    plan_reuse_policy: Literal["window", "latest"] = Field("window", alias="CAREERPLAN_PLAN_REUSE_POLICY")
    plan_freshness_hours: float = Field(24.0, gt=0, alias="CAREERPLAN_PLAN_FRESHNESS_HOURS")
    database_url: Optional[str] = Field(None, alias="CAREERPLAN_DATABASE_URL")
    database_pool_size: int = Field(10, alias="CAREERPLAN_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="CAREERPLAN_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="CAREERPLAN_DATABASE_ECHO")

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
