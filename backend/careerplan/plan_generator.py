"""Plan generation agent integration and prompt assembly."""

from __future__ import annotations

import asyncio
import json
import logging
from time import perf_counter
from typing import Any, Dict, List, Optional, Protocol, cast

from agents import Agent, ModelSettings, RunConfig, Runner
from openai.types.shared.reasoning import Reasoning
from openai.types.shared.reasoning_effort import ReasoningEffort
from pydantic import BaseModel, Field, ValidationError

from .career_models import CompletionStats, PlanContent, ProgressBreakdown, UserProfile
from .config import Settings, get_settings
from .errors import InvalidPlanResponse, PlanGenerationError, PlanGenerationTimeout

logger = logging.getLogger(__name__)

PLAN_AGENT_INSTRUCTIONS = (
    "You are a career advisor that provides structured JSON responses with specific, actionable career "
    "development plans that help the user adapt to a job market reshaped by artificial intelligence. "
    "Each task must include an array of learning resources (use an empty array when none apply). "
    "Output only JSON following the provided schema."
)

PLAN_SCHEMA_DESCRIPTION = (
    "Respond strictly as JSON with keys: progress_percentage (integer 0-100), analysis (string), "
    "tasks (non-empty array), next_steps (array of {step, reason}), and optionally risk_assessment "
    "({level, factors, mitigation_steps}). Each task must include title, description, "
    "timeframe (for example '2 weeks' or '1 month'), priority ('high' | 'medium' | 'low'), and "
    "resources (array of {name, url, type, description}). Tasks may also carry category (string), "
    "skill_type ('technical' | 'domain' | 'soft' | 'future'), success_metrics (array of strings), "
    "and urgency (string)."
)


class PlanPromptContext(BaseModel):
    """Profile summary handed to the generative service."""

    user_id: str
    dream_job: str = "Not specified"
    dream_company: Optional[str] = None
    dream_salary: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    bio: str = "Not provided"
    current_role: Optional[str] = None
    years_of_experience: Optional[float] = None
    stats: CompletionStats = Field(default_factory=CompletionStats)
    progress_breakdown: ProgressBreakdown = Field(default_factory=ProgressBreakdown)


class PlanGenerator(Protocol):
    def generate(self, context: PlanPromptContext) -> PlanContent:  # pragma: no cover - protocol definition
        """Return validated plan content or raise ``PlanGenerationError``."""
        ...


def compute_progress_breakdown(skill_count: int, stats: CompletionStats) -> ProgressBreakdown:
    preexisting = float(min(skill_count * 10, 40))
    task_progress = stats.completed_tasks / stats.total_tasks * 30 if stats.total_tasks else 0.0
    step_progress = stats.completed_steps / stats.total_steps * 30 if stats.total_steps else 0.0
    app_progress = min(task_progress + step_progress, 60.0)
    return ProgressBreakdown(
        preexisting_experience=preexisting,
        app_progress=round(app_progress, 2),
        total_progress=round(min(preexisting + app_progress, 100.0), 2),
    )


def build_prompt_context(profile: UserProfile, stats: CompletionStats) -> PlanPromptContext:
    return PlanPromptContext(
        user_id=profile.user_id,
        dream_job=(profile.dream_job or "").strip() or "Not specified",
        dream_company=profile.dream_company,
        dream_salary=profile.dream_salary,
        skills=list(profile.skills),
        bio=profile.bio.strip() or "Not provided",
        current_role=profile.structured.current_role,
        years_of_experience=profile.structured.years_of_experience,
        stats=stats,
        progress_breakdown=compute_progress_breakdown(len(profile.skills), stats),
    )


def render_prompt(context: PlanPromptContext) -> str:
    stats = context.stats
    breakdown = context.progress_breakdown
    lines = [
        "Analyze my career profile and provide a structured response:",
        "",
        "Current Profile:",
        f"- Dream Job: {context.dream_job}",
    ]
    if context.dream_company:
        lines.append(f"- Dream Company: {context.dream_company}")
    if context.dream_salary:
        lines.append(f"- Dream Salary: {context.dream_salary}")
    if context.current_role:
        lines.append(f"- Current Role: {context.current_role}")
    if context.years_of_experience is not None:
        lines.append(f"- Years of Experience: {context.years_of_experience:g}")
    lines.extend(
        [
            f"- Current Skills: {', '.join(context.skills) or 'None listed'}",
            f"- Bio/Resume: {context.bio}",
            f"- Completed Tasks: {stats.completed_tasks} out of {stats.total_tasks} tasks",
            f"- Completed Plan Steps: {stats.completed_steps} out of {stats.total_steps} steps",
            "",
            "Progress Breakdown:",
            f"- Pre-existing Experience: {breakdown.preexisting_experience:g}%",
            f"- App Progress: {breakdown.app_progress:g}%",
            f"- Total Progress: {breakdown.total_progress:g}%",
            "",
            PLAN_SCHEMA_DESCRIPTION,
        ]
    )
    return "\n".join(lines)


def coerce_plan_content(payload: Any) -> PlanContent:
    """Validate raw generator output. Raises ``InvalidPlanResponse``."""
    try:
        if isinstance(payload, PlanContent):
            return payload
        if isinstance(payload, BaseModel):
            return PlanContent.model_validate(payload.model_dump())
        if isinstance(payload, dict):
            return PlanContent.model_validate(payload)
        if isinstance(payload, str):
            return PlanContent.model_validate(json.loads(payload))
    except (ValidationError, json.JSONDecodeError) as exc:
        raise InvalidPlanResponse(f"Plan generator returned invalid payload: {exc}") from exc
    raise InvalidPlanResponse(f"Unsupported plan payload type: {type(payload).__name__}")


_PLAN_AGENT_CACHE: Dict[str, Agent[Any]] = {}


def _plan_effort(value: str) -> ReasoningEffort:
    allowed = {"minimal", "low", "medium", "high"}
    effort = value if value in allowed else "medium"
    return cast(ReasoningEffort, effort)


def get_plan_agent(settings: Settings) -> Agent[Any]:
    model = settings.plan_agent_model or "gpt-5"
    if model not in _PLAN_AGENT_CACHE:
        _PLAN_AGENT_CACHE[model] = Agent(
            name="Career Plan Author",
            instructions=PLAN_AGENT_INSTRUCTIONS,
            model=model,
            tools=[],
            model_settings=ModelSettings(store=False),
        )
    return _PLAN_AGENT_CACHE[model]


class AgentPlanGenerator:
    """Generates plan content with the OpenAI Agents runner under a hard timeout.

    ``generate`` drives its own event loop, so it must be called from a worker
    thread (FastAPI runs sync endpoints in its threadpool).
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def generate(self, context: PlanPromptContext) -> PlanContent:
        settings = self._settings
        agent = get_plan_agent(settings)
        timeout = settings.plan_generation_timeout_seconds
        run_config = RunConfig(
            model_settings=ModelSettings(
                reasoning=Reasoning(effort=_plan_effort(settings.plan_agent_reasoning), summary="auto"),
            )
        )

        async def _run() -> Any:
            return await asyncio.wait_for(
                Runner.run(agent, render_prompt(context), context=None, run_config=run_config),
                timeout=timeout,
            )

        started = perf_counter()
        try:
            result = asyncio.run(_run())
        except asyncio.TimeoutError as exc:
            raise PlanGenerationTimeout(f"Plan generation exceeded {timeout:g}s.") from exc
        except Exception as exc:  # noqa: BLE001
            raise PlanGenerationError(f"Plan generation call failed: {exc}") from exc

        content = coerce_plan_content(result.final_output)
        logger.debug(
            "Plan agent succeeded (user=%s, steps=%s, latency_ms=%s)",
            context.user_id,
            len(content.steps),
            round((perf_counter() - started) * 1000.0, 2),
        )
        return content


__all__ = [
    "AgentPlanGenerator",
    "PlanGenerator",
    "PlanPromptContext",
    "build_prompt_context",
    "coerce_plan_content",
    "compute_progress_breakdown",
    "get_plan_agent",
    "render_prompt",
]
