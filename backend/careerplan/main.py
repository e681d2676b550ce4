import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from sqlalchemy import text

from .config import Settings, get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .errors import (
    CareerPlanError,
    ConflictingWriteError,
    InvalidTransitionError,
    NotFoundError,
    PlanGenerationError,
    PlanGenerationTimeout,
    StorageError,
)
from .logging_config import configure_logging
from .notification_routes import router as notification_router
from .plan_routes import router as plan_router
from .profile_routes import router as profile_router
from .step_routes import router as step_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Career Plan Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(profile_router)
app.include_router(plan_router)
app.include_router(step_router)
app.include_router(notification_router)

settings_snapshot = get_settings()
logger.info("Plan agent model: %s", settings_snapshot.plan_agent_model)
logger.info("OpenAI API key configured: %s", bool(settings_snapshot.openai_api_key))


def _status_for(exc: CareerPlanError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (InvalidTransitionError, ConflictingWriteError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, PlanGenerationTimeout):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, PlanGenerationError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, StorageError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(CareerPlanError)
async def career_plan_error_handler(request: Request, exc: CareerPlanError) -> JSONResponse:
    code = _status_for(exc)
    if code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc), "retryable": exc.retryable})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "retryable": False},
    )


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "plan_reuse_policy": settings.plan_reuse_policy}


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"status": "ok", "pool": get_pool_snapshot(engine)}
