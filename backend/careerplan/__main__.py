"""Run the career plan API with uvicorn: ``python -m careerplan``."""

from __future__ import annotations

import logging
import os

import uvicorn


def _resolve_host() -> str:
    return os.getenv("HOST", os.getenv("CAREERPLAN_HOST", "0.0.0.0"))


def _resolve_port() -> int:
    value = os.getenv("PORT") or os.getenv("CAREERPLAN_PORT") or "8000"
    try:
        return int(value)
    except ValueError:
        return 8000


def main() -> None:
    host = _resolve_host()
    port = _resolve_port()
    logging.getLogger(__name__).info("Starting career plan API on %s:%s", host, port)
    uvicorn.run("careerplan.main:app", host=host, port=port, log_level="info", timeout_graceful_shutdown=60)


if __name__ == "__main__":
    main()
