"""Bring the career plan schema up to date before the API starts serving.

Deploy hooks call this once per release. It waits for the database to accept
connections, then hands off to Alembic.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

LOGGER = logging.getLogger("careerplan.migrations")
BACKEND_ROOT = Path(__file__).resolve().parent.parent
URL_PLACEHOLDER = "%(CAREERPLAN_DATABASE_URL)s"


@dataclass(frozen=True)
class ReadinessPolicy:
    timeout: float = float(os.getenv("CAREERPLAN_DB_MIGRATION_TIMEOUT", "60"))
    poll_interval: float = float(os.getenv("CAREERPLAN_DB_MIGRATION_POLL_INTERVAL", "3"))


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    defaults = ReadinessPolicy()
    parser = argparse.ArgumentParser(description="Upgrade the career plan database schema.")
    parser.add_argument("--revision", default=os.getenv("CAREERPLAN_DB_MIGRATION_REVISION", "head"))
    parser.add_argument("--timeout", type=float, default=defaults.timeout, help="Readiness wait in seconds.")
    parser.add_argument("--poll-interval", type=float, default=defaults.poll_interval)
    parser.add_argument("--config", default=str(BACKEND_ROOT / "alembic.ini"))
    parser.add_argument("--sql", action="store_true", help="Print SQL instead of applying it.")
    return parser.parse_args(argv)


def load_config(config_path: str) -> Config:
    config = Config(config_path)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config) -> str:
    configured = config.get_main_option("sqlalchemy.url")
    if configured and configured != URL_PLACEHOLDER:
        return configured
    env_url = os.getenv("CAREERPLAN_DATABASE_URL")
    if not env_url:
        raise RuntimeError("CAREERPLAN_DATABASE_URL must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", env_url)
    return env_url


def wait_for_database(database_url: str, policy: ReadinessPolicy) -> int:
    """Poll with ``SELECT 1`` until it succeeds. Returns the number of attempts made."""
    engine = create_engine(database_url, future=True, pool_pre_ping=True)
    deadline = time.monotonic() + policy.timeout
    attempts = 0
    last_error: Optional[Exception] = None
    try:
        while True:
            attempts += 1
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                LOGGER.info("Database reachable after %s attempt(s).", attempts)
                return attempts
            except OperationalError as exc:
                last_error = exc
                LOGGER.warning("Database not ready (attempt %s): %s", attempts, exc)
            except SQLAlchemyError as exc:
                raise RuntimeError(f"Database readiness check failed: {exc}") from exc
            if time.monotonic() >= deadline:
                break
            time.sleep(policy.poll_interval)
    finally:
        engine.dispose()
    raise RuntimeError(f"Database did not become ready within {policy.timeout:g}s.") from last_error


def run_migrations(
    revision: str,
    *,
    policy: Optional[ReadinessPolicy] = None,
    config: Optional[Config] = None,
    sql: bool = False,
) -> None:
    config = config or load_config(str(BACKEND_ROOT / "alembic.ini"))
    database_url = resolve_database_url(config)
    if sql:
        command.upgrade(config, revision, sql=True)
        return
    policy = policy or ReadinessPolicy()
    wait_for_database(database_url, policy)
    LOGGER.info("Upgrading schema to %s", revision)
    command.upgrade(config, revision)
    LOGGER.info("Schema is at %s.", revision)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("CAREERPLAN_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        run_migrations(
            args.revision,
            policy=ReadinessPolicy(timeout=args.timeout, poll_interval=args.poll_interval),
            config=load_config(args.config),
            sql=args.sql,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
