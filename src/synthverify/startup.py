"""
Startup dependency checks for the SynthVerify API.

Validates critical dependencies before the application starts serving requests.
Fails fast with clear, actionable error messages when requirements aren't met.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text

from synthverify.config import settings
from synthverify.db.connection import SessionLocal, init_db

logger = logging.getLogger(__name__)


@dataclass
class StartupMetrics:
    """Metrics collected during startup checks."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    database_check_ms: Optional[float] = None
    schema_check_ms: Optional[float] = None
    checks_passed: bool = False


startup_metrics = StartupMetrics(started_at=datetime.now(timezone.utc))


class StartupCheckError(Exception):
    """Raised when a critical startup check fails."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        error_msg = f"\n{'=' * 70}\nSTARTUP CHECK FAILED\n{'=' * 70}\n\n{self.message}\n"
        if self.hint:
            error_msg += f"\nHint: {self.hint}\n"
        error_msg += f"{'=' * 70}\n"
        return error_msg


def check_database_connection() -> None:
    """
    Verify the database behind the item and session stores is reachable.

    Raises:
        StartupCheckError: If database connection fails
    """
    try:
        with SessionLocal() as session:
            result = session.execute(text("SELECT 1")).scalar()
            if result != 1:
                raise StartupCheckError(
                    "Database query returned unexpected result",
                    "Database may be corrupted or misconfigured",
                )
    except StartupCheckError:
        raise
    except Exception as e:
        error_str = str(e).lower()
        if "unable to open" in error_str or "no such file" in error_str:
            hint = "Check that the directory in DATABASE_URL exists and is writable"
        elif "connection refused" in error_str or "could not connect" in error_str:
            hint = "Start the database server or fix DATABASE_URL"
        else:
            hint = "Check DATABASE_URL in your .env file"
        raise StartupCheckError(f"Cannot connect to database: {e}", hint) from e


def check_schema() -> None:
    """
    Create missing tables.

    Raises:
        StartupCheckError: If the schema cannot be created
    """
    try:
        init_db()
    except Exception as e:
        raise StartupCheckError(
            f"Failed to create database tables: {e}",
            "Check that the database user may create tables",
        ) from e


def run_all_startup_checks() -> None:
    """
    Run every startup check, recording timings in ``startup_metrics``.

    Raises:
        StartupCheckError: If any check fails
    """
    start = time.perf_counter()

    check_start = time.perf_counter()
    check_database_connection()
    startup_metrics.database_check_ms = (time.perf_counter() - check_start) * 1000
    logger.info(f"✓ Database connection OK ({startup_metrics.database_check_ms:.1f}ms)")

    check_start = time.perf_counter()
    check_schema()
    startup_metrics.schema_check_ms = (time.perf_counter() - check_start) * 1000
    logger.info(f"✓ Database schema OK ({startup_metrics.schema_check_ms:.1f}ms)")

    if not settings.backing_store_enabled:
        logger.warning("Backing store disabled: item saves and rollbacks will be refused")

    startup_metrics.completed_at = datetime.now(timezone.utc)
    startup_metrics.total_duration_ms = (time.perf_counter() - start) * 1000
    startup_metrics.checks_passed = True
