"""Health check utilities for ThesisFlow."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(db: Session) -> ComponentHealth:
    """Check database connectivity.

    Args:
        db: Database session

    Returns:
        ComponentHealth: Database health status
    """
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2)
        )
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {str(e)}"
        )


def check_presence_health(tracker) -> ComponentHealth:
    """Report whether the idle-editor cleanup thread is alive."""
    if tracker is None:
        return ComponentHealth(status=HealthStatus.DEGRADED, message="Presence tracker not configured")
    if not tracker.cleanup_running:
        return ComponentHealth(status=HealthStatus.DEGRADED, message="Idle editor cleanup is not running")
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=f"Presence tracker OK: {tracker.total_editors()} editor(s) on {tracker.tracked_documents()} document(s)",
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall system health from component health.

    Any UNHEALTHY component makes the system UNHEALTHY; otherwise any
    DEGRADED component makes it DEGRADED.
    """
    statuses = [comp.status for comp in components.values()]

    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
