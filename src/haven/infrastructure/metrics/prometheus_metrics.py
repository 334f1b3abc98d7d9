"""
Prometheus Metrics

Process metrics for HAVEN session core observability.
render_metrics() produces the text exposition for whatever
surface the host application exposes for scraping.

ARCHITECTURE: Metrics are decoupled from business logic.
Only increment/observe; never block on metrics operations.
"""

import time
from functools import wraps
from typing import Callable

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)

from haven.config.logging_config import get_logger

logger = get_logger(__name__)

# =============================================================================
# SESSION LIFECYCLE METRICS
# =============================================================================

LIFECYCLE_TRANSITIONS_TOTAL = Counter(
    "haven_lifecycle_transitions_total",
    "Session lifecycle transitions",
    ["from_state", "to_state"],
)

PHASE_ADVANCES_TOTAL = Counter(
    "haven_phase_advances_total",
    "Phase advances by target phase",
    ["phase"],
)

ACTIVE_SESSIONS = Gauge(
    "haven_active_sessions",
    "Sessions created in this process and not yet terminal",
)

SESSION_DURATION = Histogram(
    "haven_session_duration_seconds",
    "Duration of sessions that reached a terminal state",
    ["outcome"],  # completed, emergency_stopped
    buckets=[300, 900, 1800, 3600, 5400, 7200, 10800],  # 5min to 3h
)

# =============================================================================
# SET METRICS
# =============================================================================

SETS_TOTAL = Counter(
    "haven_stimulation_sets_total",
    "Stimulation sets closed",
    ["outcome"],  # feedback, interrupted
)

SET_DURATION = Histogram(
    "haven_stimulation_set_duration_seconds",
    "Duration of stimulation sets",
    buckets=[5, 15, 30, 45, 60, 120, 300],
)

# =============================================================================
# SAFETY METRICS
# =============================================================================

SAFETY_ASSESSMENTS_TOTAL = Counter(
    "haven_safety_assessments_total",
    "Safety assessments by outcome",
    ["risk_level", "action", "check_type"],
)

FAIL_SAFE_ASSESSMENTS_TOTAL = Counter(
    "haven_fail_safe_assessments_total",
    "Assessments that fell back to the fail-safe result",
)

SAFETY_BLOCKS_TOTAL = Counter(
    "haven_safety_blocks_total",
    "Operations refused by the safety engine",
    ["operation"],  # start, resume, start_set
)

EMERGENCY_STOPS_TOTAL = Counter(
    "haven_emergency_stops_total",
    "Emergency stops committed",
)

SAFETY_CHECK_RECORD_FAILURES = Counter(
    "haven_safety_check_record_failures_total",
    "Safety checks that could not be persisted",
)

# =============================================================================
# GUIDANCE PROVIDER METRICS
# =============================================================================

GUIDANCE_REQUESTS_TOTAL = Counter(
    "haven_guidance_requests_total",
    "Guidance text requests by provider",
    ["provider", "status"],  # success, error
)

GUIDANCE_LATENCY = Histogram(
    "haven_guidance_latency_seconds",
    "Guidance text provider latency",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# =============================================================================
# SYSTEM INFO
# =============================================================================

SYSTEM_INFO = Info(
    "haven_system",
    "HAVEN session core information",
)

SYSTEM_INFO.info({
    "version": "0.1.0",
    "environment": "development",  # Updated at runtime
})


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def track_guidance_request(provider: str) -> Callable:
    """Decorator to track guidance provider request metrics."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                GUIDANCE_REQUESTS_TOTAL.labels(provider=provider, status="success").inc()
                return result
            except Exception:
                GUIDANCE_REQUESTS_TOTAL.labels(provider=provider, status="error").inc()
                raise
            finally:
                duration = time.time() - start_time
                GUIDANCE_LATENCY.labels(provider=provider).observe(duration)
        return wrapper
    return decorator


def track_transition(from_state: str, to_state: str) -> None:
    """Record a lifecycle transition."""
    LIFECYCLE_TRANSITIONS_TOTAL.labels(from_state=from_state, to_state=to_state).inc()


def track_session_created() -> None:
    ACTIVE_SESSIONS.inc()


def track_session_finished(outcome: str, duration_seconds: float) -> None:
    """Record a session reaching a terminal state."""
    ACTIVE_SESSIONS.dec()
    SESSION_DURATION.labels(outcome=outcome).observe(duration_seconds)


def track_phase_advance(phase: str) -> None:
    PHASE_ADVANCES_TOTAL.labels(phase=phase).inc()


def track_set_closed(duration_seconds: float, interrupted: bool) -> None:
    """Record a closed stimulation set."""
    SETS_TOTAL.labels(outcome="interrupted" if interrupted else "feedback").inc()
    SET_DURATION.observe(duration_seconds)


def track_assessment(risk_level: str, action: str, check_type: str, fail_safe: bool = False) -> None:
    """Record a safety assessment outcome."""
    SAFETY_ASSESSMENTS_TOTAL.labels(
        risk_level=risk_level,
        action=action,
        check_type=check_type,
    ).inc()
    if fail_safe:
        FAIL_SAFE_ASSESSMENTS_TOTAL.inc()


def track_safety_block(operation: str) -> None:
    SAFETY_BLOCKS_TOTAL.labels(operation=operation).inc()


def track_emergency_stop() -> None:
    EMERGENCY_STOPS_TOTAL.inc()


def track_record_failure() -> None:
    SAFETY_CHECK_RECORD_FAILURES.inc()


# =============================================================================
# EXPOSITION
# =============================================================================

def render_metrics() -> tuple[bytes, str]:
    """
    Render metrics in Prometheus text format.
    
    Returns:
        (payload, content_type) for the host's scrape endpoint
    """
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


def update_system_info(environment: str, version: str = "0.1.0") -> None:
    """Update system info metric with current environment."""
    SYSTEM_INFO.info({
        "version": version,
        "environment": environment,
    })
