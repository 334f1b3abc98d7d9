"""Metrics infrastructure package."""

from haven.infrastructure.metrics.prometheus_metrics import (
    # Lifecycle metrics
    LIFECYCLE_TRANSITIONS_TOTAL,
    PHASE_ADVANCES_TOTAL,
    ACTIVE_SESSIONS,
    SESSION_DURATION,
    # Set metrics
    SETS_TOTAL,
    SET_DURATION,
    # Safety metrics
    SAFETY_ASSESSMENTS_TOTAL,
    FAIL_SAFE_ASSESSMENTS_TOTAL,
    SAFETY_BLOCKS_TOTAL,
    EMERGENCY_STOPS_TOTAL,
    SAFETY_CHECK_RECORD_FAILURES,
    # Guidance metrics
    GUIDANCE_REQUESTS_TOTAL,
    GUIDANCE_LATENCY,
    # Helpers
    track_guidance_request,
    track_transition,
    track_session_created,
    track_session_finished,
    track_phase_advance,
    track_set_closed,
    track_assessment,
    track_safety_block,
    track_emergency_stop,
    track_record_failure,
    render_metrics,
    update_system_info,
)

__all__ = [
    "LIFECYCLE_TRANSITIONS_TOTAL",
    "PHASE_ADVANCES_TOTAL",
    "ACTIVE_SESSIONS",
    "SESSION_DURATION",
    "SETS_TOTAL",
    "SET_DURATION",
    "SAFETY_ASSESSMENTS_TOTAL",
    "FAIL_SAFE_ASSESSMENTS_TOTAL",
    "SAFETY_BLOCKS_TOTAL",
    "EMERGENCY_STOPS_TOTAL",
    "SAFETY_CHECK_RECORD_FAILURES",
    "GUIDANCE_REQUESTS_TOTAL",
    "GUIDANCE_LATENCY",
    "track_guidance_request",
    "track_transition",
    "track_session_created",
    "track_session_finished",
    "track_phase_advance",
    "track_set_closed",
    "track_assessment",
    "track_safety_block",
    "track_emergency_stop",
    "track_record_failure",
    "render_metrics",
    "update_system_info",
]
