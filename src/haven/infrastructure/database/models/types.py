"""
Portable Column Types

JSON columns use JSONB on PostgreSQL and plain JSON elsewhere.
"""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

JSONType = JSON().with_variant(JSONB(), "postgresql")

# Lifecycle states that count as an active session
ACTIVE_STATES_SQL = "lifecycle_state IN ('preparing', 'in_progress', 'paused')"
