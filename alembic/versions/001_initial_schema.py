"""Initial schema - target memories, sessions, sets, safety checks

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-18 00:00:00.000000

Creates the session core schema:
- target_memories: Externally owned memories targeted by sessions
- user_safety_profiles: Baseline risk per user
- therapy_sessions: Session lifecycle, measurements, phase archive
- stimulation_sets: Sets with feedback, one open set per session
- safety_checks: Append-only assessment audit trail
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_STATES = "lifecycle_state IN ('preparing', 'in_progress', 'paused')"


def upgrade() -> None:
    # Create target_memories table
    op.create_table(
        'target_memories',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_target_memories_user_id', 'target_memories', ['user_id'])
    
    # Create user_safety_profiles table
    op.create_table(
        'user_safety_profiles',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('risk_level', sa.String(20), nullable=False, server_default='low'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )
    
    # Create therapy_sessions table
    op.create_table(
        'therapy_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('target_memory_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('phase', sa.String(30), nullable=False, server_default='preparation'),
        sa.Column('lifecycle_state', sa.String(20), nullable=False, server_default='preparing'),
        sa.Column('initial_sud', sa.Integer(), nullable=False),
        sa.Column('initial_voc', sa.Integer(), nullable=False),
        sa.Column('current_sud', sa.Integer(), nullable=False),
        sa.Column('current_voc', sa.Integer(), nullable=False),
        sa.Column('final_sud', sa.Integer(), nullable=True),
        sa.Column('final_voc', sa.Integer(), nullable=True),
        sa.Column('current_set_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_set_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('phase_started_at', sa.DateTime(), nullable=True),
        sa.Column('phase_history', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('preparation_notes', sa.Text(), nullable=True),
        sa.Column('pause_reason', sa.Text(), nullable=True),
        sa.Column('completion_notes', sa.Text(), nullable=True),
        sa.Column('emergency_reason', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('total_duration_seconds', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['target_memory_id'], ['target_memories.id']),
    )
    op.create_index('ix_therapy_sessions_lifecycle_state', 'therapy_sessions', ['lifecycle_state'])
    op.create_index('ix_therapy_sessions_user_created', 'therapy_sessions', ['user_id', 'created_at'])
    # At most one non-terminal session per user
    op.create_index(
        'uq_therapy_sessions_active_user',
        'therapy_sessions',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATES),
    )
    
    # Create stimulation_sets table
    op.create_table(
        'stimulation_sets',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('phase', sa.String(30), nullable=False),
        sa.Column('phase_set_number', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('stimulation_settings', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('user_feedback', postgresql.JSONB(), nullable=True),
        sa.Column('agent_observations', postgresql.JSONB(), nullable=True),
        sa.Column('interrupted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['session_id'], ['therapy_sessions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('session_id', 'set_number', name='uq_stimulation_sets_number'),
    )
    op.create_index('ix_stimulation_sets_session_id', 'stimulation_sets', ['session_id'])
    op.create_index(
        'uq_stimulation_sets_open',
        'stimulation_sets',
        ['session_id'],
        unique=True,
        postgresql_where=sa.text('end_time IS NULL'),
    )
    
    # Create safety_checks table
    op.create_table(
        'safety_checks',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('check_type', sa.String(20), nullable=False),
        sa.Column('risk_level', sa.String(20), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('measurements_snapshot', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('intervention', postgresql.JSONB(), nullable=True),
        sa.Column('indicators', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['session_id'], ['therapy_sessions.id'], ondelete='CASCADE'),
    )
    op.create_index(
        'ix_safety_checks_session_timestamp',
        'safety_checks',
        ['session_id', 'timestamp'],
    )


def downgrade() -> None:
    op.drop_table('safety_checks')
    op.drop_table('stimulation_sets')
    op.drop_table('therapy_sessions')
    op.drop_table('user_safety_profiles')
    op.drop_table('target_memories')
