"""Calls and providers

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'calls',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('call_sid', sa.String(), nullable=False),
        sa.Column('direction', sa.String(), nullable=False, server_default='inbound'),
        sa.Column('caller_number', sa.String(), nullable=True),
        sa.Column('callee_number', sa.String(), nullable=True),
        sa.Column('caller_country', sa.String(length=2), nullable=True),
        sa.Column('language', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='in-progress'),
        sa.Column('session_state', sa.String(), nullable=False, server_default='started'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('transcript_confidence', sa.Float(), nullable=True),
        sa.Column('conversation', sa.Text(), nullable=True),
        sa.Column('full_transcript', sa.Text(), nullable=True),
        sa.Column('transcription_status', sa.String(), nullable=True),
        sa.Column('turn_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('empty_turn_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('intent', sa.String(), nullable=False, server_default='unknown'),
        sa.Column('priority', sa.String(), nullable=False, server_default='low'),
        sa.Column('emergency_detected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('emergency_severity', sa.String(), nullable=False, server_default='none'),
        sa.Column('emergency_keywords', sa.JSON(), nullable=True),
        sa.Column('ai_response', sa.Text(), nullable=True),
        sa.Column('system_context', sa.Text(), nullable=True),
        sa.Column('recording_sid', sa.String(), nullable=True),
        sa.Column('recording_url', sa.String(), nullable=True),
        sa.Column('recording_duration', sa.Integer(), nullable=True),
        sa.Column('initiated_by', sa.String(), nullable=False, server_default='system'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_calls_id'), 'calls', ['id'], unique=False)
    op.create_index(op.f('ix_calls_call_sid'), 'calls', ['call_sid'], unique=True)
    op.create_index(op.f('ix_calls_status'), 'calls', ['status'], unique=False)
    op.create_index(op.f('ix_calls_intent'), 'calls', ['intent'], unique=False)
    op.create_index(op.f('ix_calls_priority'), 'calls', ['priority'], unique=False)
    op.create_index(op.f('ix_calls_emergency_detected'), 'calls', ['emergency_detected'], unique=False)

    op.create_table(
        'providers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('specialization', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_providers_id'), 'providers', ['id'], unique=False)
    op.create_index(op.f('ix_providers_is_active'), 'providers', ['is_active'], unique=False)
    # Bounding-box lookups filter on both coordinates
    op.create_index('ix_providers_lat_lon', 'providers', ['latitude', 'longitude'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_providers_lat_lon', table_name='providers')
    op.drop_table('providers')
    op.drop_table('calls')
