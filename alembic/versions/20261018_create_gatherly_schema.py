"""Create events, calendars, subscriptions and invitations

Revision ID: 3f7a9c1e5b2d
Revises:
Create Date: 2026-10-18

This migration creates the relational store schema:
- events: relational mirror of the document store events collection
- calendars: calendars with trigger-maintained subscriber/event counters
- calendar_subscriptions: unique (calendar_id, user_id)
- invitations: unique (event_id, email) and unique tracking_token

It also installs the counter triggers for the connected dialect (SQLite or
PostgreSQL).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from src.models.base import GUID, get_json_type
from src.models.triggers import drops_for, triggers_for


# revision identifiers, used by Alembic.
revision: str = '3f7a9c1e5b2d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('id', GUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table('events',
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('location', sa.String(length=500), nullable=False),
        sa.Column('city', sa.String(length=255), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('cover_image', sa.Text(), nullable=False),
        sa.Column('tags', get_json_type(), nullable=False),
        sa.Column('organizer_id', GUID(), nullable=False),
        sa.Column('organizer_name', sa.String(length=255), nullable=False),
        sa.Column('calendar_id', GUID(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('require_stake', sa.Boolean(), nullable=False),
        sa.Column('stake_amount', sa.Float(), nullable=True),
        sa.Column('require_approval', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('visibility', sa.String(length=20), nullable=False),
        sa.Column('social_links', get_json_type(), nullable=False),
        sa.Column('agenda', get_json_type(), nullable=False),
        sa.Column('hosts', get_json_type(), nullable=False),
        sa.Column('about', get_json_type(), nullable=False),
        sa.Column('presented_by', sa.String(length=255), nullable=True),
        sa.Column('registration_questions', get_json_type(), nullable=False),
        sa.Column('attendee_count', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('events', schema=None) as batch_op:
        batch_op.create_index('idx_event_organizer', ['organizer_id'], unique=False)
        batch_op.create_index('idx_event_calendar_date', ['calendar_id', 'date'], unique=False)
        batch_op.create_index('idx_event_created', ['created_at'], unique=False)

    op.create_table('calendars',
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(length=32), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('cover_url', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=500), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_global', sa.Boolean(), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False),
        sa.Column('subscriber_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('event_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    with op.batch_alter_table('calendars', schema=None) as batch_op:
        batch_op.create_index('idx_calendar_owner', ['owner_id'], unique=False)
        batch_op.create_index('idx_calendar_subscribers', ['subscriber_count'], unique=False)

    op.create_table('calendar_subscriptions',
        sa.Column('calendar_id', GUID(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('notify_new_events', sa.Boolean(), nullable=False),
        sa.Column('notify_reminders', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('calendar_id', 'user_id', name='uq_subscription_calendar_user')
    )
    with op.batch_alter_table('calendar_subscriptions', schema=None) as batch_op:
        batch_op.create_index('idx_subscription_user', ['user_id'], unique=False)

    op.create_table('invitations',
        sa.Column('event_id', GUID(), nullable=False),
        sa.Column('calendar_id', GUID(), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('recipient_name', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('invited_by', GUID(), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('tracking_token', sa.String(length=64), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', get_json_type(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tracking_token'),
        sa.UniqueConstraint('event_id', 'email', name='uq_invitation_event_email')
    )
    with op.batch_alter_table('invitations', schema=None) as batch_op:
        batch_op.create_index('idx_invitation_event_status', ['event_id', 'status'], unique=False)
        batch_op.create_index('idx_invitation_email', ['email'], unique=False)

    for statement in triggers_for(op.get_bind().dialect.name):
        op.execute(statement)


def downgrade() -> None:
    for statement in drops_for(op.get_bind().dialect.name):
        op.execute(statement)

    with op.batch_alter_table('invitations', schema=None) as batch_op:
        batch_op.drop_index('idx_invitation_email')
        batch_op.drop_index('idx_invitation_event_status')
    op.drop_table('invitations')

    with op.batch_alter_table('calendar_subscriptions', schema=None) as batch_op:
        batch_op.drop_index('idx_subscription_user')
    op.drop_table('calendar_subscriptions')

    with op.batch_alter_table('calendars', schema=None) as batch_op:
        batch_op.drop_index('idx_calendar_subscribers')
        batch_op.drop_index('idx_calendar_owner')
    op.drop_table('calendars')

    with op.batch_alter_table('events', schema=None) as batch_op:
        batch_op.drop_index('idx_event_created')
        batch_op.drop_index('idx_event_calendar_date')
        batch_op.drop_index('idx_event_organizer')
    op.drop_table('events')
