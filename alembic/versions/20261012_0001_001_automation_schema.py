"""Automation schema - domain entities, dispatch ledger, audit log, queue and state tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-12

This migration creates:
- users, events, event_attendees (domain entities the automation reads)
- automation_dispatch (idempotency ledger)
- automation_audit (append-only audit log)
- queue_items (automation job queues)
- key_value_state (scanner watermarks)
- api_rate_limit (fixed-window rate limiter)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy persists Enum members by name
NOTIFICATION_TYPES = (
    'SALES_OPEN', 'REMINDER_24H', 'REMINDER_2H', 'WAITLIST_INVITE',
    'EVENT_CANCELLED', 'EXPORT_READY_CSV', 'EXPORT_READY_ICS', 'WEEKLY_CATEGORY_DIGEST',
)
DISPATCH_STATUSES = ('SCHEDULED', 'SENT', 'FAILED', 'SKIPPED')
ATTENDEE_STATUSES = ('CONFIRMED', 'WAITLIST', 'CANCELLED')


def upgrade() -> None:
    notification_type_enum = sa.Enum(*NOTIFICATION_TYPES, name='notificationtype')
    dispatch_status_enum = sa.Enum(*DISPATCH_STATUSES, name='dispatchstatus')
    attendee_status_enum = sa.Enum(*ATTENDEE_STATUSES, name='attendeestatus')

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, server_default=''),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('followed_categories', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('state_override', sa.String(20), nullable=True),
        sa.Column('sales_start', sa.DateTime(), nullable=True),
        sa.Column('sales_end', sa.DateTime(), nullable=True),
        sa.Column('event_start', sa.DateTime(), nullable=True),
        sa.Column('event_end', sa.DateTime(), nullable=True),
        sa.Column('venue_name', sa.String(255), nullable=True),
        sa.Column('enable_reminders', sa.Boolean(), nullable=True),
        sa.Column('waitlist_auto_invite', sa.Boolean(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_events_owner_id', 'events', ['owner_id'])
    op.create_index('ix_events_category', 'events', ['category'])
    op.create_index('ix_events_published', 'events', ['published'])
    op.create_index('ix_events_sales_start', 'events', ['sales_start'])
    op.create_index('ix_events_event_start', 'events', ['event_start'])

    op.create_table(
        'event_attendees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('email', sa.String(255), nullable=False, server_default=''),
        sa.Column('status', attendee_status_enum, nullable=False, server_default='CONFIRMED'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('promoted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_event_attendees_event_id', 'event_attendees', ['event_id'])
    op.create_index('ix_event_attendees_email', 'event_attendees', ['email'])
    op.create_index('ix_event_attendees_status', 'event_attendees', ['status'])
    op.create_index('ix_event_attendees_created_at', 'event_attendees', ['created_at'])

    # Ledger: no foreign key on event_id, records outlive their events
    op.create_table(
        'automation_dispatch',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), nullable=True),
        sa.Column('notification_type', notification_type_enum, nullable=False),
        sa.Column('recipient_hash', sa.String(64), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False),
        sa.Column('status', dispatch_status_enum, nullable=False, server_default='SCHEDULED'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_automation_dispatch_event_id', 'automation_dispatch', ['event_id'])
    op.create_index('ix_automation_dispatch_notification_type', 'automation_dispatch', ['notification_type'])
    op.create_index('ix_automation_dispatch_scheduled_for', 'automation_dispatch', ['scheduled_for'])
    op.create_index('ix_automation_dispatch_status', 'automation_dispatch', ['status'])
    op.create_index(
        'ix_automation_dispatch_lookup',
        'automation_dispatch',
        ['event_id', 'notification_type', 'recipient_hash', 'status'],
    )

    op.create_table(
        'automation_audit',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('notification_type', notification_type_enum, nullable=True),
        sa.Column('recipient_hash', sa.String(64), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_automation_audit_event_id', 'automation_audit', ['event_id'])
    op.create_index('ix_automation_audit_action', 'automation_audit', ['action'])
    op.create_index('ix_automation_audit_created_at', 'automation_audit', ['created_at'])

    op.create_table(
        'queue_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('queue_name', sa.String(64), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_queue_items_queue_name', 'queue_items', ['queue_name'])
    op.create_index('ix_queue_items_claimed_at', 'queue_items', ['claimed_at'])

    op.create_table(
        'key_value_state',
        sa.Column('name', sa.String(128), primary_key=True),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'api_rate_limit',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('identifier', sa.String(255), nullable=False),
        sa.Column('timestamp', sa.Integer(), nullable=False),
    )
    op.create_index('ix_api_rate_limit_identifier', 'api_rate_limit', ['identifier'])
    op.create_index('ix_api_rate_limit_timestamp', 'api_rate_limit', ['timestamp'])


def downgrade() -> None:
    op.drop_table('api_rate_limit')
    op.drop_table('key_value_state')
    op.drop_table('queue_items')
    op.drop_table('automation_audit')
    op.drop_table('automation_dispatch')
    op.drop_table('event_attendees')
    op.drop_table('events')
    op.drop_table('users')

    sa.Enum(name='attendeestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='dispatchstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='notificationtype').drop(op.get_bind(), checkfirst=True)
