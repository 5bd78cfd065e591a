"""credentials_and_presence

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=200), nullable=False),
    )
    op.create_index('ix_events_slug', 'events', ['slug'], unique=True)

    op.create_table(
        'attendees',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('registration_code', sa.String(length=20), nullable=False, unique=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('checked_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checked_in_by', sa.String(length=100), nullable=True),
        sa.Column('checked_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checked_out_by', sa.String(length=100), nullable=True),
        sa.CheckConstraint(
            'checked_out_at IS NULL OR (checked_in_at IS NOT NULL AND checked_out_at >= checked_in_at)',
            name='ck_attendees_checkout_after_checkin',
        ),
    )
    op.create_index('idx_attendees_event', 'attendees', ['event_id'])

    # One live credential per attendee; reissue deletes and re-inserts
    op.create_table(
        'credentials',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('attendee_id', sa.Integer(), sa.ForeignKey('attendees.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('image_path', sa.String(length=255), nullable=False),
        sa.Column('is_placeholder', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table('credentials')
    op.drop_index('idx_attendees_event', table_name='attendees')
    op.drop_table('attendees')
    op.drop_index('ix_events_slug', table_name='events')
    op.drop_table('events')
