"""Create tracking, scheduling, campaign and analytics tables.

Revision ID: create_mail_tables
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'create_mail_tables'
down_revision = None
branch_labels = None
depends_on = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        'email_tracking',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('recipient', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(998), nullable=False),
        sa.Column('template', sa.String(50), nullable=False),
        sa.Column('campaign_id', sa.Uuid(), nullable=True),
        sa.Column('message_id', sa.String(255), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.Column('opened', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('open_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opened_at', sa.DateTime(), nullable=True),
        sa.Column('clicked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clicked_at', sa.DateTime(), nullable=True),
        sa.Column('links', json_type, nullable=False),
    )
    op.create_index('idx_tracking_campaign', 'email_tracking', ['campaign_id'])
    op.create_index('idx_tracking_sent_at', 'email_tracking', ['sent_at'])

    op.create_table(
        'scheduled_emails',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('to', json_type, nullable=False),
        sa.Column('subject', sa.String(998), nullable=False),
        sa.Column('template', sa.String(50), nullable=False),
        sa.Column('data', json_type, nullable=True),
        sa.Column('tracking_enabled', sa.Boolean(), nullable=True),
        sa.Column('campaign_id', sa.Uuid(), nullable=True),
        sa.Column('attachments', json_type, nullable=True),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('message_ids', json_type, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_scheduled_status_due', 'scheduled_emails', ['status', 'scheduled_for'])

    op.create_table(
        'email_campaigns',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(998), nullable=False),
        sa.Column('template', sa.String(50), nullable=False),
        sa.Column('data', json_type, nullable=True),
        sa.Column('recipients', json_type, nullable=False),
        sa.Column('attachments', json_type, nullable=True),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('processing_started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('total_count', sa.Integer(), nullable=True),
        sa.Column('sent_count', sa.Integer(), nullable=True),
        sa.Column('failed_count', sa.Integer(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_campaigns_status_due', 'email_campaigns', ['status', 'scheduled_for'])

    op.create_table(
        'email_analytics',
        sa.Column('key', sa.String(50), primary_key=True),
        sa.Column('total_opens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'email_daily_stats',
        sa.Column('day', sa.String(10), primary_key=True),
        sa.Column('opens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade() -> None:
    op.drop_table('email_daily_stats')
    op.drop_table('email_analytics')
    op.drop_index('idx_campaigns_status_due', table_name='email_campaigns')
    op.drop_table('email_campaigns')
    op.drop_index('idx_scheduled_status_due', table_name='scheduled_emails')
    op.drop_table('scheduled_emails')
    op.drop_index('idx_tracking_sent_at', table_name='email_tracking')
    op.drop_index('idx_tracking_campaign', table_name='email_tracking')
    op.drop_table('email_tracking')
