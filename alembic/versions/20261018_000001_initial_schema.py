"""Initial schema for the listing and commission rule engine

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # === USERS ===
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('referrer_id', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_users_role'), 'users', ['role'])
    op.create_index(op.f('ix_users_referrer_id'), 'users', ['referrer_id'])

    # === SYSTEM SETTINGS ===
    op.create_table(
        'system_settings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_system_settings_key'), 'system_settings', ['key'], unique=True)

    # === LISTING SEQUENCES ===
    op.create_table(
        'listing_sequences',
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('last_value', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('name')
    )

    # === LISTINGS ===
    op.create_table(
        'listings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('listing_number', sa.BigInteger(), nullable=False),
        sa.Column('slug', sa.String(length=300), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('listing_type', sa.String(length=20), nullable=False),
        sa.Column('property_type', sa.String(length=50), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
        sa.Column('created_by_id', sa.Uuid(), nullable=False),
        sa.Column('has_promoter', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('promoter_id', sa.Uuid(), nullable=True),
        sa.Column('agent_commission_pct', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('promoter_commission_pct', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('company_commission_pct', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('recruiter_bonus_issued', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('agent_commission_pct >= 0', name='ck_listings_agent_pct_non_negative'),
        sa.CheckConstraint('promoter_commission_pct >= 0', name='ck_listings_promoter_pct_non_negative'),
        sa.CheckConstraint('company_commission_pct >= 0', name='ck_listings_company_pct_non_negative'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['promoter_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_listings_listing_number'), 'listings', ['listing_number'], unique=True)
    op.create_index(op.f('ix_listings_status'), 'listings', ['status'])
    op.create_index(op.f('ix_listings_created_by_id'), 'listings', ['created_by_id'])

    # === INQUIRIES ===
    op.create_table(
        'inquiries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('listing_id', sa.Uuid(), nullable=False),
        sa.Column('assigned_agent_id', sa.Uuid(), nullable=False),
        sa.Column('client_name', sa.String(length=200), nullable=False),
        sa.Column('client_email', sa.String(length=255), nullable=True),
        sa.Column('client_phone', sa.String(length=50), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('first_agent_response_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_notified_state', sa.String(length=30), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['assigned_agent_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_inquiries_listing_id'), 'inquiries', ['listing_id'])
    op.create_index(op.f('ix_inquiries_assigned_agent_id'), 'inquiries', ['assigned_agent_id'])
    op.create_index('idx_inquiries_open', 'inquiries', ['created_at'],
                    postgresql_where=sa.text('first_agent_response_at IS NULL AND archived_at IS NULL'))

    # === NOTIFICATIONS ===
    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(length=500), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_recipient_id'), 'notifications', ['recipient_id'])
    op.create_index('idx_notifications_recipient_unread', 'notifications', ['recipient_id', 'is_read'],
                    postgresql_where=sa.text('is_read = false'))

    # === RECRUITER BONUS RECORDS ===
    op.create_table(
        'recruiter_bonus_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('listing_id', sa.Uuid(), nullable=False),
        sa.Column('referrer_id', sa.Uuid(), nullable=False),
        sa.Column('referred_user_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('qualifying_status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['referred_user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('listing_id', 'referrer_id', name='uq_recruiter_bonus_listing_referrer')
    )
    op.create_index(op.f('ix_recruiter_bonus_records_listing_id'), 'recruiter_bonus_records', ['listing_id'])
    op.create_index(op.f('ix_recruiter_bonus_records_referrer_id'), 'recruiter_bonus_records', ['referrer_id'])

    op.create_table(
        'commissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('listing_id', sa.Uuid(), nullable=False),
        sa.Column('earner_id', sa.Uuid(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('amount', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('qualifying_status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['earner_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('listing_id', 'role', name='uq_commissions_listing_role')
    )
    op.create_index(op.f('ix_commissions_listing_id'), 'commissions', ['listing_id'])
    op.create_index(op.f('ix_commissions_earner_id'), 'commissions', ['earner_id'])


def downgrade() -> None:
    op.drop_table('commissions')
    op.drop_table('recruiter_bonus_records')
    op.drop_table('notifications')
    op.drop_table('inquiries')
    op.drop_table('listings')
    op.drop_table('listing_sequences')
    op.drop_table('system_settings')
    op.drop_table('users')
