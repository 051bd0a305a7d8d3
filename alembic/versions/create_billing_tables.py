"""create billing tables

Revision ID: 3c9a1f7e2b64
Revises:
Create Date: 2026-02-02 10:14:37

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c9a1f7e2b64'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# SAEnum은 enum 이름(NAME)을 저장한다
membership_status = postgresql.ENUM(
    'PENDING', 'AWAITING_SIGNATURE', 'WAITING_PERIOD', 'CURRENT', 'LAPSED', 'CANCELLED',
    name='membership_status', create_type=False,
)
billing_frequency = postgresql.ENUM('MONTHLY', 'BIANNUAL', 'ANNUAL', name='billing_frequency', create_type=False)
enrollment_fee_status = postgresql.ENUM('UNPAID', 'PAID', 'WAIVED', name='enrollment_fee_status', create_type=False)
payment_type = postgresql.ENUM('ENROLLMENT_FEE', 'DUES', 'BACK_DUES', name='payment_type', create_type=False)
payment_method = postgresql.ENUM('PROCESSOR', 'CASH', 'CHECK', 'ZELLE', 'OTHER', name='payment_method', create_type=False)
payment_status = postgresql.ENUM('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED', name='payment_status', create_type=False)
application_status = postgresql.ENUM('PENDING', 'APPROVED', 'REJECTED', name='application_status', create_type=False)
admin_action = postgresql.ENUM(
    'RECORD_PAYMENT', 'SETTLE_PAYMENT', 'FAIL_PAYMENT', 'SEND_REMINDER',
    'APPROVE_APPLICATION', 'REJECT_APPLICATION', 'OVERRIDE_STATUS',
    'AGREEMENT_SENT', 'AGREEMENT_SIGNED',
    'UPDATE_FEE_SETTINGS', 'CHANGE_FREQUENCY', 'TOGGLE_PLAN',
    name='admin_action', create_type=False,
)

ENUMS = (
    membership_status,
    billing_frequency,
    enrollment_fee_status,
    payment_type,
    payment_method,
    payment_status,
    application_status,
    admin_action,
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        'organizations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False),
        sa.Column('country', sa.String(length=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('platform_fees', sa.JSON(), nullable=True),
        sa.Column('pass_fees_to_member', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('billing_config', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)
    op.create_index('ix_organizations_is_active', 'organizations', ['is_active'])

    op.create_table(
        'invoice_sequences',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('year_month', sa.String(length=6), nullable=False),
        sa.Column('last_sequence', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'year_month', name='uq_invoice_sequences_org_month'),
    )
    op.create_index('ix_invoice_sequences_organization_id', 'invoice_sequences', ['organization_id'])

    op.create_table(
        'plans',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('monthly_price_cents', sa.Integer(), nullable=False),
        sa.Column('biannual_price_cents', sa.Integer(), nullable=False),
        sa.Column('annual_price_cents', sa.Integer(), nullable=False),
        sa.Column('enrollment_fee_cents', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_plans_organization_id', 'plans', ['organization_id'])

    op.create_table(
        'members',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'email', name='uq_members_org_email'),
    )
    op.create_index('ix_members_organization_id', 'members', ['organization_id'])
    op.create_index('ix_members_email', 'members', ['email'])

    op.create_table(
        'memberships',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('member_id', sa.UUID(), nullable=False),
        sa.Column('plan_id', sa.UUID(), nullable=False),
        sa.Column('status', membership_status, nullable=False),
        sa.Column('billing_frequency', billing_frequency, nullable=False),
        sa.Column('billing_anniversary_day', sa.Integer(), nullable=True),
        sa.Column('bill_on_month_end', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('paid_months', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('next_payment_due', sa.Date(), nullable=True),
        sa.Column('last_payment_date', sa.Date(), nullable=True),
        sa.Column('join_date', sa.Date(), nullable=True),
        sa.Column('eligible_date', sa.Date(), nullable=True),
        sa.Column('cancelled_date', sa.Date(), nullable=True),
        sa.Column('enrollment_fee_status', enrollment_fee_status, nullable=False),
        sa.Column('agreement_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('agreement_signed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processor_customer_id', sa.String(length=100), nullable=True),
        sa.Column('processor_subscription_id', sa.String(length=100), nullable=True),
        sa.Column('processor_subscription_status', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id'),
    )
    op.create_index('ix_memberships_organization_id', 'memberships', ['organization_id'])
    op.create_index('ix_memberships_plan_id', 'memberships', ['plan_id'])
    op.create_index('ix_memberships_status', 'memberships', ['status'])
    op.create_index('ix_memberships_next_payment_due', 'memberships', ['next_payment_due'])

    op.create_table(
        'payments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('membership_id', sa.UUID(), nullable=False),
        sa.Column('member_id', sa.UUID(), nullable=False),
        sa.Column('type', payment_type, nullable=False),
        sa.Column('method', payment_method, nullable=True),
        sa.Column('status', payment_status, nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('processor_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('platform_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_charged_cents', sa.Integer(), nullable=False),
        sa.Column('net_amount_cents', sa.Integer(), nullable=False),
        sa.Column('months_credited', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('invoice_number', sa.String(length=32), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('period_start', sa.Date(), nullable=True),
        sa.Column('period_end', sa.Date(), nullable=True),
        sa.Column('period_label', sa.String(length=50), nullable=True),
        sa.Column('processor_payment_id', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('recorded_by', sa.String(length=100), nullable=True),
        sa.Column('reminder_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminders_paused', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('requires_review', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'invoice_number', name='uq_payments_org_invoice_number'),
    )
    op.create_index('ix_payments_organization_id', 'payments', ['organization_id'])
    op.create_index('ix_payments_membership_id', 'payments', ['membership_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])
    op.create_index('ix_payments_due_date_reminders', 'payments', ['due_date', 'reminder_count'])

    op.create_table(
        'returning_applications',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('plan_id', sa.UUID(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('billing_frequency', billing_frequency, nullable=False),
        sa.Column('paid_months', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('enrollment_fee_status', enrollment_fee_status, nullable=False),
        sa.Column('status', application_status, nullable=False),
        sa.Column('reviewed_by', sa.String(length=100), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        sa.Column('member_id', sa.UUID(), nullable=True),
        sa.Column('membership_id', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id']),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_returning_applications_organization_id', 'returning_applications', ['organization_id'])
    op.create_index('ix_returning_applications_status', 'returning_applications', ['status'])

    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('actor_id', sa.String(length=100), nullable=False),
        sa.Column('action', admin_action, nullable=False),
        sa.Column('target_type', sa.String(length=30), nullable=False),
        sa.Column('target_id', sa.UUID(), nullable=True),
        sa.Column('before_status', sa.String(length=30), nullable=True),
        sa.Column('after_status', sa.String(length=30), nullable=True),
        sa.Column('detail', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_action_logs_organization_id', 'admin_action_logs', ['organization_id'])


def downgrade() -> None:
    op.drop_index('ix_admin_action_logs_organization_id', table_name='admin_action_logs')
    op.drop_table('admin_action_logs')

    op.drop_index('ix_returning_applications_status', table_name='returning_applications')
    op.drop_index('ix_returning_applications_organization_id', table_name='returning_applications')
    op.drop_table('returning_applications')

    op.drop_index('ix_payments_due_date_reminders', table_name='payments')
    op.drop_index('ix_payments_status', table_name='payments')
    op.drop_index('ix_payments_membership_id', table_name='payments')
    op.drop_index('ix_payments_organization_id', table_name='payments')
    op.drop_table('payments')

    op.drop_index('ix_memberships_next_payment_due', table_name='memberships')
    op.drop_index('ix_memberships_status', table_name='memberships')
    op.drop_index('ix_memberships_plan_id', table_name='memberships')
    op.drop_index('ix_memberships_organization_id', table_name='memberships')
    op.drop_table('memberships')

    op.drop_index('ix_members_email', table_name='members')
    op.drop_index('ix_members_organization_id', table_name='members')
    op.drop_table('members')

    op.drop_index('ix_plans_organization_id', table_name='plans')
    op.drop_table('plans')

    op.drop_index('ix_invoice_sequences_organization_id', table_name='invoice_sequences')
    op.drop_table('invoice_sequences')

    op.drop_index('ix_organizations_is_active', table_name='organizations')
    op.drop_index('ix_organizations_slug', table_name='organizations')
    op.drop_table('organizations')

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
