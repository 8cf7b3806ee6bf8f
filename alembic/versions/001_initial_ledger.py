"""Initial ledger schema

Revision ID: 001_initial_ledger
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '001_initial_ledger'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _money(name, nullable=False):
    if nullable:
        return sa.Column(name, sa.Numeric(18, 2), nullable=True)
    return sa.Column(name, sa.Numeric(18, 2), nullable=False, server_default='0')


def upgrade() -> None:
    # Enums are stored as their values in VARCHAR(32) columns

    # Reference data
    op.create_table(
        'currencies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(10), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('rate_to_base', sa.Numeric(18, 6), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('default_commission_rate', sa.Numeric(7, 4), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False, server_default='AED'),
        sa.Column('account_number', sa.String(100), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('period', sa.String(10), nullable=False, server_default=''),
        sa.Column('next_value', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.UniqueConstraint('name', 'period', name='uq_document_sequences_name_period'),
    )

    # Chart of Accounts
    op.create_table(
        'chart_of_accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('account_type', sa.String(32), nullable=False),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('chart_of_accounts.id'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        _money('debit_balance'),
        _money('credit_balance'),
        _money('balance'),
        *_timestamps(),
    )
    op.create_index('idx_chart_of_accounts_parent', 'chart_of_accounts', ['parent_id'])

    # Bookings
    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('booking_number', sa.String(50), nullable=False, unique=True),
        sa.Column('service_type', sa.String(32), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('supplier_id', sa.Uuid(), nullable=True),
        _money('cost_amount'),
        sa.Column('cost_currency', sa.String(10), nullable=False, server_default='AED'),
        _money('cost_in_base'),
        _money('sale_amount'),
        sa.Column('sale_currency', sa.String(10), nullable=False, server_default='AED'),
        _money('sale_in_base'),
        sa.Column('is_uae_booking', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('vat_applicable', sa.Boolean(), nullable=False, server_default=sa.true()),
        _money('net_before_vat'),
        _money('vat_amount'),
        _money('total_with_vat'),
        _money('gross_profit'),
        _money('net_profit'),
        sa.Column('booking_agent_id', sa.Uuid(), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('agent_commission_rate', sa.Numeric(7, 4), nullable=False, server_default='0'),
        _money('agent_commission_amount'),
        sa.Column('customer_service_id', sa.Uuid(), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('cs_commission_rate', sa.Numeric(7, 4), nullable=False, server_default='0'),
        _money('cs_commission_amount'),
        _money('total_commission'),
        sa.Column('status', sa.String(32), nullable=False, server_default='confirmed'),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('travel_date', sa.Date(), nullable=True),
        sa.Column('return_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('refund_of_id', sa.Uuid(), sa.ForeignKey('bookings.id'), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_bookings_status', 'bookings', ['status'])
    op.create_index('idx_bookings_refund_of', 'bookings', ['refund_of_id'])

    op.create_table(
        'booking_supplier_lines',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('booking_id', sa.Uuid(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('supplier_id', sa.Uuid(), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        _money('cost_amount'),
        sa.Column('cost_currency', sa.String(10), nullable=False, server_default='AED'),
        _money('cost_in_base'),
        _money('sale_amount', nullable=True),
        sa.Column('sale_currency', sa.String(10), nullable=True),
        _money('sale_in_base', nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_booking_supplier_lines_booking', 'booking_supplier_lines', ['booking_id'])

    # Accounts Receivable
    op.create_table(
        'invoices',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('invoice_number', sa.String(100), nullable=False, unique=True),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('booking_id', sa.Uuid(), sa.ForeignKey('bookings.id'), nullable=False, unique=True),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='unpaid'),
        sa.Column('currency', sa.String(10), nullable=False, server_default='AED'),
        _money('subtotal'),
        _money('vat_amount'),
        _money('total_amount'),
        _money('paid_amount'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'credit_notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('invoice_id', sa.Uuid(), sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_id', sa.Uuid(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        _money('amount'),
        sa.Column('reason', sa.String(500), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'receipts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('receipt_number', sa.String(100), nullable=False, unique=True),
        sa.Column('receipt_date', sa.Date(), nullable=False),
        _money('amount'),
        sa.Column('payment_method', sa.String(32), nullable=False),
        sa.Column('bank_account_id', sa.Uuid(), sa.ForeignKey('bank_accounts.id'), nullable=True),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='completed'),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('invoice_id', sa.Uuid(), sa.ForeignKey('invoices.id'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_receipts_invoice', 'receipts', ['invoice_id'])

    # Journal Entries
    op.create_table(
        'journal_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('entry_number', sa.String(50), nullable=False, unique=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('debit_account_id', sa.Uuid(), sa.ForeignKey('chart_of_accounts.id'), nullable=False),
        sa.Column('credit_account_id', sa.Uuid(), sa.ForeignKey('chart_of_accounts.id'), nullable=False),
        _money('amount'),
        sa.Column('transaction_type', sa.String(32), nullable=False),
        sa.Column('source_module', sa.String(32), nullable=False),
        sa.Column('source_id', sa.Uuid(), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='draft'),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.Column('reverses_entry_id', sa.Uuid(), sa.ForeignKey('journal_entries.id'), nullable=True),
        sa.Column('reversed_by_id', sa.Uuid(), sa.ForeignKey('journal_entries.id'), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='check_amount_non_negative'),
    )
    op.create_index('idx_journal_entries_source', 'journal_entries', ['source_id', 'transaction_type'])

    # Notifications
    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(256), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False, server_default='info'),
        sa.Column('reference_type', sa.String(50), nullable=True),
        sa.Column('reference_id', sa.Uuid(), nullable=True),
        sa.Column('reference_code', sa.String(100), nullable=True),
        sa.Column('amount', sa.String(50), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_notifications_reference', 'notifications', ['reference_type', 'reference_id'])


def downgrade() -> None:
    op.drop_index('idx_notifications_reference', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('idx_journal_entries_source', table_name='journal_entries')
    op.drop_table('journal_entries')
    op.drop_index('idx_receipts_invoice', table_name='receipts')
    op.drop_table('receipts')
    op.drop_table('credit_notes')
    op.drop_table('invoices')
    op.drop_index('idx_booking_supplier_lines_booking', table_name='booking_supplier_lines')
    op.drop_table('booking_supplier_lines')
    op.drop_index('idx_bookings_refund_of', table_name='bookings')
    op.drop_index('idx_bookings_status', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('idx_chart_of_accounts_parent', table_name='chart_of_accounts')
    op.drop_table('chart_of_accounts')
    op.drop_table('document_sequences')
    op.drop_table('bank_accounts')
    op.drop_table('employees')
    op.drop_table('currencies')
