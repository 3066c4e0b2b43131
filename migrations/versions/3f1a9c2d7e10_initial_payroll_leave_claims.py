"""initial schema: employees, payroll, leave ledger, claims, document sequences

Revision ID: 3f1a9c2d7e10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, **kw):
    return sa.Column(name, sa.Numeric(14, 2), nullable=False, server_default='0', **kw)


def _days(name):
    return sa.Column(name, sa.Numeric(6, 2), nullable=False, server_default='0')


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('department', sa.String(length=80), nullable=True),
        sa.Column('position', sa.String(length=120), nullable=True),
        sa.Column('date_joined', sa.Date(), nullable=True),
        _money('basic_salary'),
        sa.Column('employment_status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_emp_status', 'employees', ['employment_status'])
    op.create_index('ix_emp_department', 'employees', ['department'])

    period_status = sa.Enum('OPEN', 'COMPLETED', name='payroll_period_status_enum')
    op.create_table(
        'payroll_periods',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=60), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('status', period_status, nullable=False, server_default='OPEN'),
        sa.Column('total_employees', sa.Integer(), nullable=False, server_default='0'),
        _money('total_gross_pay'),
        _money('total_deductions'),
        _money('total_net_pay'),
        _money('total_epf_employee'),
        _money('total_epf_employer'),
        _money('total_socso'),
        _money('total_eis'),
        _money('total_pcb'),
        sa.Column('processed_by', sa.String(length=100), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('year', 'month', name='uq_payroll_period_year_month'),
    )

    op.create_table(
        'payroll_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('period_id', sa.Integer(), sa.ForeignKey('payroll_periods.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        _money('basic_salary'),
        _money('gross_pay'),
        _money('epf_employee'),
        _money('socso_employee'),
        _money('eis_employee'),
        _money('pcb'),
        _money('total_deductions'),
        _money('net_pay'),
        _money('epf_employer'),
        _money('socso_employer'),
        _money('eis_employer'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('period_id', 'employee_id', name='uq_payroll_entry_period_employee'),
    )
    op.create_index('ix_payroll_entries_period_id', 'payroll_entries', ['period_id'])
    op.create_index('ix_payroll_entries_employee_id', 'payroll_entries', ['employee_id'])

    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type', sa.String(length=20), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        _days('entitlement'),
        _days('carried_forward'),
        _days('taken'),
        _days('pending'),
        _days('available'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'leave_type', 'year', name='uq_leave_balance_emp_type_year'),
    )
    op.create_index('ix_leave_balances_employee_id', 'leave_balances', ['employee_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('number_of_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('contact_during_leave', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('approved_by', sa.String(length=100), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approval_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'])
    op.create_index('ix_leave_req_status', 'leave_requests', ['status'])

    op.create_table(
        'claims',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('claim_number', sa.String(length=30), nullable=False, unique=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('claim_type', sa.String(length=20), nullable=False),
        sa.Column('claim_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _money('total_amount'),
        sa.Column('receipt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='DRAFT'),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.String(length=100), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approval_notes', sa.Text(), nullable=True),
        sa.Column('paid_by', sa.String(length=100), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('payment_reference', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_claims_employee_id', 'claims', ['employee_id'])
    op.create_index('ix_claim_status', 'claims', ['status'])
    op.create_index('ix_claim_date', 'claims', ['claim_date'])

    op.create_table(
        'claim_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('claim_id', sa.Integer(), sa.ForeignKey('claims.id', ondelete='CASCADE'), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('category', sa.String(length=40), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _money('amount'),
        _money('gst_amount'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.UniqueConstraint('claim_id', 'line_number', name='uq_claim_line_number'),
    )
    op.create_index('ix_claim_lines_claim_id', 'claim_lines', ['claim_id'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('prefix', sa.String(length=10), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('prefix', 'year', name='uq_document_sequence_prefix_year'),
    )


def downgrade() -> None:
    op.drop_table('document_sequences')
    op.drop_index('ix_claim_lines_claim_id', table_name='claim_lines')
    op.drop_table('claim_lines')
    op.drop_index('ix_claim_date', table_name='claims')
    op.drop_index('ix_claim_status', table_name='claims')
    op.drop_index('ix_claims_employee_id', table_name='claims')
    op.drop_table('claims')
    op.drop_index('ix_leave_req_status', table_name='leave_requests')
    op.drop_index('ix_leave_requests_employee_id', table_name='leave_requests')
    op.drop_table('leave_requests')
    op.drop_index('ix_leave_balances_employee_id', table_name='leave_balances')
    op.drop_table('leave_balances')
    op.drop_index('ix_payroll_entries_employee_id', table_name='payroll_entries')
    op.drop_index('ix_payroll_entries_period_id', table_name='payroll_entries')
    op.drop_table('payroll_entries')
    op.drop_table('payroll_periods')
    sa.Enum(name='payroll_period_status_enum').drop(op.get_bind(), checkfirst=True)
    op.drop_index('ix_emp_department', table_name='employees')
    op.drop_index('ix_emp_status', table_name='employees')
    op.drop_table('employees')
