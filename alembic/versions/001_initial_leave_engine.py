"""Initial leave engine schema

Revision ID: 001_initial_leave_engine
Revises:
Create Date: 2025-01-06

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_leave_engine'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


leave_type_enum = sa.Enum('vacation', 'sick', 'maternity', 'other', name='leavetype')
leave_status_enum = sa.Enum('draft', 'pending', 'approved', 'rejected', 'cancelled', name='leavestatus')
leave_category_enum = sa.Enum('regular', 'medical', 'family', 'extended', name='leavecategory')
approval_tier_enum = sa.Enum('admin', 'management', name='approvaltier')
approval_action_enum = sa.Enum('approve', 'reject', 'cancel', name='approvalaction')
half_year_enum = sa.Enum('H1', 'H2', name='halfyear')
holiday_recurrence_enum = sa.Enum('none', 'annual', 'monthly', 'weekly', name='holidayrecurrence')


def _timestamps():
    # Use SQL-standard CURRENT_TIMESTAMP so it works on SQLite and Postgres
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Skip if tables already exist (e.g. DB created by app create_all())
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if 'leave_requests' in inspector.get_table_names():
        return

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_teams_id'), 'teams', ['id'], unique=False)
    op.create_index(op.f('ix_teams_name'), 'teams', ['name'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='EMPLOYEE'),
        sa.Column('team_id', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_team_id'), 'users', ['team_id'], unique=False)

    op.create_table(
        'company_holidays',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('recurrence', holiday_recurrence_enum, nullable=False, server_default='none'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_company_holidays_id'), 'company_holidays', ['id'], unique=False)
    op.create_index(op.f('ix_company_holidays_date'), 'company_holidays', ['date'], unique=False)
    op.create_index('ix_company_holidays_date_recurrence', 'company_holidays', ['date', 'recurrence'], unique=False)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=True),
        sa.Column('leave_type', leave_type_enum, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', leave_status_enum, nullable=False, server_default='draft'),
        sa.Column('category', leave_category_enum, nullable=True),
        sa.Column('approval_tier', approval_tier_enum, nullable=True),
        sa.Column('requires_management_approval', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('semi_annual_period', sa.String(length=7), nullable=False),
        sa.Column('business_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_weekend_leave', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('committed_period', sa.String(length=7), nullable=True),
        sa.Column('committed_vacation_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('committed_weekend_leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id']),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id']),
        sa.ForeignKeyConstraint(['cancelled_by_id'], ['users.id']),
        sa.CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leave_requests_id'), 'leave_requests', ['id'], unique=False)
    op.create_index(op.f('ix_leave_requests_user_id'), 'leave_requests', ['user_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_team_id'), 'leave_requests', ['team_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_reviewed_by_id'), 'leave_requests', ['reviewed_by_id'], unique=False)
    op.create_index('ix_leave_requests_user_dates', 'leave_requests', ['user_id', 'start_date', 'end_date'], unique=False)
    op.create_index(
        'ix_leave_requests_team_status_dates',
        'leave_requests',
        ['team_id', 'status', 'start_date', 'end_date'],
        unique=False,
    )

    op.create_table(
        'leave_approvals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('leave_request_id', sa.Integer(), nullable=False),
        sa.Column('action_by', sa.Integer(), nullable=False),
        sa.Column('action', approval_action_enum, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('action_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['leave_request_id'], ['leave_requests.id']),
        sa.ForeignKeyConstraint(['action_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leave_approvals_id'), 'leave_approvals', ['id'], unique=False)
    op.create_index(op.f('ix_leave_approvals_leave_request_id'), 'leave_approvals', ['leave_request_id'], unique=False)

    op.create_table(
        'semi_annual_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('period', half_year_enum, nullable=False),
        sa.Column('vacation_days_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weekend_leaves_used', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.UniqueConstraint('user_id', 'year', 'period', name='uq_semi_annual_balances_user_year_period'),
        sa.CheckConstraint('vacation_days_used >= 0', name='check_vacation_days_used_non_negative'),
        sa.CheckConstraint('weekend_leaves_used >= 0', name='check_weekend_leaves_used_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_semi_annual_balances_id'), 'semi_annual_balances', ['id'], unique=False)
    op.create_index(op.f('ix_semi_annual_balances_user_id'), 'semi_annual_balances', ['user_id'], unique=False)
    op.create_index(op.f('ix_semi_annual_balances_year'), 'semi_annual_balances', ['year'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('semi_annual_balances')
    op.drop_table('leave_approvals')
    op.drop_table('leave_requests')
    op.drop_table('company_holidays')
    op.drop_table('users')
    op.drop_table('teams')

    bind = op.get_bind()
    for enum_type in (
        leave_type_enum,
        leave_status_enum,
        leave_category_enum,
        approval_tier_enum,
        approval_action_enum,
        half_year_enum,
        holiday_recurrence_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
