"""initial_retail_ops_schema

Revision ID: 0001
Revises:
Create Date: 2026-01-10 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    # Stored as VARCHAR, matching native_enum=False on the models
    return sa.Enum(*values, name=name, native_enum=False)


ROLE = ('EMPLOYEE', 'ASSISTANT_MANAGER', 'MANAGER', 'ADMIN', 'SUPER_ADMIN')
TEAM = ('A', 'B')
TARGET_ROLE = ('MANAGER', 'ASSISTANT_MANAGER', 'HIGH_JEWELLERY_EXPERT', 'SENIOR_SALES_ADVISOR', 'SALES_ADVISOR')
DEFAULT_ROLE_WEIGHTS = (
    ('MANAGER', 0.5),
    ('ASSISTANT_MANAGER', 0.75),
    ('HIGH_JEWELLERY_EXPERT', 2.0),
    ('SENIOR_SALES_ADVISOR', 1.5),
    ('SALES_ADVISOR', 1.0),
)
SHIFT = ('MORNING', 'EVENING', 'NONE', 'COVER_RASHID_AM', 'COVER_RASHID_PM')
LEAVE_STATUS = ('DRAFT', 'SUBMITTED', 'APPROVED_MANAGER', 'APPROVED_ADMIN', 'REJECTED', 'CANCELLED')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'boutiques',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('region_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_boutiques_code', 'boutiques', ['code'], unique=True)

    op.create_table(
        'employees',
        sa.Column('emp_id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('team', _enum('team_enum', *TEAM), nullable=False),
        sa.Column('position', sa.String(length=40), nullable=True),
        sa.Column('sales_target_role', _enum('sales_target_role_enum', *TARGET_ROLE), nullable=True),
        sa.Column('weekly_off_day', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_system_only', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_employees_boutique_id', 'employees', ['boutique_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('role', _enum('role_enum', *ROLE), nullable=False),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=True),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=True, unique=True),
        sa.Column('disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_boutique_id', 'users', ['boutique_id'])

    op.create_table(
        'user_boutique_memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('can_access', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_manage', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('user_id', 'boutique_id', name='uq_membership_user_boutique'),
    )
    op.create_index('ix_user_boutique_memberships_user_id', 'user_boutique_memberships', ['user_id'])
    op.create_index('ix_user_boutique_memberships_boutique_id', 'user_boutique_memberships', ['boutique_id'])

    op.create_table(
        'employee_team_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('team', _enum('team_enum', *TEAM), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('created_by_user_id', sa.String(length=64), nullable=True),
        sa.UniqueConstraint('emp_id', 'effective_from', name='uq_team_assignment_emp_from'),
    )
    op.create_index('ix_employee_team_assignments_emp_id', 'employee_team_assignments', ['emp_id'])

    op.create_table(
        'shift_overrides',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('override_shift', _enum('shift_type_enum', *SHIFT), nullable=False),
        sa.Column('source_boutique_id', sa.String(length=64), nullable=True),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_user_id', sa.String(length=64), nullable=True),
        sa.UniqueConstraint('boutique_id', 'emp_id', 'date', name='uq_shift_override_boutique_emp_date'),
    )
    op.create_index('ix_shift_overrides_boutique_id', 'shift_overrides', ['boutique_id'])
    op.create_index('ix_shift_overrides_emp_id', 'shift_overrides', ['emp_id'])
    op.create_index('ix_shift_overrides_date', 'shift_overrides', ['date'])

    op.create_table(
        'coverage_rules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=True),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('min_am', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_pm', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('boutique_id', 'day_of_week', name='uq_coverage_rule_boutique_dow'),
    )
    op.create_index('ix_coverage_rules_boutique_id', 'coverage_rules', ['boutique_id'])

    op.create_table(
        'schedule_locks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('scope_type', _enum('lock_scope_enum', 'DAY', 'WEEK'), nullable=False),
        sa.Column('scope_value', sa.String(length=10), nullable=False),
        sa.Column('locked_by_user_id', sa.String(length=64), nullable=False),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('revoked_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_schedule_locks_boutique_id', 'schedule_locks', ['boutique_id'])
    op.create_index('ix_schedule_locks_scope_value', 'schedule_locks', ['scope_value'])

    op.create_table(
        'schedule_week_statuses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('status', _enum('week_status_enum', 'DRAFT', 'APPROVED'), nullable=False),
        sa.Column('approved_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('boutique_id', 'week_start', name='uq_week_status_boutique_week'),
    )
    op.create_index('ix_schedule_week_statuses_boutique_id', 'schedule_week_statuses', ['boutique_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=False),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('leave_type', sa.String(length=32), nullable=False, server_default='ANNUAL'),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('status', _enum('leave_status_enum', *LEAVE_STATUS), nullable=False),
        sa.Column('created_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('escalated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('escalated_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('decided_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_leave_requests_user_id', 'leave_requests', ['user_id'])
    op.create_index('ix_leave_requests_emp_id', 'leave_requests', ['emp_id'])
    op.create_index('ix_leave_requests_boutique_id', 'leave_requests', ['boutique_id'])
    op.create_index('ix_leave_requests_status', 'leave_requests', ['status'])

    op.create_table(
        'sales_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('date_key', sa.String(length=10), nullable=False),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('source', _enum('sales_source_enum', 'LEDGER', 'IMPORT', 'MANUAL', 'HISTORICAL'), nullable=False),
        sa.Column('created_by_user_id', sa.String(length=64), nullable=True),
        sa.UniqueConstraint('boutique_id', 'date_key', 'user_id', name='uq_sales_entry_boutique_day_user'),
    )
    op.create_index('ix_sales_entries_user_id', 'sales_entries', ['user_id'])
    op.create_index('ix_sales_entries_boutique_id', 'sales_entries', ['boutique_id'])
    op.create_index('ix_sales_entries_date', 'sales_entries', ['date'])
    op.create_index('ix_sales_entries_month', 'sales_entries', ['month'])

    op.create_table(
        'boutique_sales_summaries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_sar', sa.Integer(), nullable=False),
        sa.Column('status', _enum('summary_status_enum', 'DRAFT', 'LOCKED'), nullable=False),
        sa.Column('locked_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('boutique_id', 'date', name='uq_sales_summary_boutique_date'),
    )
    op.create_index('ix_boutique_sales_summaries_boutique_id', 'boutique_sales_summaries', ['boutique_id'])

    op.create_table(
        'boutique_sales_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('summary_id', sa.Integer(), sa.ForeignKey('boutique_sales_summaries.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('employee_id', sa.String(length=64), nullable=False),
        sa.Column('amount_sar', sa.Integer(), nullable=False),
        sa.UniqueConstraint('summary_id', 'employee_id', name='uq_sales_line_summary_employee'),
    )
    op.create_index('ix_boutique_sales_lines_summary_id', 'boutique_sales_lines', ['summary_id'])

    op.create_table(
        'boutique_monthly_targets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('updated_by_user_id', sa.String(length=64), nullable=True),
        sa.UniqueConstraint('boutique_id', 'month', name='uq_boutique_target_month'),
    )
    op.create_index('ix_boutique_monthly_targets_boutique_id', 'boutique_monthly_targets', ['boutique_id'])

    op.create_table(
        'employee_monthly_targets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('emp_id', sa.String(length=64), nullable=False),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('role_at_generation', _enum('sales_target_role_enum', *TARGET_ROLE), nullable=False),
        sa.Column('weight_at_generation', sa.Float(), nullable=False),
        sa.Column('effective_weight_at_generation', sa.Float(), nullable=False),
        sa.Column('scheduled_days_in_month', sa.Integer(), nullable=False),
        sa.Column('leave_days_in_month', sa.Integer(), nullable=False),
        sa.Column('presence_factor', sa.Float(), nullable=False),
        sa.Column('distribution_method', sa.String(length=64), nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('generated_by_user_id', sa.String(length=64), nullable=True),
        sa.UniqueConstraint('user_id', 'month', name='uq_employee_target_user_month'),
    )
    op.create_index('ix_employee_monthly_targets_boutique_id', 'employee_monthly_targets', ['boutique_id'])
    op.create_index('ix_employee_monthly_targets_user_id', 'employee_monthly_targets', ['user_id'])
    op.create_index('ix_employee_monthly_targets_month', 'employee_monthly_targets', ['month'])

    role_weights = op.create_table(
        'sales_target_role_weights',
        sa.Column('role', _enum('sales_target_role_enum', *TARGET_ROLE), primary_key=True),
        sa.Column('weight', sa.Float(), nullable=False),
        sa.Column('updated_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.bulk_insert(role_weights, [{'role': role, 'weight': weight} for role, weight in DEFAULT_ROLE_WEIGHTS])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_boutique_id', 'tasks', ['boutique_id'])

    op.create_table(
        'task_schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', _enum('task_schedule_type_enum', 'DAILY', 'WEEKLY', 'MONTHLY'), nullable=False),
        sa.Column('weekly_days', sa.JSON(), nullable=True),
        sa.Column('monthly_day', sa.Integer(), nullable=True),
        sa.Column('is_last_day', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_task_schedules_task_id', 'task_schedules', ['task_id'])

    op.create_table(
        'task_plans',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False,
                  unique=True),
        sa.Column('primary_emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=False),
        sa.Column('backup1_emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=True),
        sa.Column('backup2_emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=True),
    )

    op.create_table(
        'inventory_zones',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_inventory_zones_boutique_id', 'inventory_zones', ['boutique_id'])

    op.create_table(
        'inventory_zone_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('inventory_zones.id', ondelete='CASCADE'), nullable=False),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('assigned_by_user_id', sa.String(length=64), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_inventory_zone_assignments_zone_id', 'inventory_zone_assignments', ['zone_id'])
    op.create_index('ix_inventory_zone_assignments_emp_id', 'inventory_zone_assignments', ['emp_id'])

    op.create_table(
        'inventory_rotation_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_inventory_rotation_members_boutique_id', 'inventory_rotation_members', ['boutique_id'])
    op.create_index('ix_inventory_rotation_members_emp_id', 'inventory_rotation_members', ['emp_id'])

    op.create_table(
        'inventory_daily_waiting_queue',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('boutique_id', sa.String(length=64), sa.ForeignKey('boutiques.id'), nullable=False),
        sa.Column('emp_id', sa.String(length=64), sa.ForeignKey('employees.emp_id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=200), nullable=True),
    )
    op.create_index('ix_inventory_daily_waiting_queue_boutique_id', 'inventory_daily_waiting_queue', ['boutique_id'])
    op.create_index('ix_inventory_daily_waiting_queue_emp_id', 'inventory_daily_waiting_queue', ['emp_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('module', sa.String(length=64), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=128), nullable=True),
        sa.Column('boutique_id', sa.String(length=64), nullable=True),
        sa.Column('before_json', sa.JSON(), nullable=True),
        sa.Column('after_json', sa.JSON(), nullable=True),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_boutique_id', 'audit_logs', ['boutique_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'audit_logs',
        'inventory_daily_waiting_queue',
        'inventory_rotation_members',
        'inventory_zone_assignments',
        'inventory_zones',
        'task_plans',
        'task_schedules',
        'tasks',
        'sales_target_role_weights',
        'employee_monthly_targets',
        'boutique_monthly_targets',
        'boutique_sales_lines',
        'boutique_sales_summaries',
        'sales_entries',
        'leave_requests',
        'schedule_week_statuses',
        'schedule_locks',
        'coverage_rules',
        'shift_overrides',
        'employee_team_assignments',
        'user_boutique_memberships',
        'users',
        'employees',
        'boutiques',
    ):
        op.drop_table(table)
