"""
Initial schema

Revision ID: 1f3c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:31.418204

Creates the tenant, organization, RBAC, hours bank, inventory, catalog and
notification tables. The RBAC rows are seeded separately with
`python scripts/manage_cli.py seed-rbac`.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '1f3c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)]
    if with_updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False))
    return columns


def _org_unit_columns():
    return [
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    ]


def upgrade() -> None:
    # === Tenants and organization ===
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_clients'),
    )
    op.create_index('ix_clients_name', 'clients', ['name'], unique=True)
    op.create_index('ix_clients_is_active', 'clients', ['is_active'])

    op.create_table(
        'directions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        *_org_unit_columns(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_directions_client_id_clients'),
        sa.PrimaryKeyConstraint('id', name='pk_directions'),
    )
    op.create_index('ix_directions_client_id', 'directions', ['client_id'])
    op.create_index('ix_directions_name', 'directions', ['name'])

    op.create_table(
        'departments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('direction_id', sa.Uuid(), nullable=True),
        *_org_unit_columns(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_departments_client_id_clients'),
        sa.ForeignKeyConstraint(['direction_id'], ['directions.id'], name='fk_departments_direction_id_directions'),
        sa.PrimaryKeyConstraint('id', name='pk_departments'),
    )
    op.create_index('ix_departments_client_id', 'departments', ['client_id'])
    op.create_index('ix_departments_direction_id', 'departments', ['direction_id'])
    op.create_index('ix_departments_name', 'departments', ['name'])

    op.create_table(
        'sections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('department_id', sa.Uuid(), nullable=False),
        *_org_unit_columns(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_sections_client_id_clients'),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], name='fk_sections_department_id_departments'),
        sa.PrimaryKeyConstraint('id', name='pk_sections'),
    )
    op.create_index('ix_sections_client_id', 'sections', ['client_id'])
    op.create_index('ix_sections_department_id', 'sections', ['department_id'])
    op.create_index('ix_sections_name', 'sections', ['name'])

    # === Users and RBAC ===
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('direction_id', sa.Uuid(), nullable=True),
        sa.Column('department_id', sa.Uuid(), nullable=True),
        sa.Column('section_id', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_users_client_id_clients'),
        sa.ForeignKeyConstraint(['direction_id'], ['directions.id'], name='fk_users_direction_id_directions'),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], name='fk_users_department_id_departments'),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id'], name='fk_users_section_id_sections'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_client_id', 'users', ['client_id'])
    op.create_index('ix_users_direction_id', 'users', ['direction_id'])
    op.create_index('ix_users_department_id', 'users', ['department_id'])
    op.create_index('ix_users_section_id', 'users', ['section_id'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    op.create_table(
        'roles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_system', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_roles'),
    )
    op.create_index('ix_roles_name', 'roles', ['name'], unique=True)

    op.create_table(
        'permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('resource', sa.String(length=100), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id', name='pk_permissions'),
        sa.UniqueConstraint('resource', 'action', name='uq_permissions_resource_action'),
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'], unique=True)
    op.create_index('ix_permissions_resource', 'permissions', ['resource'])

    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Uuid(), nullable=False),
        sa.Column('permission_id', sa.Uuid(), nullable=False),
        sa.Column('granted_by', sa.Uuid(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], name='fk_role_permissions_role_id_roles', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], name='fk_role_permissions_permission_id_permissions', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['granted_by'], ['users.id'], name='fk_role_permissions_granted_by_users', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('role_id', 'permission_id', name='pk_role_permissions'),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('urgency', sa.Integer(), nullable=False),
        sa.Column('reference_id', sa.Uuid(), nullable=True),
        sa.Column('reference_table', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_notifications_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_urgency', 'notifications', ['urgency'])
    op.create_index('ix_notifications_reference_id', 'notifications', ['reference_id'])

    # === Hours banks ===
    op.create_table(
        'hours_banks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('total_hours', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('used_hours', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('allow_negative_balance', sa.Boolean(), nullable=False),
        sa.Column('min_balance', sa.Numeric(precision=18, scale=6), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('package_type', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('total_hours >= 0', name='ck_hours_banks_total_hours_non_negative'),
        sa.CheckConstraint('used_hours >= 0', name='ck_hours_banks_used_hours_non_negative'),
        sa.CheckConstraint('min_balance IS NULL OR min_balance <= 0', name='ck_hours_banks_min_balance_non_positive'),
        sa.CheckConstraint(
            "(allow_negative_balance = false AND used_hours <= total_hours) OR "
            "(allow_negative_balance = true AND (min_balance IS NULL OR total_hours - used_hours >= min_balance))",
            name='ck_hours_banks_balance_floor',
        ),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_hours_banks_client_id_clients'),
        sa.PrimaryKeyConstraint('id', name='pk_hours_banks'),
    )
    op.create_index('ix_hours_banks_client_id', 'hours_banks', ['client_id'])
    op.create_index('ix_hours_banks_end_date', 'hours_banks', ['end_date'])
    op.create_index('ix_hours_banks_is_active', 'hours_banks', ['is_active'])

    op.create_table(
        'hours_bank_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('bank_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('hours', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('ticket_id', sa.Uuid(), nullable=True),
        sa.Column('performed_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("type IN ('addition', 'consumption')", name='ck_hours_bank_transactions_type_valid'),
        sa.CheckConstraint('hours > 0', name='ck_hours_bank_transactions_hours_positive'),
        sa.ForeignKeyConstraint(['bank_id'], ['hours_banks.id'], name='fk_hours_bank_transactions_bank_id_hours_banks', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['performed_by_id'], ['users.id'], name='fk_hours_bank_transactions_performed_by_id_users', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_hours_bank_transactions'),
    )
    op.create_index('ix_hours_bank_transactions_bank_id', 'hours_bank_transactions', ['bank_id'])
    op.create_index('ix_hours_bank_transactions_type', 'hours_bank_transactions', ['type'])
    op.create_index('ix_hours_bank_transactions_ticket_id', 'hours_bank_transactions', ['ticket_id'])
    op.create_index('ix_hours_bank_transactions_created_at', 'hours_bank_transactions', ['created_at'])

    # Append-only ledger
    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_hours_transaction_changes()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'hours_bank_transactions is append-only';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_hours_bank_transactions_append_only
        BEFORE UPDATE OR DELETE ON hours_bank_transactions
        FOR EACH ROW WHEN (pg_trigger_depth() = 0)
        EXECUTE FUNCTION prevent_hours_transaction_changes();
    """)

    # === Inventory ===
    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('asset_tag', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('manufacturer', sa.String(length=100), nullable=True),
        sa.Column('model', sa.String(length=100), nullable=True),
        sa.Column('serial_number', sa.String(length=100), nullable=True),
        sa.Column('hostname', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('hardware_info', sa.JSON(), nullable=False),
        sa.Column('software_info', sa.JSON(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('purchase_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('warranty_expires', sa.Date(), nullable=True),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_assets_client_id_clients'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_assets_user_id_users', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_assets'),
        sa.UniqueConstraint('asset_tag', name='uq_assets_asset_tag'),
    )
    op.create_index('ix_assets_client_id', 'assets', ['client_id'])
    op.create_index('ix_assets_user_id', 'assets', ['user_id'])
    op.create_index('ix_assets_name', 'assets', ['name'])
    op.create_index('ix_assets_type', 'assets', ['type'])
    op.create_index('ix_assets_status', 'assets', ['status'])
    op.create_index('ix_assets_serial_number', 'assets', ['serial_number'])

    op.create_table(
        'licenses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        sa.Column('product', sa.String(length=255), nullable=True),
        sa.Column('version', sa.String(length=50), nullable=True),
        sa.Column('license_key', sa.Text(), nullable=True),
        sa.Column('license_type', sa.String(length=50), nullable=False),
        sa.Column('total_seats', sa.Integer(), nullable=False),
        sa.Column('used_seats', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('auto_renew', sa.Boolean(), nullable=False),
        sa.Column('purchase_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('renewal_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('billing_cycle', sa.String(length=20), nullable=True),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('total_seats >= 0', name='ck_licenses_total_seats_non_negative'),
        sa.CheckConstraint('used_seats >= 0 AND used_seats <= total_seats', name='ck_licenses_used_seats_within_total'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_licenses_client_id_clients'),
        sa.PrimaryKeyConstraint('id', name='pk_licenses'),
    )
    op.create_index('ix_licenses_client_id', 'licenses', ['client_id'])
    op.create_index('ix_licenses_name', 'licenses', ['name'])
    op.create_index('ix_licenses_license_type', 'licenses', ['license_type'])
    op.create_index('ix_licenses_expiry_date', 'licenses', ['expiry_date'])
    op.create_index('ix_licenses_status', 'licenses', ['status'])

    # === Service catalog ===
    op.create_table(
        'catalog_categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('parent_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(length=50), nullable=True),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('default_direction_id', sa.Uuid(), nullable=True),
        sa.Column('default_department_id', sa.Uuid(), nullable=True),
        sa.Column('default_section_id', sa.Uuid(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_id'], ['catalog_categories.id'], name='fk_catalog_categories_parent_id_catalog_categories'),
        sa.ForeignKeyConstraint(['default_direction_id'], ['directions.id'], name='fk_catalog_categories_default_direction_id_directions'),
        sa.ForeignKeyConstraint(['default_department_id'], ['departments.id'], name='fk_catalog_categories_default_department_id_departments'),
        sa.ForeignKeyConstraint(['default_section_id'], ['sections.id'], name='fk_catalog_categories_default_section_id_sections'),
        sa.PrimaryKeyConstraint('id', name='pk_catalog_categories'),
    )
    op.create_index('ix_catalog_categories_parent_id', 'catalog_categories', ['parent_id'])
    op.create_index('ix_catalog_categories_name', 'catalog_categories', ['name'])

    op.create_table(
        'catalog_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('short_description', sa.String(length=500), nullable=True),
        sa.Column('full_description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(length=50), nullable=True),
        sa.Column('item_type', sa.String(length=20), nullable=False),
        sa.Column('default_priority', sa.String(length=20), nullable=False),
        sa.Column('requires_approval', sa.Boolean(), nullable=False),
        sa.Column('skip_approval_for_incidents', sa.Boolean(), nullable=False),
        sa.Column('default_direction_id', sa.Uuid(), nullable=True),
        sa.Column('default_department_id', sa.Uuid(), nullable=True),
        sa.Column('default_section_id', sa.Uuid(), nullable=True),
        sa.Column('estimated_cost', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('estimated_delivery_time', sa.Integer(), nullable=True),
        sa.Column('keywords', sa.JSON(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['catalog_categories.id'], name='fk_catalog_items_category_id_catalog_categories'),
        sa.ForeignKeyConstraint(['default_direction_id'], ['directions.id'], name='fk_catalog_items_default_direction_id_directions'),
        sa.ForeignKeyConstraint(['default_department_id'], ['departments.id'], name='fk_catalog_items_default_department_id_departments'),
        sa.ForeignKeyConstraint(['default_section_id'], ['sections.id'], name='fk_catalog_items_default_section_id_sections'),
        sa.PrimaryKeyConstraint('id', name='pk_catalog_items'),
    )
    op.create_index('ix_catalog_items_category_id', 'catalog_items', ['category_id'])
    op.create_index('ix_catalog_items_name', 'catalog_items', ['name'])
    op.create_index('ix_catalog_items_item_type', 'catalog_items', ['item_type'])
    op.create_index('ix_catalog_items_is_active', 'catalog_items', ['is_active'])


def downgrade() -> None:
    op.drop_table('catalog_items')
    op.drop_table('catalog_categories')
    op.drop_table('licenses')
    op.drop_table('assets')
    op.execute("DROP TRIGGER IF EXISTS trg_hours_bank_transactions_append_only ON hours_bank_transactions;")
    op.execute("DROP FUNCTION IF EXISTS prevent_hours_transaction_changes();")
    op.drop_table('hours_bank_transactions')
    op.drop_table('hours_banks')
    op.drop_table('notifications')
    op.drop_table('role_permissions')
    op.drop_table('permissions')
    op.drop_table('roles')
    op.drop_table('users')
    op.drop_table('sections')
    op.drop_table('departments')
    op.drop_table('directions')
    op.drop_table('clients')
