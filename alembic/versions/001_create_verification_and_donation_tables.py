"""Create verification, need-request and donation tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

# Enum columns are VARCHAR + CHECK so new values never need ALTER TYPE
REGISTRATION_STATUSES = ('pending', 'approved', 'rejected')
ORGANIZATION_TYPES = ('NGO', 'Trust')
CATEGORIES = ('food', 'clothing', 'medical', 'education', 'other')
URGENCY_LEVELS = ('low', 'medium', 'high')
REQUEST_STATUSES = ('pending', 'approved', 'fulfilled', 'rejected')
DONATION_STATUSES = ('pending', 'assigned')
DONATION_UNITS = ('kg', 'items', 'packets', 'boxes')
NOTIFICATION_CATEGORIES = (
    'registration_approved',
    'registration_rejected',
    'request_approved',
    'request_rejected',
    'request_fulfilled',
    'donation_assigned',
)
AUDIT_ACTIONS = (
    'registration.submit',
    'registration.approve',
    'registration.reject',
    'request.create',
    'request.status_change',
    'donation.create',
    'donation.assign',
)

TABLES_WITH_UPDATED_AT = (
    'organization_registrations',
    'need_requests',
    'donations',
    'notifications',
    'audit_events',
)


def _in(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Organization registrations (verification records)
    op.create_table(
        'organization_registrations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('organization_id', sa.String(128), nullable=False),
        sa.Column('organization_name', sa.String(100), nullable=False),
        sa.Column('organization_type', sa.String(32), nullable=False, server_default='NGO'),
        sa.Column('registration_number', sa.String(64), nullable=False),
        sa.Column('contact_person', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('pincode', sa.String(12), nullable=True),
        sa.Column('certificate_url', sa.Text, nullable=False),
        sa.Column('address_proof_url', sa.Text, nullable=False),
        sa.Column('identity_proof_url', sa.Text, nullable=False),
        sa.Column('declaration_accepted', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.String(128), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        sa.Column('superseded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in('status', REGISTRATION_STATUSES), name='registration_status'),
        sa.CheckConstraint(_in('organization_type', ORGANIZATION_TYPES), name='organization_type'),
        sa.CheckConstraint("status <> 'unregistered'", name='registration_status_persisted'),
        sa.CheckConstraint('LENGTH(organization_name) > 0', name='registration_name_not_empty'),
    )
    op.create_index('ix_organization_registrations_organization_id', 'organization_registrations', ['organization_id'])
    op.create_index('ix_organization_registrations_status', 'organization_registrations', ['status'])
    op.create_index('ix_organization_registrations_created_at', 'organization_registrations', ['created_at'])
    # At most one active record per organization
    op.create_index(
        'uq_registrations_active_org',
        'organization_registrations',
        ['organization_id'],
        unique=True,
        postgresql_where=sa.text('superseded_at IS NULL'),
    )

    # Need-requests
    op.create_table(
        'need_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('organization_id', sa.String(128), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('required_quantity', sa.Float, nullable=False),
        sa.Column('urgency_level', sa.String(32), nullable=False, server_default='medium'),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('needed_by', sa.Date, nullable=True),
        sa.Column('details', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending'),
        *_timestamps(),
        sa.CheckConstraint(_in('category', CATEGORIES), name='request_category'),
        sa.CheckConstraint(_in('urgency_level', URGENCY_LEVELS), name='urgency_level'),
        sa.CheckConstraint(_in('status', REQUEST_STATUSES), name='request_status'),
        sa.CheckConstraint('required_quantity > 0', name='need_request_quantity_positive'),
    )
    op.create_index('ix_need_requests_organization_id', 'need_requests', ['organization_id'])
    op.create_index('ix_need_requests_category', 'need_requests', ['category'])
    op.create_index('ix_need_requests_status', 'need_requests', ['status'])
    op.create_index('ix_need_requests_created_at', 'need_requests', ['created_at'])
    op.create_index('idx_need_requests_org_created', 'need_requests', ['organization_id', 'created_at'])

    # Donations
    op.create_table(
        'donations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('donor_id', sa.String(128), nullable=False),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('quantity', sa.Float, nullable=False),
        sa.Column('unit', sa.String(32), nullable=False, server_default='items'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('assigned_organization_id', sa.String(128), nullable=True),
        sa.Column(
            'assigned_request_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('need_requests.id', ondelete='RESTRICT'),
            nullable=True,
        ),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('assigned_by', sa.String(128), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in('category', CATEGORIES), name='donation_category'),
        sa.CheckConstraint(_in('unit', DONATION_UNITS), name='donation_unit'),
        sa.CheckConstraint(_in('status', DONATION_STATUSES), name='donation_status'),
        sa.CheckConstraint('quantity > 0', name='donation_quantity_positive'),
        sa.CheckConstraint(
            'assigned_request_id IS NULL OR assigned_organization_id IS NOT NULL',
            name='donation_request_requires_organization',
        ),
    )
    op.create_index('ix_donations_donor_id', 'donations', ['donor_id'])
    op.create_index('ix_donations_status', 'donations', ['status'])
    op.create_index('ix_donations_assigned_organization_id', 'donations', ['assigned_organization_id'])
    op.create_index('ix_donations_assigned_request_id', 'donations', ['assigned_request_id'])
    op.create_index('ix_donations_created_at', 'donations', ['created_at'])
    op.create_index('idx_donations_org_request', 'donations', ['assigned_organization_id', 'assigned_request_id'])

    # In-app notifications
    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('recipient_id', sa.String(128), nullable=False),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('related_id', sa.String(64), nullable=True),
        sa.Column('related_type', sa.String(32), nullable=True),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in('category', NOTIFICATION_CATEGORIES), name='notification_category'),
    )
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('idx_notifications_recipient_read', 'notifications', ['recipient_id', 'is_read', 'created_at'])

    # Audit trail
    op.create_table(
        'audit_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('organization_id', sa.String(128), nullable=True),
        sa.Column('actor_id', sa.String(128), nullable=True),
        sa.Column('action', sa.String(32), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('diff_json', postgresql.JSONB, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in('action', AUDIT_ACTIONS), name='audit_action'),
    )
    op.create_index('ix_audit_events_organization_id', 'audit_events', ['organization_id'])
    op.create_index('ix_audit_events_actor_id', 'audit_events', ['actor_id'])
    op.create_index('ix_audit_events_created_at', 'audit_events', ['created_at'])
    op.create_index('idx_audit_entity', 'audit_events', ['entity_type', 'entity_id'])

    # Keep updated_at current for writes that bypass the ORM
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    for table in TABLES_WITH_UPDATED_AT:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    """Drop all tables."""
    for table in TABLES_WITH_UPDATED_AT:
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')

    op.drop_table('audit_events')
    op.drop_table('notifications')
    op.drop_table('donations')
    op.drop_table('need_requests')
    op.drop_table('organization_registrations')
