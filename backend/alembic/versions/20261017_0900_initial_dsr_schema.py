"""initial schema: companies, dsr_requests, audit_logs

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17 09:00:00

Requester columns on dsr_requests hold hex ciphertext; requester_email_hash
is the only searchable requester column.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    """Create companies, dsr_requests and audit_logs."""
    op.create_table(
        'companies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('admin_user_id', sa.String(), nullable=False, comment='Owner in the auth provider'),
        sa.Column('admin_email', sa.String(), nullable=False),
        sa.Column('dsr_form_identifier', sa.String(length=64), nullable=False, comment='Public DSR form id'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_companies_id', 'companies', ['id'])
    op.create_index('ix_companies_created_at', 'companies', ['created_at'])
    op.create_index('ix_companies_admin_user_id', 'companies', ['admin_user_id'])
    op.create_index('ix_companies_dsr_form_identifier', 'companies', ['dsr_form_identifier'], unique=True)

    op.create_table(
        'dsr_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('requester_email', sa.Text(), nullable=False, comment='Encrypted'),
        sa.Column('requester_email_hash', sa.String(length=64), nullable=False, comment='SHA-256 of lowercased email'),
        sa.Column('requester_name', sa.Text(), nullable=False, comment='Encrypted'),
        sa.Column('request_type', sa.Text(), nullable=False, comment='Encrypted'),
        sa.Column('details', sa.Text(), nullable=True, comment='Encrypted'),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('internal_notes', JSON_TYPE, nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dsr_requests_id', 'dsr_requests', ['id'])
    op.create_index('ix_dsr_requests_created_at', 'dsr_requests', ['created_at'])
    op.create_index('ix_dsr_requests_company_id', 'dsr_requests', ['company_id'])
    op.create_index('ix_dsr_requests_requester_email_hash', 'dsr_requests', ['requester_email_hash'])
    op.create_index('ix_dsr_requests_company_status', 'dsr_requests', ['company_id', 'status'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('resource_type', sa.String(length=32), nullable=False),
        sa.Column('resource_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('user_email', sa.String(), nullable=True),
        sa.Column('user_name', sa.String(), nullable=True),
        sa.Column('company_id', sa.Uuid(), nullable=True),
        sa.Column('metadata', JSON_TYPE, nullable=False),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_type', 'audit_logs', ['resource_type'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_company_id', 'audit_logs', ['company_id'])
    op.create_index('ix_audit_logs_company_timestamp', 'audit_logs', ['company_id', 'timestamp'])
    op.create_index('ix_audit_logs_resource', 'audit_logs', ['resource_type', 'resource_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('audit_logs')
    op.drop_table('dsr_requests')
    op.drop_table('companies')
