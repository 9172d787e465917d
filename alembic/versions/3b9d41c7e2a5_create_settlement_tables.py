"""Create settlement tables

Revision ID: 3b9d41c7e2a5
Revises:
Create Date: 2026-10-19 11:02:37.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b9d41c7e2a5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('booths',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('organization_id', sa.String(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('assigned_to', sa.String(), nullable=True),
    sa.Column('price', sa.Integer(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_booths_organization_id'), 'booths', ['organization_id'], unique=False)
    op.create_index(op.f('ix_booths_assigned_to'), 'booths', ['assigned_to'], unique=False)
    op.create_table('transactions',
    sa.Column('id', sa.String(), nullable=False),
    sa.Column('booth_id', sa.UUID(), nullable=False),
    sa.Column('amount', sa.Integer(), nullable=False),
    sa.Column('status', sa.Enum('PAID', 'SETTLED', 'PENDING', 'FAILED', 'EXPIRED', name='transactionstatus'), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['booth_id'], ['booths.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_transactions_booth_id'), 'transactions', ['booth_id'], unique=False)
    op.create_table('revenue_shares',
    sa.Column('organization_id', sa.String(), nullable=False),
    sa.Column('user_id', sa.String(), nullable=False),
    sa.Column('percent_to_member', sa.Integer(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('organization_id', 'user_id')
    )
    op.create_table('withdrawals',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('organization_id', sa.String(), nullable=False),
    sa.Column('requester_id', sa.String(), nullable=False),
    sa.Column('is_admin_withdrawal', sa.Boolean(), nullable=False),
    sa.Column('amount', sa.Integer(), nullable=False),
    sa.Column('bank_code', sa.String(), nullable=False),
    sa.Column('account_number_encrypted', sa.Text(), nullable=False),
    sa.Column('account_holder_name_encrypted', sa.Text(), nullable=False),
    sa.Column('account_number_last4', sa.String(length=4), nullable=False),
    sa.Column('reference_id', sa.String(), nullable=False),
    sa.Column('approval_status', sa.Enum('PENDING_APPROVAL', 'APPROVED', 'REJECTED', 'CANCELLED', name='approvalstatus'), nullable=False),
    sa.Column('payout_status', sa.Enum('PENDING', 'ACCEPTED', 'SUCCEEDED', 'FAILED', name='withdrawalpayoutstatus'), nullable=False),
    sa.Column('payout_attempt', sa.Integer(), nullable=False),
    sa.Column('batch_id', sa.String(), nullable=True),
    sa.Column('rejection_reason', sa.Text(), nullable=True),
    sa.Column('reviewed_by', sa.String(), nullable=True),
    sa.Column('reviewed_at', sa.DateTime(), nullable=True),
    sa.Column('external_payout_id', sa.String(), nullable=True),
    sa.Column('failure_code', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('reference_id')
    )
    op.create_index(op.f('ix_withdrawals_organization_id'), 'withdrawals', ['organization_id'], unique=False)
    op.create_index(op.f('ix_withdrawals_requester_id'), 'withdrawals', ['requester_id'], unique=False)
    op.create_index(op.f('ix_withdrawals_external_payout_id'), 'withdrawals', ['external_payout_id'], unique=False)
    op.create_table('audit_log',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('organization_id', sa.String(), nullable=False),
    sa.Column('actor_id', sa.String(), nullable=False),
    sa.Column('action', sa.String(), nullable=False),
    sa.Column('entity', sa.String(), nullable=False),
    sa.Column('entity_id', sa.String(), nullable=True),
    sa.Column('payload_json', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_log_organization_id'), 'audit_log', ['organization_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_audit_log_organization_id'), table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_index(op.f('ix_withdrawals_external_payout_id'), table_name='withdrawals')
    op.drop_index(op.f('ix_withdrawals_requester_id'), table_name='withdrawals')
    op.drop_index(op.f('ix_withdrawals_organization_id'), table_name='withdrawals')
    op.drop_table('withdrawals')
    op.drop_table('revenue_shares')
    op.drop_index(op.f('ix_transactions_booth_id'), table_name='transactions')
    op.drop_table('transactions')
    op.drop_index(op.f('ix_booths_assigned_to'), table_name='booths')
    op.drop_index(op.f('ix_booths_organization_id'), table_name='booths')
    op.drop_table('booths')
    sa.Enum(name='withdrawalpayoutstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='approvalstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='transactionstatus').drop(op.get_bind(), checkfirst=True)
