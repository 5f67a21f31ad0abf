"""demo_number on tasks; revenue_transactions and sales_targets tables

Revision ID: b58d2f6e14c9
Revises: 7c1e4b90a2d3
Create Date: 2026-10-18 14:03:27.518840

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b58d2f6e14c9'
down_revision = '7c1e4b90a2d3'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('tasks', schema=None) as batch_op:
        batch_op.add_column(sa.Column('demo_number', sa.Integer(), nullable=True))

    op.create_table('revenue_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('lead_id', sa.String(length=36), nullable=False),
        sa.Column('sales_person_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('closed_date', sa.Date(), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['sales_persons.id'], ),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ),
        sa.ForeignKeyConstraint(['sales_person_id'], ['sales_persons.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_revenue_transactions_lead_id', 'revenue_transactions', ['lead_id'], unique=False)
    op.create_index('ix_revenue_transactions_sales_person_id', 'revenue_transactions', ['sales_person_id'], unique=False)
    op.create_index('ix_revenue_transactions_closed_date', 'revenue_transactions', ['closed_date'], unique=False)

    op.create_table('sales_targets',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('period_type', sa.String(length=20), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('target_leads', sa.Integer(), nullable=False),
        sa.Column('target_calls', sa.Integer(), nullable=False),
        sa.Column('target_meetings', sa.Integer(), nullable=False),
        sa.Column('target_prospects', sa.Integer(), nullable=False),
        sa.Column('target_proposals', sa.Integer(), nullable=False),
        sa.Column('target_converted', sa.Integer(), nullable=False),
        sa.Column('target_revenue', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['sales_persons.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('period_type', 'period_start', name='uq_sales_targets_period')
    )


def downgrade():
    op.drop_table('sales_targets')

    op.drop_index('ix_revenue_transactions_closed_date', table_name='revenue_transactions')
    op.drop_index('ix_revenue_transactions_sales_person_id', table_name='revenue_transactions')
    op.drop_index('ix_revenue_transactions_lead_id', table_name='revenue_transactions')
    op.drop_table('revenue_transactions')

    with op.batch_alter_table('tasks', schema=None) as batch_op:
        batch_op.drop_column('demo_number')
