"""initial pipeline schema: sales_persons, leads, tasks, activities

Revision ID: 7c1e4b90a2d3
Revises:
Create Date: 2026-10-17 09:12:44.201311

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7c1e4b90a2d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('sales_persons',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table('leads',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('lead_name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('campaign', sa.String(length=255), nullable=True),
        sa.Column('budget', sa.String(length=100), nullable=True),
        sa.Column('lead_source', sa.String(length=50), nullable=True),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('stage', sa.String(length=50), nullable=False),
        sa.Column('qualification', sa.String(length=20), nullable=True),
        sa.Column('response_status', sa.String(length=20), nullable=True),
        sa.Column('next_stage_notes', sa.Text(), nullable=True),
        sa.Column('assigned_to', sa.String(length=36), nullable=True),
        sa.Column('lead_score', sa.Integer(), nullable=False),
        sa.Column('responsiveness_score', sa.Integer(), nullable=False),
        sa.Column('conversion_probability_score', sa.Integer(), nullable=False),
        sa.Column('total_score', sa.Integer(), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['assigned_to'], ['sales_persons.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_leads_stage', 'leads', ['stage'], unique=False)
    op.create_index('ix_leads_assigned_to', 'leads', ['assigned_to'], unique=False)

    op.create_table('tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('lead_id', sa.String(length=36), nullable=False),
        sa.Column('sales_person_id', sa.String(length=36), nullable=True),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('stage', sa.String(length=50), nullable=True),
        sa.Column('flow_kind', sa.String(length=30), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_system', sa.Boolean(), nullable=False),
        sa.Column('active_stage_key', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ),
        sa.ForeignKeyConstraint(['sales_person_id'], ['sales_persons.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('active_stage_key')
    )
    op.create_index('ix_tasks_lead_id', 'tasks', ['lead_id'], unique=False)
    op.create_index('ix_tasks_sales_person_id', 'tasks', ['sales_person_id'], unique=False)

    op.create_table('activities',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('lead_id', sa.String(length=36), nullable=False),
        sa.Column('task_id', sa.String(length=36), nullable=True),
        sa.Column('actor_id', sa.String(length=36), nullable=True),
        sa.Column('activity_type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('outcome', sa.String(length=30), nullable=True),
        sa.Column('from_stage', sa.String(length=50), nullable=True),
        sa.Column('to_stage', sa.String(length=50), nullable=True),
        sa.Column('next_stage_notes', sa.Text(), nullable=True),
        sa.Column('connect_through', sa.String(length=50), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['actor_id'], ['sales_persons.id'], ),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activities_lead_id', 'activities', ['lead_id'], unique=False)
    op.create_index('ix_activities_task_id', 'activities', ['task_id'], unique=False)


def downgrade():
    op.drop_index('ix_activities_task_id', table_name='activities')
    op.drop_index('ix_activities_lead_id', table_name='activities')
    op.drop_table('activities')

    op.drop_index('ix_tasks_sales_person_id', table_name='tasks')
    op.drop_index('ix_tasks_lead_id', table_name='tasks')
    op.drop_table('tasks')

    op.drop_index('ix_leads_assigned_to', table_name='leads')
    op.drop_index('ix_leads_stage', table_name='leads')
    op.drop_table('leads')

    op.drop_table('sales_persons')
