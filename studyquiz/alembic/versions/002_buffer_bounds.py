"""Track the completion-time bounds of each outcome buffer

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    # Existing rows stay NULL and get rebuilt from history on their next update
    with op.batch_alter_table('performance_analytics') as batch_op:
        batch_op.add_column(sa.Column('buffer_newest_at', sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column('buffer_oldest_at', sa.DateTime(timezone=True), nullable=True))


def downgrade():
    with op.batch_alter_table('performance_analytics') as batch_op:
        batch_op.drop_column('buffer_oldest_at')
        batch_op.drop_column('buffer_newest_at')
