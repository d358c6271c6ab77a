"""Initial analytics schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    # Create quiz_results table
    op.create_table(
        'quiz_results',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('submission_id', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('quiz_id', sa.String(255), nullable=True),
        sa.Column('study_material_id', sa.String(255), nullable=True),
        sa.Column('answers', JSONType, nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('time_taken', sa.Float(), nullable=True),
        sa.Column('topic_performance', JSONType, nullable=False),
        sa.Column('question_type_performance', JSONType, nullable=False),
        sa.Column('difficulty_performance', JSONType, nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_quiz_results'),
        sa.UniqueConstraint('submission_id', name='uq_quiz_results_submission_id'),
    )
    op.create_index('idx_quiz_results_user_completed', 'quiz_results', ['user_id', 'completed_at'])

    # Create performance_analytics table
    op.create_table(
        'performance_analytics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('topic', sa.String(255), nullable=False),
        sa.Column('total_attempts', sa.Integer(), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('accuracy_percentage', sa.Float(), nullable=False),
        sa.Column('is_weakness', sa.Boolean(), nullable=False),
        sa.Column('rolling_accuracy', sa.Float(), nullable=True),
        sa.Column('recent_outcomes', JSONType, nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_performance_analytics'),
        sa.UniqueConstraint('user_id', 'topic', name='uq_performance_analytics_user_topic'),
    )
    op.create_index(
        'idx_performance_analytics_user_weakness',
        'performance_analytics',
        ['user_id', 'is_weakness']
    )

    # Create performance_breakdowns table
    op.create_table(
        'performance_breakdowns',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('dimension', sa.String(32), nullable=False),
        sa.Column('value', sa.String(64), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('correct', sa.Integer(), nullable=False),
        sa.Column('accuracy_percentage', sa.Float(), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_performance_breakdowns'),
        sa.UniqueConstraint('user_id', 'dimension', 'value', name='uq_performance_breakdowns_user_dimension_value'),
    )


def downgrade():
    op.drop_table('performance_breakdowns')
    op.drop_index('idx_performance_analytics_user_weakness', table_name='performance_analytics')
    op.drop_table('performance_analytics')
    op.drop_index('idx_quiz_results_user_completed', table_name='quiz_results')
    op.drop_table('quiz_results')
