"""Initial schema - learners, attempts, progress, achievements, decisions

Revision ID: 0001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Learners table
    op.create_table(
        'learners',
        sa.Column('learner_id', sa.String(128), primary_key=True),
        sa.Column('current_level', sa.Integer(), nullable=False, default=1),
        sa.Column('last_learning_session_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Attempt log (append-only)
    op.create_table(
        'attempts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('learner_id', sa.String(128), nullable=False, index=True),
        sa.Column('concept_id', sa.String(128), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('correct', sa.Boolean(), nullable=False),
        sa.Column('attempts_used', sa.Integer(), nullable=False),
        sa.Column('time_spent_ms', sa.BigInteger(), nullable=False),
        sa.Column('reasoning_text', sa.Text(), nullable=False),
        sa.Column('reasoning_score', sa.Float(), nullable=False),
        sa.Column('context', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_attempts_learner_concept_time', 'attempts', ['learner_id', 'concept_id', 'timestamp'])
    op.create_index('ix_attempts_learner_time', 'attempts', ['learner_id', 'timestamp'])

    # Concept progress (one row per learner x concept)
    op.create_table(
        'concept_progress',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('learner_id', sa.String(128), nullable=False, index=True),
        sa.Column('concept_id', sa.String(128), nullable=False),
        sa.Column('total_attempts', sa.Integer(), nullable=False, default=0),
        sa.Column('correct_attempts', sa.Integer(), nullable=False, default=0),
        sa.Column('assessment_attempts', sa.Integer(), nullable=False, default=0),
        sa.Column('assessment_correct', sa.Integer(), nullable=False, default=0),
        sa.Column('rolling_average_attempts', sa.Float(), nullable=False, default=0.0),
        sa.Column('rolling_average_time_ms', sa.Float(), nullable=False, default=0.0),
        sa.Column('total_time_spent_ms', sa.BigInteger(), nullable=False, default=0),
        sa.Column('reasoning_score_history', sa.JSON(), nullable=False),
        sa.Column('recent_outcomes', sa.JSON(), nullable=False),
        sa.Column('accuracy_score', sa.Float(), nullable=False, default=0.0),
        sa.Column('consistency_score', sa.Float(), nullable=False, default=0.0),
        sa.Column('reasoning_score', sa.Float(), nullable=False, default=0.0),
        sa.Column('retention_score', sa.Float(), nullable=False, default=0.5),
        sa.Column('retention_known', sa.Boolean(), nullable=False, default=False),
        sa.Column('application_score', sa.Float(), nullable=False, default=0.5),
        sa.Column('mastery_score', sa.Float(), nullable=False, default=0.0),
        sa.Column('difficulty_level', sa.Integer(), nullable=False, default=1),
        sa.Column('first_seen_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_mastery_check_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_review_due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_interval_days', sa.Integer(), nullable=True),
        sa.Column('mastered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('learner_id', 'concept_id', name='uq_concept_progress_learner_concept'),
    )

    # Mastery achievements (written once per learner x concept)
    op.create_table(
        'mastery_achievements',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('learner_id', sa.String(128), nullable=False, index=True),
        sa.Column('concept_id', sa.String(128), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('scores', sa.JSON(), nullable=False),
        sa.Column('overall_score', sa.Float(), nullable=False),
        sa.Column('attempts_required', sa.Integer(), nullable=False),
        sa.Column('time_to_mastery_ms', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('learner_id', 'concept_id', name='uq_mastery_achievements_learner_concept'),
    )

    # Progression decisions (append-only audit trail)
    op.create_table(
        'progression_decisions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('learner_id', sa.String(128), nullable=False),
        sa.Column('current_level', sa.Integer(), nullable=False),
        sa.Column('target_level', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('outcome', sa.String(10), nullable=False),
        sa.Column('stage', sa.String(40), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('evidence', sa.JSON(), nullable=False),
        sa.Column('missing_requirements', sa.JSON(), nullable=False),
        sa.Column('blockers', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'ix_progression_decisions_learner_level_time',
        'progression_decisions',
        ['learner_id', 'target_level', 'timestamp'],
    )

    # Cooldown counters (one row per learner x target level)
    op.create_table(
        'blocked_attempt_counters',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('learner_id', sa.String(128), nullable=False),
        sa.Column('target_level', sa.Integer(), nullable=False),
        sa.Column('block_timestamps', sa.JSON(), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('learner_id', 'target_level', name='uq_blocked_attempt_counters_learner_level'),
    )


def downgrade() -> None:
    op.drop_table('blocked_attempt_counters')
    op.drop_index('ix_progression_decisions_learner_level_time', table_name='progression_decisions')
    op.drop_table('progression_decisions')
    op.drop_table('mastery_achievements')
    op.drop_table('concept_progress')
    op.drop_index('ix_attempts_learner_time', table_name='attempts')
    op.drop_index('ix_attempts_learner_concept_time', table_name='attempts')
    op.drop_table('attempts')
    op.drop_table('learners')
