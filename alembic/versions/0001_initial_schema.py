"""Initial schema - organizations, admission, activities and progress

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

Creates the admission and curriculum tables with the indexes that back
the workflow invariants:
- one entry request under review per applicant
- one active, approved supervisor per organization
- one submission per (activity, learner)
- one progress record per (member, phase)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Organizations and members
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('phase', sa.String(10), server_default=sa.text("'1'"), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_approved', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_members_org_role', 'members', ['organization_id', 'role'])
    op.create_index(
        'uq_members_org_supervisor',
        'members',
        ['organization_id'],
        unique=True,
        postgresql_where=sa.text("role = 'supervisor' AND is_active AND is_approved"),
        sqlite_where=sa.text("role = 'supervisor' AND is_active AND is_approved"),
    )

    # ==========================================================================
    # Entry requests
    # ==========================================================================
    op.create_table(
        'entry_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'applicant_id', sa.Uuid(),
            sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column(
            'supervisor_id', sa.Uuid(),
            sa.ForeignKey('members.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column(
            'reviewed_by_id', sa.Uuid(),
            sa.ForeignKey('members.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_entry_requests_org_status', 'entry_requests', ['organization_id', 'status'])
    op.create_index(
        'uq_entry_requests_applicant_open',
        'entry_requests',
        ['applicant_id'],
        unique=True,
        postgresql_where=sa.text("status = 'under_review'"),
        sqlite_where=sa.text("status = 'under_review'"),
    )

    # ==========================================================================
    # Activities
    # ==========================================================================
    op.create_table(
        'activities',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_edited', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_activities_org', 'activities', ['organization_id'])

    op.create_table(
        'activity_phases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'activity_id', sa.Uuid(),
            sa.ForeignKey('activities.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('phase_number', sa.Integer(), nullable=False),
        sa.UniqueConstraint('activity_id', 'phase_number', name='uq_activity_phase'),
        sa.CheckConstraint('phase_number BETWEEN 1 AND 16', name='ck_activity_phase_range'),
    )
    op.create_index('idx_activity_phases_phase', 'activity_phases', ['phase_number'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'activity_id', sa.Uuid(),
            sa.ForeignKey('activities.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_option', sa.Text(), nullable=False),
    )

    # ==========================================================================
    # Submissions
    # ==========================================================================
    op.create_table(
        'submissions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('activity_id', sa.Uuid(), sa.ForeignKey('activities.id'), nullable=False),
        sa.Column(
            'learner_id', sa.Uuid(),
            sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('quiz_answers', sa.JSON(), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column(
            'graded_by_id', sa.Uuid(),
            sa.ForeignKey('members.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('status', sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('activity_id', 'learner_id', name='uq_submission_activity_learner'),
        sa.CheckConstraint(
            'score IS NULL OR (score >= 0 AND score <= 10)', name='ck_submission_score_range'
        ),
    )
    op.create_index('idx_submissions_activity_status', 'submissions', ['activity_id', 'status'])

    # ==========================================================================
    # Content progress
    # ==========================================================================
    op.create_table(
        'content_progress',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'member_id', sa.Uuid(),
            sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('phase_id', sa.String(50), nullable=False),
        sa.Column('completed_topic_ids', sa.JSON(), nullable=False),
        sa.Column('total_topics', sa.Integer(), nullable=False),
        sa.Column('progress', sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('member_id', 'phase_id', name='uq_content_progress_member_phase'),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('content_progress')
    op.drop_index('idx_submissions_activity_status', table_name='submissions')
    op.drop_table('submissions')
    op.drop_table('questions')
    op.drop_index('idx_activity_phases_phase', table_name='activity_phases')
    op.drop_table('activity_phases')
    op.drop_index('idx_activities_org', table_name='activities')
    op.drop_table('activities')
    op.drop_index('uq_entry_requests_applicant_open', table_name='entry_requests')
    op.drop_index('idx_entry_requests_org_status', table_name='entry_requests')
    op.drop_table('entry_requests')
    op.drop_index('uq_members_org_supervisor', table_name='members')
    op.drop_index('idx_members_org_role', table_name='members')
    op.drop_table('members')
    op.drop_table('organizations')
