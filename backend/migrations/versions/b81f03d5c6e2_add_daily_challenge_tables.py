"""add daily challenge, submission and prompt queue tables

Revision ID: b81f03d5c6e2
Revises: 4c7a9e21b0d3
Create Date: 2026-09-21 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b81f03d5c6e2'
down_revision = '4c7a9e21b0d3'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())
    if 'challenge_prompt' not in tables:
        op.create_table(
            'challenge_prompt',
            sa.Column('prompt_id', sa.String(length=10), primary_key=True),
            sa.Column('prompt', sa.String(length=200), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='queued'),
        )
    if 'challenge' not in tables:
        op.create_table(
            'challenge',
            sa.Column('challenge_id', sa.String(length=10), primary_key=True),
            sa.Column('prompt', sa.String(length=200), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
            sa.Column('valid_from', sa.DateTime(timezone=True), nullable=False),
            sa.Column('valid_until', sa.DateTime(timezone=True), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('total_submissions', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('average_color', sa.JSON(), nullable=True),
            sa.Column('centroid', sa.JSON(), nullable=True),
            sa.Column('component_stats', sa.JSON(), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        )
    if 'challenge_submission' not in tables:
        op.create_table(
            'challenge_submission',
            sa.Column('challenge_id', sa.String(length=10), sa.ForeignKey('challenge.challenge_id'), primary_key=True),
            sa.Column('user_id', sa.String(length=64), primary_key=True),
            sa.Column('user_name', sa.String(length=50), nullable=False),
            sa.Column('color', sa.JSON(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('distance_from_average', sa.Float(), nullable=False),
            sa.Column('average_at_submission', sa.JSON(), nullable=True),
            sa.Column('fingerprint', sa.String(length=128), nullable=True),
            sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_challenge_submission_user_id', 'challenge_submission', ['user_id'])
        op.create_index('ix_challenge_submission_score', 'challenge_submission', ['score'])


def downgrade():
    op.drop_index('ix_challenge_submission_score', table_name='challenge_submission')
    op.drop_index('ix_challenge_submission_user_id', table_name='challenge_submission')
    op.drop_table('challenge_submission')
    op.drop_table('challenge')
    op.drop_table('challenge_prompt')
