"""create game_session and connection tables

Revision ID: 4c7a9e21b0d3
Revises:
Create Date: 2026-09-14 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a9e21b0d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())
    if 'game_session' not in tables:
        op.create_table(
            'game_session',
            sa.Column('game_id', sa.String(length=8), primary_key=True),
            sa.Column('document', sa.JSON(), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_game_session_expires_at', 'game_session', ['expires_at'])
    if 'connection' not in tables:
        op.create_table(
            'connection',
            sa.Column('connection_id', sa.String(length=64), primary_key=True),
            sa.Column('game_id', sa.String(length=8), nullable=True),
            sa.Column('player_id', sa.String(length=16), nullable=True),
            sa.Column('connected_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_connection_game_id', 'connection', ['game_id'])


def downgrade():
    op.drop_index('ix_connection_game_id', table_name='connection')
    op.drop_table('connection')
    op.drop_index('ix_game_session_expires_at', table_name='game_session')
    op.drop_table('game_session')
