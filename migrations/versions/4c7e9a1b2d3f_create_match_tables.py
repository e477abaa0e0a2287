"""create user, rating, match session, proposal and ledger tables

Revision ID: 4c7e9a1b2d3f
Revises:
Create Date: 2026-09-02 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7e9a1b2d3f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('balance', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'player_rating',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, unique=True),
        sa.Column('rating', sa.Integer(), nullable=False, server_default='1500'),
        sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('games_won', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'match_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player_a_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('player_b_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='awaiting_opponent'),
        sa.Column('die_one', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('die_two', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('move_budget', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('turn', sa.String(length=1), nullable=True),
        sa.Column('wager', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_rated', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('target_score', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('player_a_ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('player_b_ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('opening_rolls', sa.Text(), nullable=True),
        sa.Column('is_opening_move', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('board', sa.Text(), nullable=True),
        sa.Column('cube_value', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('cube_owner', sa.String(length=1), nullable=True),
        sa.Column('cube_position', sa.String(length=16), nullable=False, server_default='center'),
        sa.Column('winner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_match_session_status', 'match_session', ['status'])

    op.create_table(
        'match_proposal',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organizer_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('opponent_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('wager', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_rated', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('target_score', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('match_session.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'ledger_entry',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('resulting_balance', sa.Integer(), nullable=False),
        sa.Column('related_session_id', sa.Integer(), sa.ForeignKey('match_session.id'), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('description', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_ledger_entry_user_id', 'ledger_entry', ['user_id'])


def downgrade():
    op.drop_index('ix_ledger_entry_user_id', table_name='ledger_entry')
    op.drop_table('ledger_entry')
    op.drop_table('match_proposal')
    op.drop_index('ix_match_session_status', table_name='match_session')
    op.drop_table('match_session')
    op.drop_table('player_rating')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
