"""add settlement step markers to match_session; one ledger entry per player per session

Revision ID: 9d2f6b8e0a17
Revises: 4c7e9a1b2d3f
Create Date: 2026-09-14 16:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9d2f6b8e0a17'
down_revision = '4c7e9a1b2d3f'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('match_session')}
    with op.batch_alter_table('match_session') as batch_op:
        if 'ratings_settled' not in cols:
            batch_op.add_column(sa.Column('ratings_settled', sa.Boolean(), nullable=False, server_default=sa.false()))
        if 'wager_settled' not in cols:
            batch_op.add_column(sa.Column('wager_settled', sa.Boolean(), nullable=False, server_default=sa.false()))

    # Sessions finalized before the markers existed were settled in one go.
    op.execute("UPDATE match_session SET ratings_settled = is_rated, wager_settled = (wager > 0) WHERE status = 'completed'")

    constraints = {c['name'] for c in insp.get_unique_constraints('ledger_entry')}
    if 'uq_ledger_session_user' not in constraints:
        with op.batch_alter_table('ledger_entry') as batch_op:
            batch_op.create_unique_constraint('uq_ledger_session_user', ['related_session_id', 'user_id'])


def downgrade():
    with op.batch_alter_table('ledger_entry') as batch_op:
        batch_op.drop_constraint('uq_ledger_session_user', type_='unique')
    with op.batch_alter_table('match_session') as batch_op:
        batch_op.drop_column('wager_settled')
        batch_op.drop_column('ratings_settled')
