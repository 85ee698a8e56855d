"""create claim table

Revision ID: 4c2a9d7e1b3f
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2a9d7e1b3f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Databases created with db.create_all() already have the table
    if 'claim' in set(insp.get_table_names()):
        return

    op.create_table(
        'claim',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('x', sa.Integer(), nullable=False),
        sa.Column('y', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('owner_name', sa.String(length=64), nullable=False),
        sa.Column('owner_color', sa.String(length=32), nullable=False),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('x', 'y', name='uq_claim_x_y'),
    )
    op.create_index('ix_claim_owner_id', 'claim', ['owner_id'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'claim' not in set(insp.get_table_names()):
        return
    op.drop_index('ix_claim_owner_id', table_name='claim')
    op.drop_table('claim')
