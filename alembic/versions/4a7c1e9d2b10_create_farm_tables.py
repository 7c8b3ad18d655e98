"""create_farm_tables

Revision ID: 4a7c1e9d2b10
Revises:
Create Date: 2026-10-19 10:12:31.204118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4a7c1e9d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'farm_user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wallet_address', sa.String(length=64), nullable=False),
        sa.Column('coins', sa.Integer(), nullable=False),
        sa.Column('zeta', sa.String(length=32), nullable=False),
        sa.Column('tickets', sa.Integer(), nullable=False),
        sa.Column('exp', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('pet_list', sa.JSON(), nullable=False),
        sa.Column('last_offline_claim_at', sa.DateTime(), nullable=True),
        sa.Column('last_checkin_date', sa.String(length=10), nullable=True),
        sa.Column('backpack', sa.JSON(), nullable=False),
        sa.Column('phrase_letters', sa.JSON(), nullable=False),
        sa.Column('redeemed_rewards', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_farm_user_wallet_address'), 'farm_user', ['wallet_address'], unique=True)

    op.create_table(
        'farm_plot',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('plot_index', sa.Integer(), nullable=False),
        sa.Column('unlocked', sa.Boolean(), nullable=False),
        sa.Column('seed_id', sa.String(length=20), nullable=True),
        sa.Column('planted_at', sa.BigInteger(), nullable=True),
        sa.Column('fertilized', sa.Boolean(), nullable=False),
        sa.Column('paused_duration', sa.BigInteger(), nullable=False),
        sa.Column('paused_at', sa.BigInteger(), nullable=True),
        sa.Column('water_requirements', sa.JSON(), nullable=False),
        sa.Column('weed_requirements', sa.JSON(), nullable=False),
        sa.Column('pests', sa.Boolean(), nullable=False),
        sa.Column('pests_occurred', sa.Boolean(), nullable=False),
        sa.Column('last_pest_check_at', sa.BigInteger(), nullable=True),
        sa.Column('protected_until', sa.BigInteger(), nullable=True),
        sa.Column('mature_at', sa.BigInteger(), nullable=True),
        sa.Column('withered_at', sa.BigInteger(), nullable=True),
        sa.Column('stage', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['farm_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'plot_index', name='uq_farm_plot_user_index')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('farm_plot')
    op.drop_index(op.f('ix_farm_user_wallet_address'), table_name='farm_user')
    op.drop_table('farm_user')
