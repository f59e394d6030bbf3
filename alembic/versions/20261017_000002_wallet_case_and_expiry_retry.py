"""Case-insensitive balance key, referral retry and expiry attempt tracking

Revision ID: 20261017_000002
Revises: 20261016_000001
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261017_000002'
down_revision: Union[str, None] = '20261016_000001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Fails if two rows differ only by case; merge them before upgrading
    op.create_index(
        'uq_user_balances_wallet_lower',
        'user_balances',
        [sa.text('lower(wallet_address)')],
        unique=True,
    )

    op.add_column(
        'robot_purchases',
        sa.Column('referral_pending', sa.Boolean(), nullable=False, server_default='false'),
    )
    op.add_column(
        'robot_purchases',
        sa.Column('expiry_attempts', sa.Integer(), nullable=False, server_default='0'),
    )
    op.add_column(
        'robot_purchases',
        sa.Column('last_expiry_error', sa.Text(), nullable=True),
    )
    op.create_index(
        'idx_robot_referral_pending', 'robot_purchases', ['referral_pending', 'expired_at']
    )


def downgrade() -> None:
    op.drop_index('idx_robot_referral_pending', 'robot_purchases')
    op.drop_column('robot_purchases', 'last_expiry_error')
    op.drop_column('robot_purchases', 'expiry_attempts')
    op.drop_column('robot_purchases', 'referral_pending')
    op.drop_index('uq_user_balances_wallet_lower', 'user_balances')
