"""Create ledger schema

Revision ID: 20261016_000001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261016_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.DECIMAL(18, 8)
WALLET = sa.String(42)


def _created_at() -> sa.Column:
    return sa.Column(
        'created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def upgrade() -> None:
    # Balance aggregate
    op.create_table(
        'user_balances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('usdt_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('secondary_token_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('total_deposit', MONEY, nullable=False, server_default='0'),
        sa.Column('total_withdraw', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'manual_adjustment', MONEY, nullable=False, server_default='0',
            comment='Admin credits and reconciliation shortfall records',
        ),
        sa.Column('is_banned', sa.Boolean(), nullable=False, server_default='false'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('usdt_balance >= 0', name='check_user_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_balances_wallet_address', 'user_balances', ['wallet_address'], unique=True)
    op.create_index('ix_user_balances_is_banned', 'user_balances', ['is_banned'])

    # Referral graph
    op.create_table(
        'user_referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('referrer_address', WALLET, nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_referrals_wallet_address', 'user_referrals', ['wallet_address'], unique=True)
    op.create_index('ix_user_referrals_referrer_address', 'user_referrals', ['referrer_address'])

    # Positions
    op.create_table(
        'robot_purchases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('robot_name', sa.String(100), nullable=False),
        sa.Column('robot_type', sa.String(20), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('expected_return', MONEY, nullable=False, server_default='0'),
        sa.Column('is_quantified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('quantified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expired_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column(
            'payout_amount', MONEY, nullable=False, server_default='0',
            comment='Credited back to the owner at expiry or cancellation',
        ),
        sa.Column('total_profit', MONEY, nullable=False, server_default='0'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('price > 0', name='check_robot_price_positive'),
        sa.CheckConstraint('payout_amount >= 0', name='check_robot_payout_non_negative'),
        sa.CheckConstraint(
            "status IN ('active', 'expired', 'cancelled')", name='check_robot_status'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_robot_purchases_wallet_address', 'robot_purchases', ['wallet_address'])
    op.create_index('idx_robot_status_end_time', 'robot_purchases', ['status', 'end_time'])
    op.create_index('idx_robot_wallet_status', 'robot_purchases', ['wallet_address', 'status'])

    # Referral rewards
    op.create_table(
        'referral_rewards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('from_wallet', WALLET, nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('reward_rate', sa.DECIMAL(10, 4), nullable=False),
        sa.Column('reward_amount', MONEY, nullable=False),
        sa.Column('source_type', sa.String(20), nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('source_amount', MONEY, nullable=False),
        sa.Column('robot_name', sa.String(100), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            'wallet_address', 'source_type', 'source_id', 'level',
            name='uq_referral_reward_source_level',
        ),
        sa.CheckConstraint('reward_amount >= 0', name='check_referral_reward_non_negative'),
        sa.CheckConstraint('level >= 1', name='check_referral_reward_level_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_referral_rewards_wallet_address', 'referral_rewards', ['wallet_address'])
    op.create_index('idx_referral_reward_from_wallet', 'referral_rewards', ['from_wallet'])

    # Team dividends
    op.create_table(
        'team_dividends',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('dividend_type', sa.String(20), nullable=False),
        sa.Column('dividend_date', sa.Date(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            'wallet_address', 'dividend_date', 'dividend_type',
            name='uq_team_dividend_period',
        ),
        sa.CheckConstraint('amount > 0', name='check_team_dividend_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_team_dividends_wallet_address', 'team_dividends', ['wallet_address'])

    # Broker level cache
    op.create_table(
        'broker_levels',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('direct_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('qualified_direct_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('team_volume', MONEY, nullable=False, server_default='0'),
        sa.Column('team_members', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lv1_subordinates', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lv2_subordinates', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lv3_subordinates', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lv4_subordinates', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lv5_subordinates', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'last_calculated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint('level >= 0', name='check_broker_level_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_broker_levels_wallet_address', 'broker_levels', ['wallet_address'], unique=True)
    op.create_index('ix_broker_levels_level', 'broker_levels', ['level'])

    # Ledger inputs
    op.create_table(
        'deposit_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('tx_hash', sa.String(100), nullable=True),
        _created_at(),
        sa.CheckConstraint('amount > 0', name='check_deposit_record_positive'),
        sa.UniqueConstraint('tx_hash'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_deposit_record_wallet_status', 'deposit_records', ['wallet_address', 'status'])

    op.create_table(
        'withdraw_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('tx_hash', sa.String(100), nullable=True),
        _created_at(),
        sa.CheckConstraint('amount > 0', name='check_withdraw_record_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_withdraw_record_wallet_status', 'withdraw_records', ['wallet_address', 'status'])

    op.create_table(
        'promo_credits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_promo_credits_wallet_address', 'promo_credits', ['wallet_address'])

    # History
    op.create_table(
        'transaction_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', WALLET, nullable=False),
        sa.Column('tx_type', sa.String(50), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('currency', sa.String(10), nullable=False, server_default='USDT'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transaction_history_wallet_address', 'transaction_history', ['wallet_address'])


def downgrade() -> None:
    op.drop_index('ix_transaction_history_wallet_address', 'transaction_history')
    op.drop_table('transaction_history')

    op.drop_index('ix_promo_credits_wallet_address', 'promo_credits')
    op.drop_table('promo_credits')

    op.drop_index('idx_withdraw_record_wallet_status', 'withdraw_records')
    op.drop_table('withdraw_records')

    op.drop_index('idx_deposit_record_wallet_status', 'deposit_records')
    op.drop_table('deposit_records')

    op.drop_index('ix_broker_levels_level', 'broker_levels')
    op.drop_index('ix_broker_levels_wallet_address', 'broker_levels')
    op.drop_table('broker_levels')

    op.drop_index('ix_team_dividends_wallet_address', 'team_dividends')
    op.drop_table('team_dividends')

    op.drop_index('idx_referral_reward_from_wallet', 'referral_rewards')
    op.drop_index('ix_referral_rewards_wallet_address', 'referral_rewards')
    op.drop_table('referral_rewards')

    op.drop_index('idx_robot_wallet_status', 'robot_purchases')
    op.drop_index('idx_robot_status_end_time', 'robot_purchases')
    op.drop_index('ix_robot_purchases_wallet_address', 'robot_purchases')
    op.drop_table('robot_purchases')

    op.drop_index('ix_user_referrals_referrer_address', 'user_referrals')
    op.drop_index('ix_user_referrals_wallet_address', 'user_referrals')
    op.drop_table('user_referrals')

    op.drop_index('ix_user_balances_is_banned', 'user_balances')
    op.drop_index('ix_user_balances_wallet_address', 'user_balances')
    op.drop_table('user_balances')
