"""006: seed trading pool config

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        INSERT INTO app_features (feature_name, config, is_active, end_date)
        VALUES (
            'trading_pool',
            '{"pool_size": "10000", "vault_balance": "0", "cap_multiplier": "5",
              "minimum_guarantee": "0.5", "vault_rate": "0.03"}'::jsonb,
            TRUE,
            '2099-12-31'
        )
        ON CONFLICT (feature_name) DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DELETE FROM app_features WHERE feature_name = 'trading_pool';")
