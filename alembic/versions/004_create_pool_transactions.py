"""004: create pool_transactions table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE pool_transactions (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            tx_type         VARCHAR(16)     NOT NULL,
            quantity        NUMERIC(20, 2)  NOT NULL,
            pxb_amount      NUMERIC(20, 2)  NOT NULL,
            timestamp       TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_pool_tx_type CHECK (
                tx_type IN ('deposit', 'trade_up', 'trade_down', 'withdraw')
            ),
            CONSTRAINT ck_pool_tx_quantity_gte_0 CHECK (quantity >= 0),
            CONSTRAINT ck_pool_tx_pxb_amount_gte_0 CHECK (pxb_amount >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_pool_tx_user_time ON pool_transactions (user_id, timestamp, id);"
    )
    op.execute("CREATE INDEX idx_pool_tx_type ON pool_transactions (tx_type, timestamp);")
    op.execute("""
        CREATE TRIGGER trg_pool_transactions_append_only
            BEFORE UPDATE OR DELETE ON pool_transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE pool_transactions IS "
        "'Trading pool event log — Append-Only; positions are derived by replay';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS pool_transactions CASCADE;")
