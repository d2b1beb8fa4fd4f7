"""005: create points_history table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE points_history (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            amount          NUMERIC(20, 2)  NOT NULL,
            action          VARCHAR(30)     NOT NULL,
            reference_id    VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_points_history_user ON points_history (user_id, created_at DESC);")
    op.execute("COMMENT ON TABLE points_history IS 'Points audit trail — best-effort, not authoritative';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS points_history CASCADE;")
