"""003: create app_features table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE app_features (
            id              BIGSERIAL       PRIMARY KEY,
            feature_name    VARCHAR(64)     NOT NULL,
            config          JSONB           NOT NULL DEFAULT '{}'::jsonb,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            end_date        DATE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_app_features_name UNIQUE (feature_name)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_app_features_updated_at
            BEFORE UPDATE ON app_features
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE app_features IS 'Feature flags and config blobs keyed by feature_name';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS app_features CASCADE;")
