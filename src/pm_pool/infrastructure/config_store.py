"""PoolConfigRepository — the trading pool's row in app_features.

The config lives in a JSONB blob keyed by feature_name. Balance changes go
through a single conditional UPDATE ... RETURNING (apply_delta); 0 rows means
the change would drive pool_size or vault_balance negative.

Transaction ownership: the CALLER commits or rolls back.
"""

import json
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.errors import InternalError, PoolOverdrawError
from src.pm_pool.domain.config import config_from_blob, config_to_blob
from src.pm_pool.domain.models import DEFAULT_POOL_SIZE, PoolConfig

_GET_CONFIG_SQL = text("""
    SELECT config FROM app_features WHERE feature_name = :feature_name
""")

_LOCK_CONFIG_SQL = text("""
    SELECT config FROM app_features WHERE feature_name = :feature_name FOR UPDATE
""")

_INSERT_DEFAULT_SQL = text("""
    INSERT INTO app_features (feature_name, config, is_active, end_date)
    VALUES (:feature_name, CAST(:config AS JSONB), TRUE, '2099-12-31')
    ON CONFLICT (feature_name) DO NOTHING
    RETURNING id
""")

_SAVE_CONFIG_SQL = text("""
    UPDATE app_features
    SET config = CAST(:config AS JSONB),
        updated_at = NOW()
    WHERE feature_name = :feature_name
    RETURNING config
""")

_APPLY_DELTA_SQL = text("""
    UPDATE app_features
    SET config = config || jsonb_build_object(
            'pool_size',
            COALESCE(CAST(config->>'pool_size' AS NUMERIC), :default_pool_size) + :pool_delta,
            'vault_balance',
            COALESCE(CAST(config->>'vault_balance' AS NUMERIC), 0) + :vault_delta
        ),
        updated_at = NOW()
    WHERE feature_name = :feature_name
      AND COALESCE(CAST(config->>'pool_size' AS NUMERIC), :default_pool_size) + :pool_delta >= 0
      AND COALESCE(CAST(config->>'vault_balance' AS NUMERIC), 0) + :vault_delta >= 0
    RETURNING config
""")


def _load_blob(raw: Any) -> dict[str, Any] | None:
    # asyncpg hands back JSONB from text() queries as a str
    if raw is None:
        return None
    if isinstance(raw, str):
        return json.loads(raw, parse_float=Decimal)
    return dict(raw)


class PoolConfigRepository:
    """Concrete repository — all balance mutations atomic at the SQL level."""

    def __init__(self, feature_name: str | None = None) -> None:
        self._feature_name = feature_name or settings.POOL_FEATURE_NAME

    async def get(self, db: AsyncSession) -> PoolConfig:
        result = await db.execute(_GET_CONFIG_SQL, {"feature_name": self._feature_name})
        row = result.fetchone()
        return config_from_blob(_load_blob(row.config) if row else None)

    async def initialize(self, db: AsyncSession) -> bool:
        """Insert the default config row if missing. Returns True if it was created."""
        result = await db.execute(
            _INSERT_DEFAULT_SQL,
            {
                "feature_name": self._feature_name,
                "config": json.dumps(config_to_blob(PoolConfig())),
            },
        )
        return result.fetchone() is not None

    async def lock(self, db: AsyncSession) -> PoolConfig:
        """Row-lock the pool config until the caller's transaction ends."""
        await self.initialize(db)
        result = await db.execute(_LOCK_CONFIG_SQL, {"feature_name": self._feature_name})
        row = result.fetchone()
        return config_from_blob(_load_blob(row.config) if row else None)

    async def save(self, db: AsyncSession, config: PoolConfig) -> PoolConfig:
        result = await db.execute(
            _SAVE_CONFIG_SQL,
            {
                "feature_name": self._feature_name,
                "config": json.dumps(config_to_blob(config)),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(
                f"Pool config row '{self._feature_name}' missing: call lock() first"
            )
        return config_from_blob(_load_blob(row.config))

    async def apply_delta(
        self, db: AsyncSession, pool_delta: Decimal, vault_delta: Decimal
    ) -> PoolConfig:
        result = await db.execute(
            _APPLY_DELTA_SQL,
            {
                "feature_name": self._feature_name,
                "default_pool_size": DEFAULT_POOL_SIZE,
                "pool_delta": pool_delta,
                "vault_delta": vault_delta,
            },
        )
        row = result.fetchone()
        if row is None:
            raise PoolOverdrawError(
                f"pool_delta={pool_delta}, vault_delta={vault_delta}"
            )
        return config_from_blob(_load_blob(row.config))
