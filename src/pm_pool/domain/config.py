"""Pool config rules: default merging, partial updates, range validation.

Stored blob values may be JSON numbers or strings; both are read as Decimal.
A stored 0 is a real value (e.g. an emptied pool) and never falls back to
the default.
"""

from dataclasses import asdict, fields, replace
from decimal import Decimal
from typing import Any

from src.pm_common.amounts import ZERO, round_pxb, to_decimal
from src.pm_common.errors import ConfigValidationError, InternalError
from src.pm_pool.domain.models import PoolConfig

CONFIG_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(PoolConfig))
_BALANCE_FIELDS = ("pool_size", "vault_balance")


def config_from_blob(blob: dict[str, Any] | None) -> PoolConfig:
    """Build a PoolConfig from a stored blob, defaulting missing/null keys.

    Raises InternalError when a stored value is not a finite decimal.
    """
    if not blob:
        return PoolConfig()
    values: dict[str, Decimal] = {}
    for name in CONFIG_FIELDS:
        raw = blob.get(name)
        if raw is None:
            continue
        try:
            values[name] = to_decimal(raw)
        except ValueError as exc:
            raise InternalError(
                f"Stored pool config field '{name}' is not a decimal: {raw!r}"
            ) from exc
    return PoolConfig(**values)


def config_to_blob(config: PoolConfig) -> dict[str, str]:
    """Serialize as strings so JSONB keeps exact decimal digits."""
    return {name: str(value) for name, value in asdict(config).items()}


def validate_config(config: PoolConfig) -> None:
    """Raise ConfigValidationError on the first out-of-range parameter."""
    if config.pool_size < ZERO:
        raise ConfigValidationError("pool_size", f"must be >= 0, got {config.pool_size}")
    if config.vault_balance < ZERO:
        raise ConfigValidationError(
            "vault_balance", f"must be >= 0, got {config.vault_balance}"
        )
    if config.cap_multiplier <= ZERO:
        raise ConfigValidationError(
            "cap_multiplier", f"must be > 0, got {config.cap_multiplier}"
        )
    if not (ZERO <= config.minimum_guarantee <= config.cap_multiplier):
        raise ConfigValidationError(
            "minimum_guarantee",
            f"must be between 0 and cap_multiplier ({config.cap_multiplier}), "
            f"got {config.minimum_guarantee}",
        )
    if not (ZERO <= config.vault_rate < 1):
        raise ConfigValidationError(
            "vault_rate", f"must be >= 0 and < 1, got {config.vault_rate}"
        )


def merge_config(current: PoolConfig, partial: dict[str, Any]) -> PoolConfig:
    """Apply a partial update and validate the result. Balances are kept to cents."""
    unknown = sorted(set(partial) - set(CONFIG_FIELDS))
    if unknown:
        raise ConfigValidationError(unknown[0], "unknown pool config field")

    changes: dict[str, Decimal] = {}
    for name, raw in partial.items():
        try:
            value = to_decimal(raw)
        except ValueError as exc:
            raise ConfigValidationError(name, str(exc)) from exc
        changes[name] = round_pxb(value) if name in _BALANCE_FIELDS else value

    merged = replace(current, **changes)
    validate_config(merged)
    return merged
