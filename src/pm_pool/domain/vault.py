"""Vault reward allocation — pro-rata by points held, truncated to cents."""

from collections.abc import Sequence
from decimal import Decimal

from src.pm_common.amounts import ZERO, floor_pxb
from src.pm_pool.domain.models import PointHolder


def allocate_vault_rewards(
    vault_balance: Decimal, holders: Sequence[PointHolder]
) -> dict[str, Decimal]:
    """Return user_id -> reward. Zero shares are omitted; sum(rewards) <= vault_balance."""
    eligible = [h for h in holders if h.points > ZERO]
    total_points = sum((h.points for h in eligible), ZERO)
    if total_points == ZERO or vault_balance <= ZERO:
        return {}

    rewards: dict[str, Decimal] = {}
    for holder in eligible:
        reward = floor_pxb(vault_balance * holder.points / total_points)
        if reward > ZERO:
            rewards[holder.user_id] = reward
    return rewards
