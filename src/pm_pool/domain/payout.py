"""Withdrawal payout — guarantee floor, cap ceiling, solvency clamp, vault fee.

Stages run in order, each feeding the next, on unrounded Decimals:

    pnl        = (current - initial) / initial
    base       = initial * (1 + pnl)                  # == current, kept for audit
    guaranteed = max(base, initial * minimum_guarantee)
    capped     = min(guaranteed, initial * cap_multiplier)
    capped     = pool_size  if capped > pool_size     # solvency clamp
    final      = capped * (1 - vault_rate)
    vault      = capped - final

Outputs are rounded half-up to cents. The vault deduction is taken as the
difference of the rounded values so vault + final == capped exactly.

A solvency clamp means the withdrawer receives less than the computed
entitlement because the pool cannot cover it. This is expected behaviour and
is reported through WithdrawalResult.solvency_clamped.
"""

from decimal import Decimal

from src.pm_common.amounts import CENT, ZERO, round_pxb
from src.pm_common.errors import InvalidAmountError
from src.pm_pool.domain.models import PoolConfig, WithdrawalResult

MIN_PRINCIPAL = CENT


def calculate_withdrawal(
    initial_pxb: Decimal, current_pxb: Decimal, config: PoolConfig
) -> WithdrawalResult:
    if initial_pxb < MIN_PRINCIPAL:
        raise InvalidAmountError(
            f"initial deposit must be at least {MIN_PRINCIPAL}, got {initial_pxb}"
        )
    if current_pxb < ZERO:
        raise InvalidAmountError(f"current value must be >= 0, got {current_pxb}")

    pnl_percent = (current_pxb - initial_pxb) / initial_pxb
    base_payout = initial_pxb * (1 + pnl_percent)

    minimum_guarantee = initial_pxb * config.minimum_guarantee
    guaranteed_payout = max(base_payout, minimum_guarantee)

    entitled_payout = min(guaranteed_payout, initial_pxb * config.cap_multiplier)

    capped_payout = entitled_payout
    solvency_clamped = False
    if capped_payout > config.pool_size:
        # Scale by pool_size / capped, i.e. pay out exactly what the pool holds.
        capped_payout = config.pool_size
        solvency_clamped = True

    capped_rounded = round_pxb(capped_payout)
    final_payout = round_pxb(capped_payout * (1 - config.vault_rate))
    vault_deduction = capped_rounded - final_payout

    return WithdrawalResult(
        base_payout=round_pxb(base_payout),
        minimum_guarantee=round_pxb(minimum_guarantee),
        guaranteed_payout=round_pxb(guaranteed_payout),
        entitled_payout=round_pxb(entitled_payout),
        capped_payout=capped_rounded,
        vault_deduction=vault_deduction,
        final_payout=final_payout,
        solvency_clamped=solvency_clamped,
    )
