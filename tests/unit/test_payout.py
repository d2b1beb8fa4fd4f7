"""Unit tests for the withdrawal payout calculation."""

from decimal import Decimal

import pytest

from src.pm_common.errors import InvalidAmountError
from src.pm_pool.domain.models import PoolConfig
from src.pm_pool.domain.payout import calculate_withdrawal

D = Decimal
DEFAULTS = PoolConfig()


class TestExampleScenarios:
    def test_no_change_pays_deposit_minus_vault_fee(self) -> None:
        r = calculate_withdrawal(D("100"), D("100"), DEFAULTS)
        assert r.base_payout == D("100")
        assert r.guaranteed_payout == D("100")
        assert r.capped_payout == D("100")
        assert r.vault_deduction == D("3.00")
        assert r.final_payout == D("97.00")
        assert r.solvency_clamped is False

    def test_seven_x_is_capped_at_five_x(self) -> None:
        r = calculate_withdrawal(D("100"), D("700"), DEFAULTS)
        assert r.base_payout == D("700")
        assert r.capped_payout == D("500")
        assert r.vault_deduction == D("15.00")
        assert r.final_payout == D("485.00")

    def test_ninety_percent_loss_floors_at_guarantee(self) -> None:
        r = calculate_withdrawal(D("100"), D("10"), DEFAULTS)
        assert r.base_payout == D("10")
        assert r.minimum_guarantee == D("50")
        assert r.capped_payout == D("50")
        assert r.vault_deduction == D("1.50")
        assert r.final_payout == D("48.50")

    def test_undersized_pool_clamps_payout(self) -> None:
        config = PoolConfig(pool_size=D("50"))
        r = calculate_withdrawal(D("100"), D("700"), config)
        assert r.entitled_payout == D("500")
        assert r.capped_payout == D("50")
        assert r.vault_deduction == D("1.50")
        assert r.final_payout == D("48.50")
        assert r.solvency_clamped is True


class TestEdgeCases:
    def test_total_loss_pays_guarantee(self) -> None:
        r = calculate_withdrawal(D("100"), D("0"), DEFAULTS)
        assert r.base_payout == D("0")
        assert r.capped_payout == D("50")
        assert r.final_payout == D("48.50")

    def test_empty_pool_pays_nothing(self) -> None:
        r = calculate_withdrawal(D("100"), D("150"), PoolConfig(pool_size=D("0")))
        assert r.capped_payout == D("0")
        assert r.final_payout == D("0")
        assert r.vault_deduction == D("0")
        assert r.solvency_clamped is True

    def test_cap_below_breakeven(self) -> None:
        config = PoolConfig(cap_multiplier=D("0.8"))
        r = calculate_withdrawal(D("100"), D("100"), config)
        assert r.capped_payout == D("80")
        assert r.final_payout == D("77.60")

    def test_zero_initial_fails_fast(self) -> None:
        with pytest.raises(InvalidAmountError):
            calculate_withdrawal(D("0"), D("10"), DEFAULTS)

    def test_sub_cent_initial_fails_fast(self) -> None:
        with pytest.raises(InvalidAmountError):
            calculate_withdrawal(D("0.000001"), D("10"), DEFAULTS)

    def test_negative_current_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            calculate_withdrawal(D("100"), D("-1"), DEFAULTS)

    def test_rounding_keeps_vault_split_exact(self) -> None:
        # guarantee 1.5 -> final 1.455 rounds half-up to 1.46, vault takes the rest
        r = calculate_withdrawal(D("3"), D("1"), DEFAULTS)
        assert r.capped_payout == D("1.50")
        assert r.final_payout == D("1.46")
        assert r.vault_deduction == D("0.04")

    def test_zero_vault_rate_pays_everything(self) -> None:
        r = calculate_withdrawal(D("100"), D("120"), PoolConfig(vault_rate=D("0")))
        assert r.final_payout == D("120")
        assert r.vault_deduction == D("0")


class TestProperties:
    def test_final_payout_monotonic_then_flat(self) -> None:
        finals = [
            calculate_withdrawal(D("100"), D(current), DEFAULTS).final_payout
            for current in range(0, 1001, 10)
        ]
        assert finals == sorted(finals)
        beyond_cap = finals[50:]  # currents >= 500
        assert set(beyond_cap) == {D("485.00")}

    def test_guarantee_floor_below_threshold(self) -> None:
        for current in ["0", "0.01", "12.34", "25", "49.99"]:
            r = calculate_withdrawal(D("100"), D(current), DEFAULTS)
            assert r.capped_payout == D("50"), current

    def test_cap_ceiling_above_threshold(self) -> None:
        for current in ["500.01", "750", "10000", "123456.78"]:
            r = calculate_withdrawal(D("100"), D(current), DEFAULTS)
            assert r.capped_payout == D("500"), current

    def test_vault_split_sums_to_capped(self) -> None:
        for rate in ["0", "0.01", "0.03", "0.125", "0.5", "0.99"]:
            config = PoolConfig(vault_rate=D(rate))
            for initial, current in [("100", "100"), ("3", "1"), ("33.33", "77.77"), ("7", "1000")]:
                r = calculate_withdrawal(D(initial), D(current), config)
                assert r.vault_deduction + r.final_payout == r.capped_payout

    def test_final_never_exceeds_pool(self) -> None:
        for pool in ["0", "1", "33.33", "50", "499.99", "10000"]:
            config = PoolConfig(pool_size=D(pool))
            for current in ["0", "100", "700"]:
                r = calculate_withdrawal(D("100"), D(current), config)
                assert r.final_payout <= D(pool)
                assert r.capped_payout <= D(pool)
