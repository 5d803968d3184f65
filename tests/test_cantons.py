"""Tests for the per-canton strategies."""

import pytest
from decimal import Decimal

from swissplan.engine.cantons import (
    CantonInput, geneva_tax, vaud_tax, vaud_quotient, romandie_tax, generic_tax,
    cantonal_tax, strategy_for, STRATEGIES,
)
from swissplan.engine.models import CantonTaxRule, chf
from swissplan.engine.rounding import cents


def _input(config, canton, commune, income, wealth=0, status="single", children=0):
    rule = config.cantons[canton]
    return CantonInput(
        taxable_income=Decimal(income),
        taxable_wealth=Decimal(wealth),
        civil_status=status,
        children=children,
        canton_multiplier=chf(rule.multiplier),
        commune_coefficient=chf(rule.communes[commune].coefficient),
        rule=rule,
    )


class TestGeneva:
    """Bracket base, chained cantonal factors, communal share of the base."""

    def test_single_80000(self, swiss_config):
        res = geneva_tax(_input(swiss_config, "GE", "geneve", 80000), swiss_config.strategies)
        assert res.simple == Decimal("8322.19")
        assert cents(res.cantonal) == Decimal("10910.22")
        assert cents(res.communal) == Decimal("3786.60")

    def test_communal_follows_commune(self, swiss_config):
        geneve = geneva_tax(_input(swiss_config, "GE", "geneve", 80000), swiss_config.strategies)
        vernier = geneva_tax(_input(swiss_config, "GE", "vernier", 80000), swiss_config.strategies)
        assert geneve.cantonal == vernier.cantonal
        assert cents(vernier.communal) == Decimal("3828.21")

    def test_married_splitting_lowers_tax(self, swiss_config):
        single = geneva_tax(_input(swiss_config, "GE", "geneve", 120000), swiss_config.strategies)
        married = geneva_tax(
            _input(swiss_config, "GE", "geneve", 120000, status="married"), swiss_config.strategies
        )
        single_parent = geneva_tax(
            _input(swiss_config, "GE", "geneve", 120000, status="single_parent"), swiss_config.strategies
        )
        assert married.cantonal < single_parent.cantonal < single.cantonal

    def test_married_rate_of_half_income(self, swiss_config):
        """Married: the rate found at half the income applies to the whole income."""
        single_half = geneva_tax(_input(swiss_config, "GE", "geneve", 60000), swiss_config.strategies)
        married = geneva_tax(
            _input(swiss_config, "GE", "geneve", 120000, status="married"), swiss_config.strategies
        )
        assert married.simple == single_half.simple * 2

    def test_zero_income(self, swiss_config):
        res = geneva_tax(_input(swiss_config, "GE", "geneve", 0, status="married"), swiss_config.strategies)
        assert res.cantonal == 0
        assert res.communal == 0


class TestVaud:
    """Family quotient on the income barème, separate wealth barème."""

    @pytest.mark.parametrize("status,children,expected", [
        ("single", 0, "1.0"),
        ("married", 0, "1.8"),
        ("married", 2, "2.8"),
        ("single_parent", 1, "1.8"),
    ])
    def test_quotient(self, swiss_config, status, children, expected):
        assert vaud_quotient(status, children, swiss_config.strategies) == Decimal(expected)

    def test_single_on_anchor(self, swiss_config):
        res = vaud_tax(_input(swiss_config, "VD", "lausanne", 100000), swiss_config.strategies)
        assert res.simple == Decimal("9790")
        assert cents(res.cantonal) == Decimal("15174.50")
        assert cents(res.communal) == Decimal("7734.10")

    def test_married_with_children(self, swiss_config):
        # 134400 / 2.8 = 48000 per part -> 3022.40, times 2.8
        res = vaud_tax(
            _input(swiss_config, "VD", "lausanne", 134400, status="married", children=2),
            swiss_config.strategies,
        )
        assert res.simple == Decimal("8462.72")
        assert cents(res.cantonal) == Decimal("13117.22")
        assert cents(res.communal) == Decimal("6685.55")

    def test_income_per_part_floored_to_hundred(self, swiss_config):
        strategies = swiss_config.strategies
        exact = vaud_tax(_input(swiss_config, "VD", "lausanne", 48000), strategies)
        above = vaud_tax(_input(swiss_config, "VD", "lausanne", 48099), strategies)
        next_step = vaud_tax(_input(swiss_config, "VD", "lausanne", 48100), strategies)
        assert exact.simple == above.simple
        assert next_step.simple > exact.simple

    def test_wealth_below_exemption_untaxed(self, swiss_config):
        strategies = swiss_config.strategies
        without = vaud_tax(_input(swiss_config, "VD", "lausanne", 50000), strategies)
        small = vaud_tax(_input(swiss_config, "VD", "lausanne", 50000, wealth=49999), strategies)
        assert small.simple == without.simple

    def test_wealth_on_anchor(self, swiss_config):
        strategies = swiss_config.strategies
        without = vaud_tax(_input(swiss_config, "VD", "lausanne", 50000), strategies)
        with_wealth = vaud_tax(_input(swiss_config, "VD", "lausanne", 50000, wealth=100000), strategies)
        assert with_wealth.simple - without.simple == Decimal("75.05")


class TestRomandie:
    """Shared bracket tables with per-canton child deduction and multiplier."""

    def test_fribourg_single(self, swiss_config):
        res = romandie_tax(_input(swiss_config, "FR", "fribourg", 80000), swiss_config.strategies)
        assert res.simple == Decimal("3800")
        assert cents(res.cantonal) == Decimal("3800.00")
        assert cents(res.communal) == Decimal("4256.00")

    def test_child_deduction_and_family_reduction(self, swiss_config):
        # 84400 - 2 * 8500 = 67400 -> 2792, minus 30%
        res = romandie_tax(
            _input(swiss_config, "FR", "fribourg", 84400, status="married", children=2),
            swiss_config.strategies,
        )
        assert res.simple == Decimal("1954.4")

    def test_wealth_tax(self, swiss_config):
        strategies = swiss_config.strategies
        without = romandie_tax(_input(swiss_config, "FR", "fribourg", 80000), strategies)
        with_wealth = romandie_tax(_input(swiss_config, "FR", "fribourg", 80000, wealth=200000), strategies)
        assert with_wealth.simple - without.simple == Decimal("225")

    def test_child_deduction_never_negative(self, swiss_config):
        res = romandie_tax(
            _input(swiss_config, "VS", "sion", 10000, status="married", children=3),
            swiss_config.strategies,
        )
        assert res.simple == 0

    def test_multiplier_applies_to_cantonal_only(self, swiss_config):
        res = romandie_tax(_input(swiss_config, "VS", "sion", 80000), swiss_config.strategies)
        assert res.cantonal == res.simple * Decimal("1.67")
        assert res.communal == res.simple * Decimal("1.25")

    def test_high_coefficient_table(self, swiss_config):
        # BE: 0.8 / 1.5 / 2.2 / 2.8 % rows -> 80 + 300 + 440 + 560
        res = romandie_tax(_input(swiss_config, "BE", "berne", 80000), swiss_config.strategies)
        assert res.simple == Decimal("1380")


class TestGeneric:

    def test_zurich(self, swiss_config):
        res = generic_tax(_input(swiss_config, "ZH", "zurich", 100000), swiss_config.strategies)
        assert cents(res.cantonal) == Decimal("6500.00")
        assert cents(res.communal) == Decimal("2975.00")

    def test_wealth_component(self, swiss_config):
        res = generic_tax(_input(swiss_config, "TI", "lugano", 0, wealth=100000), swiss_config.strategies)
        assert cents(res.cantonal) == Decimal("200.00")
        assert cents(res.communal) == Decimal("90.00")


class TestZeroIncome:
    """Nothing is due on zero income and zero wealth, whatever the strategy."""

    @pytest.mark.parametrize("canton,commune,strategy,status", [
        ("GE", "geneve", geneva_tax, "single"),
        ("VD", "lausanne", vaud_tax, "single"),
        ("VD", "lausanne", vaud_tax, "married"),
        ("FR", "fribourg", romandie_tax, "single"),
        ("BE", "berne", romandie_tax, "married"),
        ("ZH", "zurich", generic_tax, "single"),
        ("TI", "lugano", generic_tax, "single_parent"),
    ])
    def test_nothing_due(self, swiss_config, canton, commune, strategy, status):
        res = strategy(_input(swiss_config, canton, commune, 0, status=status), swiss_config.strategies)
        assert res.simple == 0
        assert res.cantonal == 0
        assert res.communal == 0

    def test_romandie_tables_used(self, swiss_config):
        assert swiss_config.cantons["FR"].bracket_table == "standard"
        assert swiss_config.cantons["BE"].bracket_table == "high_coefficient"


class TestStrategyDispatch:

    def test_all_strategies_registered(self):
        assert set(STRATEGIES) == {"geneva", "vaud", "romandie", "generic"}

    def test_unknown_strategy_falls_back_to_generic(self):
        assert strategy_for("zug_special") is generic_tax

    def test_dispatch_by_rule(self, swiss_config):
        inp = _input(swiss_config, "GE", "geneve", 80000)
        assert cantonal_tax(inp, swiss_config.strategies) == geneva_tax(inp, swiss_config.strategies)

    def test_unregistered_tag_on_rule(self, swiss_config):
        rule = CantonTaxRule.model_construct(
            name="Zug", strategy="zug_special", multiplier=1.0, child_deduction=0,
            bracket_table=None, default_commune_coefficient=1.0, notes=None, communes={},
        )
        inp = CantonInput(
            taxable_income=Decimal(100000), taxable_wealth=Decimal(0), civil_status="single",
            children=0, canton_multiplier=Decimal(1), commune_coefficient=Decimal(1), rule=rule,
        )
        assert cantonal_tax(inp, swiss_config.strategies).cantonal == Decimal("6500.000")
