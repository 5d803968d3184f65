"""Tests for progressive bracket tables."""

import pytest
from decimal import Decimal

from swissplan.engine.brackets import (
    build_table, table_from_points, progressive_tax, marginal_rate, bracket_for,
)
from swissplan.engine.models import BracketCfg, chf


# Published cumulative base at each Geneva bracket floor
GENEVA_ANCHORS = [
    (0, 0), (18480, 0), (22265, 302.80), (24492, 503.25), (26718, 725.85),
    (28944, 970.70), (34510, 1638.60), (38963, 2217.50), (43417, 2841.05),
    (47869, 3486.60), (76812, 7828.05), (125794, 15420.25), (169209, 22366.65),
    (191474, 26040.40), (273851, 40044.50), (291662, 43161.45), (410776, 64601.95),
    (643436, 107644.05),
]


@pytest.fixture
def geneva_table(swiss_config):
    return build_table(swiss_config.strategies.geneva.brackets)


class TestBuildTable:
    """Bases derived from (lower, rate) rows."""

    def test_geneva_bases_match_published_anchors(self, geneva_table):
        """Derived bases stay within 10 centimes of the published table."""
        assert len(geneva_table) == len(GENEVA_ANCHORS)
        for row, (lower, anchor) in zip(geneva_table, GENEVA_ANCHORS):
            assert row.lower == lower
            assert abs(row.base - chf(anchor)) <= Decimal("0.10"), f"base at {lower}: {row.base} vs {anchor}"

    def test_first_row_has_zero_base(self, geneva_table):
        assert geneva_table[0].base == 0
        assert geneva_table[0].rate == 0

    def test_rates_are_fractions(self, geneva_table):
        assert geneva_table[1].rate == Decimal("0.08")
        assert geneva_table[-1].rate == Decimal("0.19")

    def test_simple_table(self):
        table = build_table([
            BracketCfg(lower=0, rate_percent=0),
            BracketCfg(lower=10000, rate_percent=10),
            BracketCfg(lower=20000, rate_percent=20),
        ])
        assert [r.base for r in table] == [0, 0, 1000]


class TestProgressiveTax:
    """Tax = base + (amount - lower) * rate of the containing bracket."""

    def test_zero_amount(self, geneva_table):
        assert progressive_tax(Decimal(0), geneva_table) == 0

    def test_negative_amount_rejected(self, geneva_table):
        with pytest.raises(ValueError):
            progressive_tax(Decimal(-1), geneva_table)

    def test_empty_table(self):
        assert progressive_tax(Decimal(50000), []) == 0

    def test_below_first_taxed_bracket(self, geneva_table):
        assert progressive_tax(Decimal(18000), geneva_table) == 0

    def test_geneva_80000(self, geneva_table):
        # 7828.05 + (80000 - 76812) * 15.5%
        assert progressive_tax(Decimal(80000), geneva_table) == Decimal("8322.19")

    def test_continuous_at_bracket_bounds(self, geneva_table):
        """The same amount computed from either side of a bound gives the same tax."""
        for lower_row, upper_row in zip(geneva_table, geneva_table[1:]):
            from_below = lower_row.base + (upper_row.lower - lower_row.lower) * lower_row.rate
            assert progressive_tax(upper_row.lower, geneva_table) == from_below
            assert from_below == upper_row.base

    def test_monotonic(self, geneva_table):
        previous = Decimal(-1)
        for income in range(0, 800001, 5000):
            tax = progressive_tax(Decimal(income), geneva_table)
            assert tax >= previous
            previous = tax

    def test_open_ended_top_bracket(self, geneva_table):
        top = geneva_table[-1]
        assert progressive_tax(Decimal(1000000), geneva_table) == top.base + (1000000 - top.lower) * top.rate


class TestBracketLookup:

    def test_amount_on_bound_uses_lower_bracket(self, geneva_table):
        assert bracket_for(Decimal(18480), geneva_table).lower == 0
        assert bracket_for(Decimal(18481), geneva_table).lower == 18480

    def test_beyond_last_bound(self, geneva_table):
        assert bracket_for(Decimal(10**7), geneva_table) is geneva_table[-1]

    def test_marginal_rate(self, geneva_table):
        assert marginal_rate(Decimal(18480), geneva_table) == Decimal("0.08")
        assert marginal_rate(Decimal(80000), geneva_table) == Decimal("0.155")
        assert marginal_rate(Decimal(0), []) == 0


class TestTableFromPoints:
    """Linear interpolation between (amount, tax) anchors."""

    @pytest.fixture
    def points_table(self):
        return table_from_points([(1000, 10), (2000, 30), (4000, 90)])

    def test_exact_anchor(self, points_table):
        assert progressive_tax(Decimal(2000), points_table) == 30

    def test_between_anchors(self, points_table):
        assert progressive_tax(Decimal(3000), points_table) == 60

    def test_below_first_anchor_is_proportional(self, points_table):
        assert progressive_tax(Decimal(500), points_table) == 5

    def test_beyond_last_anchor_uses_last_slope(self, points_table):
        assert progressive_tax(Decimal(5000), points_table) == 120

    def test_unsorted_points(self):
        table = table_from_points([(2000, 30), (1000, 10)])
        assert progressive_tax(Decimal(1500), table) == 20

    def test_vaud_income_anchor(self, swiss_config):
        table = table_from_points(swiss_config.strategies.vaud.income_points)
        assert progressive_tax(Decimal(100000), table) == Decimal("9790")
        assert progressive_tax(Decimal(48000), table) == Decimal("3022.4")

    def test_single_point_rejected(self):
        with pytest.raises(ValueError, match="two anchor"):
            table_from_points([(1000, 10)])

    def test_zero_first_amount_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            table_from_points([(0, 0), (1000, 10)])
