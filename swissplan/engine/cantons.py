"""Cantonal and communal income/wealth tax.

Each canton names one of four strategies in its config entry. A strategy gets
the already-clamped taxable income and wealth and returns the cantonal and
communal amounts; ecclesiastical tax is derived from the cantonal amount by
the caller.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Callable, Dict

import structlog

from .brackets import build_table, progressive_tax, table_from_points
from .models import CantonalTax, CantonTaxRule, StrategyParams, chf
from .multipliers import apply_multiplier

log = structlog.get_logger(__name__)

FAMILY_STATUSES = ("married", "single_parent")


@dataclass(frozen=True)
class CantonInput:
    taxable_income: Decimal
    taxable_wealth: Decimal
    civil_status: str
    children: int
    canton_multiplier: Decimal
    commune_coefficient: Decimal
    rule: CantonTaxRule


def geneva_tax(inp: CantonInput, params: StrategyParams) -> CantonalTax:
    p = params.geneva
    income = inp.taxable_income
    split = chf(p.splitting.get(inp.civil_status, 1.0))
    rate_income = income * split

    base = progressive_tax(rate_income, build_table(p.brackets))
    if split < 1 and rate_income > 0:
        # rate of the split income, applied to the whole income
        base = base * income / rate_income

    cantonal = (
        base
        * (1 + chf(p.centimes_additionnels))
        * chf(p.rebate_factor)
        * (1 + chf(p.home_care_levy))
    )
    communal = apply_multiplier(base, inp.commune_coefficient)
    return CantonalTax(cantonal=cantonal, communal=communal, simple=base)


def vaud_quotient(civil_status: str, children: int, params: StrategyParams) -> Decimal:
    q = params.vaud.quotient
    by_status = {"single": q.single, "married": q.married, "single_parent": q.single_parent}
    return chf(by_status.get(civil_status, q.single)) + chf(q.per_child) * children


def vaud_tax(inp: CantonInput, params: StrategyParams) -> CantonalTax:
    p = params.vaud
    quotient = vaud_quotient(inp.civil_status, inp.children, params)
    step = Decimal(p.quotient_floor_step)
    per_part = (inp.taxable_income / quotient / step).to_integral_value(rounding=ROUND_FLOOR) * step

    income_tax = progressive_tax(per_part, table_from_points(p.income_points)) * quotient
    wealth = inp.taxable_wealth
    if wealth < chf(p.wealth_exemption):
        wealth_tax = Decimal(0)
    else:
        wealth_tax = progressive_tax(wealth, table_from_points(p.wealth_points))

    simple = income_tax + wealth_tax
    return CantonalTax(
        cantonal=apply_multiplier(simple, inp.canton_multiplier),
        communal=apply_multiplier(simple, inp.commune_coefficient),
        simple=simple,
    )


def romandie_tax(inp: CantonInput, params: StrategyParams) -> CantonalTax:
    p = params.romandie
    table_key = inp.rule.bracket_table or "standard"
    income = max(Decimal(0), inp.taxable_income - chf(inp.rule.child_deduction) * inp.children)

    income_tax = progressive_tax(income, build_table(p.tables[table_key]))
    if inp.civil_status in FAMILY_STATUSES:
        income_tax *= 1 - chf(p.family_reduction)
    wealth_tax = max(Decimal(0), inp.taxable_wealth - chf(p.wealth_exemption)) * chf(p.wealth_rate)

    simple = income_tax + wealth_tax
    return CantonalTax(
        cantonal=apply_multiplier(simple, inp.canton_multiplier),
        communal=apply_multiplier(simple, inp.commune_coefficient),
        simple=simple,
    )


def generic_tax(inp: CantonInput, params: StrategyParams) -> CantonalTax:
    p = params.generic
    income, wealth = inp.taxable_income, inp.taxable_wealth
    cantonal_base = income * chf(p.cantonal_income_rate) + wealth * chf(p.cantonal_wealth_rate)
    communal_base = income * chf(p.communal_income_rate) + wealth * chf(p.communal_wealth_rate)
    return CantonalTax(
        cantonal=apply_multiplier(cantonal_base, inp.canton_multiplier),
        communal=apply_multiplier(communal_base, inp.commune_coefficient),
        simple=cantonal_base,
    )


Strategy = Callable[[CantonInput, StrategyParams], CantonalTax]

STRATEGIES: Dict[str, Strategy] = {
    "geneva": geneva_tax,
    "vaud": vaud_tax,
    "romandie": romandie_tax,
    "generic": generic_tax,
}


def strategy_for(tag: str) -> Strategy:
    strategy = STRATEGIES.get(tag)
    if strategy is None:
        log.warning("unknown_strategy_fallback", strategy=tag, fallback="generic")
        return generic_tax
    return strategy


def cantonal_tax(inp: CantonInput, params: StrategyParams) -> CantonalTax:
    return strategy_for(inp.rule.strategy)(inp, params)
