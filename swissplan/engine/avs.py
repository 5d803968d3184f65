"""AVS (1st pillar) pensions from the Echelle 44 scale.

The scale is a published table of (income bound, full monthly pension) rows.
A determinant income takes the first row whose bound reaches it, with the
minimum pension at or below the lowest bound and the maximum from the
highest one. A record shorter than the full 44 years reduces every pension
pro rata.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Iterable, List, Tuple

from .models import AVSPensions, AVSScaleCfg, Rent, chf
from .records import AVSAccount, YearlyIncome
from .rounding import francs

ZERO = Decimal(0)


def avs_scale(cfg: AVSScaleCfg) -> List[Tuple[Decimal, Decimal]]:
    """[(income bound, full monthly pension)], ascending."""
    return [(Decimal(bound), Decimal(pension)) for bound, pension in cfg.scale]


def full_monthly_pension(income: Decimal, cfg: AVSScaleCfg) -> Decimal:
    if income <= 0:
        return ZERO
    if income <= cfg.min_income:
        return Decimal(cfg.min_monthly)
    if income >= cfg.max_income:
        return Decimal(cfg.max_monthly)
    for bound, pension in avs_scale(cfg):
        if income <= bound:
            return pension
    return Decimal(cfg.max_monthly)


_rent = Rent.from_monthly


def contribution_coefficient(years: int, cfg: AVSScaleCfg) -> Decimal:
    full = cfg.full_contribution_years
    return Decimal(min(max(years, 0), full)) / Decimal(full)


def calculate_avs_pensions(
    income: Decimal,
    cfg: AVSScaleCfg,
    years_contributed: int | None = None,
    children: int = 0,
) -> AVSPensions:
    years = cfg.full_contribution_years if years_contributed is None else years_contributed
    coeff = contribution_coefficient(years, cfg)
    full = full_monthly_pension(income, cfg)
    old_age = francs(full * coeff)
    return AVSPensions(
        determinant_income=income,
        years_contributed=years,
        coefficient=float(coeff),
        full_old_age=_rent(full),
        old_age=_rent(old_age),
        disability=_rent(francs(old_age * chf(cfg.disability_ratio))),
        widow=_rent(francs(old_age * chf(cfg.widow_ratio))),
        child=_rent(francs(old_age * chf(cfg.child_ratio))),
        children=children,
    )


def average_determinant_income(incomes: Iterable[YearlyIncome]) -> Tuple[Decimal, int]:
    """Arithmetic mean over the years with a positive income, and that year count.

    No revalorisation: every year counts at its nominal amount.
    """
    filled = [y.income for y in incomes if y.income is not None and y.income > 0]
    if not filled:
        return ZERO, 0
    return francs(sum(filled, ZERO) / len(filled)), len(filled)


def pensions_for_account(account: AVSAccount, cfg: AVSScaleCfg) -> AVSPensions:
    if account.yearly_incomes:
        income, years = average_determinant_income(account.yearly_incomes)
    else:
        income, years = account.average_annual_income_determinant, account.years_contributed
    return calculate_avs_pensions(income, cfg, years, account.number_of_children)


def contribution_years_range(birth_year: int, current_year: int, gender: str | None = None) -> range:
    """Years in which AVS contributions are due: from age 20 up to retirement or now."""
    retirement_age = 64 if gender == "F" else 65
    start = birth_year + 20
    end = min(current_year, birth_year + retirement_age)
    return range(start, end + 1)
