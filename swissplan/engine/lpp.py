"""LPP (2nd pillar) projections.

Figures printed on the pension certificate always win; a projection from the
current savings only fills the fields the certificate leaves empty.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Iterable, List, Optional

import structlog

from .models import (
    LPPAnalysis, LPPCfg, LPPProjection, RetirementOption, Rent, chf,
)
from .records import LPPAccount
from .rounding import cents

log = structlog.get_logger(__name__)

ZERO = Decimal(0)


def project_capital(current: Decimal, contribution: Decimal, rate_percent: float, years: int) -> Decimal:
    """Yearly compounding: interest on the balance, then the year's contribution."""
    growth = 1 + chf(rate_percent) / 100
    capital = current
    for _ in range(max(0, years)):
        capital = capital * growth + contribution
    return cents(capital)


def conversion_rate(account: LPPAccount, cfg: LPPCfg, age: int) -> Decimal:
    """Conversion rate in percent at `age`, reduced for each year before the ordinary age."""
    base = chf(account.conversion_rate_at_65 or cfg.conversion_rate_percent)
    early = max(0, cfg.retirement_age - age)
    return max(ZERO, base - chf(cfg.early_conversion_reduction_percent) * early)


def _projected_rent(account: LPPAccount, cfg: LPPCfg, age: int, current_age: Optional[int]) -> Optional[Decimal]:
    if current_age is None or current_age > age:
        return None
    capital = project_capital(
        account.current_retirement_savings,
        account.annual_savings_contribution,
        account.interest_rate,
        age - current_age,
    )
    return cents(capital * conversion_rate(account, cfg, age) / 100)


def calculate_lpp_projection(
    account: LPPAccount, cfg: LPPCfg, current_age: Optional[int] = None
) -> LPPProjection:
    years = max(0, cfg.retirement_age - current_age) if current_age is not None else 0
    if account.projected_savings_at_65:
        savings_65 = account.projected_savings_at_65
    else:
        savings_65 = project_capital(
            account.current_retirement_savings,
            account.annual_savings_contribution,
            account.interest_rate,
            years,
        )

    annual_65 = account.certificate_rent_at(cfg.retirement_age)
    if annual_65 is None:
        annual_65 = cents(savings_65 * conversion_rate(account, cfg, cfg.retirement_age) / 100)
    rent_65 = Rent.from_annual(annual_65)

    options: List[RetirementOption] = []
    for age in cfg.early_retirement_ages:
        annual = account.certificate_rent_at(age) or _projected_rent(account, cfg, age, current_age)
        if annual:
            pair = Rent.from_annual(annual)
            options.append(RetirementOption(age=age, annual_rent=pair.annual, monthly_rent=pair.monthly))

    disability = Rent.from_annual(account.disability_rent_annual or annual_65)
    child_disability = (
        Rent.from_annual(account.child_disability_rent_annual)
        if account.child_disability_rent_annual
        else disability.scaled(cfg.child_disability_ratio)
    )
    widow = (
        Rent.from_annual(account.widow_rent_annual)
        if account.widow_rent_annual
        else rent_65.scaled(cfg.widow_ratio)
    )
    orphan = (
        Rent.from_annual(account.orphan_rent_annual)
        if account.orphan_rent_annual
        else rent_65.scaled(cfg.orphan_ratio)
    )

    if account.death_capital is None and account.additional_death_capital is None:
        death_capital = account.current_retirement_savings
    else:
        death_capital = (account.death_capital or ZERO) + (account.additional_death_capital or ZERO)

    return LPPProjection(
        account_id=account.id,
        provider_name=account.provider_name,
        current_savings=account.current_retirement_savings,
        projected_savings_65=savings_65,
        rent_65=rent_65,
        retirement_options=options,
        disability=disability,
        child_disability=child_disability,
        widow=widow,
        orphan=orphan,
        death_capital=death_capital,
        waiting_period_days=account.waiting_period_days,
    )


def lpp_analysis(accounts: Iterable[LPPAccount], cfg: LPPCfg, current_age: Optional[int] = None) -> LPPAnalysis:
    projections = [
        calculate_lpp_projection(a, cfg, current_age) for a in accounts if a.is_active
    ]
    log.debug("lpp_analysis", accounts=len(projections))

    def total(attr: str) -> Rent:
        return Rent.from_annual(sum((getattr(p, attr).annual for p in projections), ZERO))

    return LPPAnalysis(
        total_accounts=len(projections),
        total_current_savings=sum((p.current_savings for p in projections), ZERO),
        total_projected_savings_65=sum((p.projected_savings_65 for p in projections), ZERO),
        rent_65=total("rent_65"),
        disability=total("disability"),
        widow=total("widow"),
        orphan=total("orphan"),
        total_death_capital=sum((p.death_capital for p in projections), ZERO),
        accounts=projections,
    )
