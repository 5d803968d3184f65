from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .models import ThirdPillarAnalysis, ThirdPillarCfg, ThirdPillarProjection, chf
from .records import ThirdPillarAccount
from .rounding import cents

ZERO = Decimal(0)


def current_age(date_of_birth: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Age by calendar year difference, the way the age is shown in the household profile."""
    if date_of_birth is None:
        return None
    today = today or date.today()
    return today.year - date_of_birth.year


def calculate_third_pillar_projection(
    account: ThirdPillarAccount, age: int, cfg: ThirdPillarCfg
) -> ThirdPillarProjection:
    years = max(0, cfg.retirement_age - age)
    growth = 1 + chf(account.return_rate) / 100

    projected = account.current_amount
    for _ in range(years):
        projected = projected * growth + account.annual_contribution
    projected = cents(projected)

    # premium waiver: the insurer keeps paying into a 3a policy after disability
    if account.account_type == "3a_insurance":
        disability_capital = projected
    else:
        disability_capital = account.current_amount

    return ThirdPillarProjection(
        account_id=account.id,
        institution_name=account.institution_name,
        account_type=account.account_type,
        current_amount=account.current_amount,
        annual_contribution=account.annual_contribution,
        years_to_retirement=years,
        return_rate=account.return_rate,
        projected_amount=projected,
        projected_annual_rent=cents(projected / cfg.payout_years),
        death_capital=account.current_amount,
        disability_capital=disability_capital,
    )


def third_pillar_analysis(
    accounts: Iterable[ThirdPillarAccount], age: int, cfg: ThirdPillarCfg
) -> ThirdPillarAnalysis:
    projections = [calculate_third_pillar_projection(a, age, cfg) for a in accounts if a.is_active]
    return ThirdPillarAnalysis(
        total_current_amount=sum((p.current_amount for p in projections), ZERO),
        total_annual_contribution=sum((p.annual_contribution for p in projections), ZERO),
        total_projected_amount=sum((p.projected_amount for p in projections), ZERO),
        total_projected_annual_rent=sum((p.projected_annual_rent for p in projections), ZERO),
        total_death_capital=sum((p.death_capital for p in projections), ZERO),
        total_disability_capital=sum((p.disability_capital for p in projections), ZERO),
        accounts=projections,
    )
