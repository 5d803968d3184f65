"""Three-pillar summary: retirement, disability and death cover plus the
retirement income timeline."""
from __future__ import annotations
from decimal import Decimal
from typing import List, Optional

from .models import (
    AVSPensions, LPPAnalysis, PensionSummary, Rent, ThirdPillarAnalysis,
    TimelineCfg, TimelinePoint,
)

ZERO = Decimal(0)


def timeline_ages(current_age: int, cfg: TimelineCfg) -> List[int]:
    ages = {current_age, cfg.retirement_age, cfg.horizon_age}
    step = cfg.step_years
    start = -(-current_age // step) * step  # next multiple of step
    ages.update(range(start, cfg.horizon_age + 1, step))
    return sorted(ages)


def retirement_timeline(
    current_age: int,
    annual_salary: Decimal,
    avs_annual: Decimal,
    lpp_annual: Decimal,
    third_pillar_annual: Decimal,
    cfg: TimelineCfg,
) -> List[TimelinePoint]:
    """Salary until the retirement age, pillar rents from it on."""
    points = []
    for age in timeline_ages(current_age, cfg):
        if age < cfg.retirement_age:
            points.append(TimelinePoint(age, annual_salary, ZERO, ZERO, ZERO))
        else:
            points.append(TimelinePoint(age, ZERO, avs_annual, lpp_annual, third_pillar_annual))
    return points


def pension_summary(
    avs: Optional[AVSPensions],
    lpp: LPPAnalysis,
    third_pillar: ThirdPillarAnalysis,
    cfg: TimelineCfg,
    current_age: Optional[int] = None,
    annual_salary: Decimal = ZERO,
) -> PensionSummary:
    if avs is not None:
        avs_retirement = avs.old_age + avs.children_total
        avs_disability = avs.disability + avs.children_total
        avs_widow = avs.widow.annual
    else:
        avs_retirement = avs_disability = Rent(ZERO, ZERO)
        avs_widow = ZERO
    third_rent = Rent.from_annual(third_pillar.total_projected_annual_rent)

    retirement = {"avs": avs_retirement, "lpp": lpp.rent_65, "third_pillar": third_rent}
    timeline = []
    if current_age is not None:
        timeline = retirement_timeline(
            current_age,
            annual_salary,
            avs_retirement.annual,
            lpp.rent_65.annual,
            third_rent.annual,
            cfg,
        )

    return PensionSummary(
        retirement_annual={k: r.annual for k, r in retirement.items()},
        retirement_monthly={k: r.monthly for k, r in retirement.items()},
        disability_annual={"avs": avs_disability.annual, "lpp": lpp.disability.annual},
        death_capital={"lpp": lpp.total_death_capital, "third_pillar": third_pillar.total_death_capital},
        survivor_annual={"avs": avs_widow, "lpp": lpp.widow.annual + lpp.orphan.annual},
        timeline=timeline,
    )
