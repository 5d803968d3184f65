"""Insurance and investment aggregation over active records."""
from __future__ import annotations
from decimal import Decimal
from typing import Dict, Iterable, List

from .models import (
    AssetGroup, GroupTotal, InsuranceAnalysis, InsuranceCfg, PortfolioSummary,
)
from .records import InsuranceContract, InvestmentAsset

ZERO = Decimal(0)


def _share(part: Decimal, whole: Decimal) -> float:
    return float(part / whole * 100) if whole > 0 else 0.0


def group_of(insurance_type: str, cfg: InsuranceCfg) -> str | None:
    for group, types in cfg.groups.items():
        if insurance_type in types:
            return group
    return None


def insurance_analysis(contracts: Iterable[InsuranceContract], cfg: InsuranceCfg) -> InsuranceAnalysis:
    active: List[InsuranceContract] = [c for c in contracts if c.is_active]
    total_premium = sum((c.annual_premium for c in active), ZERO)

    by_type: Dict[str, List[Decimal]] = {}
    by_group: Dict[str, List[Decimal]] = {g: [] for g in cfg.groups}
    for c in active:
        by_type.setdefault(c.insurance_type, []).append(c.annual_premium)
        group = group_of(c.insurance_type, cfg)
        if group is not None:
            by_group[group].append(c.annual_premium)

    def totals(premiums: List[Decimal]) -> GroupTotal:
        amount = sum(premiums, ZERO)
        return GroupTotal(count=len(premiums), amount=amount, percentage=_share(amount, total_premium))

    return InsuranceAnalysis(
        total_annual_premium=total_premium,
        total_death_capital=sum((c.death_capital or ZERO for c in active), ZERO),
        total_disability_rent=sum((c.disability_rent_annual or ZERO for c in active), ZERO),
        by_group={g: totals(p) for g, p in by_group.items()},
        by_type={t: totals(p) for t, p in by_type.items()},
        contract_count=len(active),
    )


def portfolio_summary(assets: Iterable[InvestmentAsset]) -> PortfolioSummary:
    active = [a for a in assets if a.is_active]
    current_value = sum((a.market_value for a in active), ZERO)
    invested = sum((a.invested for a in active), ZERO)

    grouped: Dict[str, List[InvestmentAsset]] = {}
    for a in active:
        grouped.setdefault(a.asset_type, []).append(a)

    by_type = {}
    for asset_type, items in grouped.items():
        value = sum((a.market_value for a in items), ZERO)
        cost = sum((a.invested for a in items), ZERO)
        by_type[asset_type] = AssetGroup(
            count=len(items),
            value=value,
            invested=cost,
            gain_loss=value - cost,
            percentage=_share(value, current_value),
            return_percent=_share(value - cost, cost),
        )

    gain = current_value - invested
    return PortfolioSummary(
        total_invested=invested,
        current_value=current_value,
        total_gain_loss=gain,
        percentage_change=float(gain / invested * 100) if invested > 0 else 0.0,
        asset_count=len(active),
        by_type=by_type,
    )
