"""Federal + cantonal + communal + ecclesiastical tax for one profile."""
from __future__ import annotations
from decimal import Decimal
from typing import Tuple

import structlog

from .cantons import CantonInput, cantonal_tax
from .federal import tax_federal
from .models import CantonTaxRule, SwitzerlandConfig, TaxResult, TaxSavings, chf
from .multipliers import canton_rule, commune_coefficient, ecclesiastical_rate
from .records import TaxProfile
from .rounding import cents

log = structlog.get_logger(__name__)

ZERO = Decimal(0)


def empty_result(profile: TaxProfile) -> TaxResult:
    return TaxResult(
        taxable_income=ZERO, taxable_wealth=ZERO, total_deductions=ZERO,
        federal=ZERO, cantonal=ZERO, communal=ZERO, ecclesiastical=ZERO,
        total=ZERO, effective_rate=0.0,
        canton=profile.canton or "", commune=profile.commune or "",
    )


def taxable_base(profile: TaxProfile, config: SwitzerlandConfig) -> Tuple[Decimal, Decimal, Decimal]:
    """(taxable income, taxable wealth, total deductions), both bases clamped at 0."""
    d = config.deductions
    children = chf(d.per_child) * profile.children
    couple = chf(d.married_couple) if profile.civil_status == "married" else ZERO
    deductions = profile.declared_deductions + children + couple
    income = max(ZERO, profile.annual_income - deductions)
    wealth = max(ZERO, profile.wealth - chf(d.wealth_exemption))
    return income, wealth, deductions


def _resolve_rule(config: SwitzerlandConfig, canton: str) -> CantonTaxRule:
    rule = canton_rule(config, canton)
    if rule is None:
        log.info("canton_not_in_table", canton=canton, fallback="generic")
        rule = CantonTaxRule(name=canton, strategy="generic", multiplier=1.0, communes={})
    return rule


def compute_tax(profile: TaxProfile, config: SwitzerlandConfig) -> TaxResult:
    if not profile.canton or not profile.commune or not profile.civil_status:
        log.debug("tax_missing_selection", canton=profile.canton,
                  commune=profile.commune, civil_status=profile.civil_status)
        return empty_result(profile)

    income, wealth, deductions = taxable_base(profile, config)
    rule = _resolve_rule(config, profile.canton)
    coeff = commune_coefficient(rule, profile.commune)

    federal = tax_federal(income, config.federal)
    local = cantonal_tax(
        CantonInput(
            taxable_income=income,
            taxable_wealth=wealth,
            civil_status=profile.civil_status,
            children=profile.children,
            canton_multiplier=chf(rule.multiplier),
            commune_coefficient=chf(coeff),
            rule=rule,
        ),
        config.strategies,
    )
    cantonal = cents(local.cantonal)
    communal = cents(local.communal)
    church = cents(cantonal * ecclesiastical_rate(config, profile.canton, profile.confession))

    total = federal + cantonal + communal + church
    gross = profile.annual_income
    effective = float(total / gross * 100) if gross > 0 else 0.0

    commune = rule.communes.get(profile.commune)
    return TaxResult(
        taxable_income=income,
        taxable_wealth=wealth,
        total_deductions=deductions,
        federal=federal,
        cantonal=cantonal,
        communal=communal,
        ecclesiastical=church,
        total=total,
        effective_rate=effective,
        canton=rule.name,
        commune=commune.name if commune else profile.commune,
        commune_coefficient=coeff,
        strategy=rule.strategy,
    )


def third_pillar_savings(profile: TaxProfile, config: SwitzerlandConfig) -> TaxSavings:
    """Tax saved by the 3rd-pillar deduction: two full passes, one field changed."""
    with_deduction = compute_tax(profile, config)
    without = compute_tax(profile.model_copy(update={"deduction_third_pillar": ZERO}), config)
    return TaxSavings(
        with_deduction=with_deduction,
        without_deduction=without,
        savings=without.total - with_deduction.total,
    )
