from decimal import Decimal
from typing import Optional

import structlog

from .models import CantonTaxRule, SwitzerlandConfig, chf

log = structlog.get_logger(__name__)


def apply_multiplier(simple_tax: Decimal, rate: float | Decimal) -> Decimal:
    """
    Cantonal and communal multipliers each apply to the simple tax
    independently: cantonal = simple * canton rate, communal = simple * commune rate.
    """
    return simple_tax * chf(rate)


def canton_rule(config: SwitzerlandConfig, canton: Optional[str]) -> Optional[CantonTaxRule]:
    if not canton:
        return None
    return config.cantons.get(canton)


def commune_coefficient(rule: Optional[CantonTaxRule], commune: Optional[str]) -> float:
    """Communal multiplier; falls back to the canton default for unknown communes."""
    if rule is None:
        return 1.0
    entry = rule.communes.get(commune) if commune else None
    if entry is None:
        log.debug("commune_not_in_table", canton=rule.name, commune=commune,
                  fallback=rule.default_commune_coefficient)
        return rule.default_commune_coefficient
    return entry.coefficient


def ecclesiastical_rate(config: SwitzerlandConfig, canton: Optional[str], confession: Optional[str]) -> Decimal:
    if not canton or not confession or confession == "none":
        return Decimal(0)
    rates = config.ecclesiastical.get(canton)
    if not rates or confession not in rates:
        return Decimal(0)
    return chf(rates[confession])
