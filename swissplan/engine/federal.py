"""Direct federal tax, single-person scale.

Each segment of the scale gives the tax due at its anchor and a rate per 100
CHF above it. The first segment is the tax-free band. The annual tax is
rounded to cents. Scales published per hundred francs can set
``rounding.per_100_step`` to count the excess in whole steps instead. The
canton plays no part here.
"""
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Any, Dict

from .models import FedSegment, FederalConfig, chf
from .rounding import cents

OPEN_END = 10**12


def segment_for(income: int | Decimal, cfg: FederalConfig) -> FedSegment:
    for seg in cfg.segments:
        upper = seg.to if seg.to is not None else OPEN_END
        if income < upper:
            return seg
    return cfg.segments[-1]


def counted_income(delta: Decimal, cfg: FederalConfig) -> Decimal:
    """Part of the income above the segment anchor that the scale actually taxes."""
    r = cfg.rounding
    if not r.per_100_step:
        return delta
    mode = ROUND_CEILING if r.step_mode == "ceil" else ROUND_FLOOR
    steps = (delta / r.step_size).to_integral_value(rounding=mode)
    return steps * r.step_size


def tax_federal(income: Decimal, cfg: FederalConfig) -> Decimal:
    amount = max(Decimal(0), chf(income))
    seg = segment_for(amount, cfg)
    counted = counted_income(max(Decimal(0), amount - seg.at_income), cfg)
    return cents(chf(seg.base_tax_at) + chf(seg.per100) * counted / 100)


def federal_marginal_hundreds(income: Decimal, cfg: FederalConfig) -> float:
    """Tax added by the hundred-franc block that contains ``income``, per franc."""
    block = max(0, int(income)) // 100 * 100
    previous = max(block - 100, 0)
    added = tax_federal(Decimal(block), cfg) - tax_federal(Decimal(previous), cfg)
    return float(added / 100)


def federal_segment_info(income: Decimal | int, cfg: FederalConfig) -> Dict[str, Any]:
    seg = segment_for(max(0, int(income)), cfg)
    return {
        "from": seg.from_,
        "to": seg.to,
        "at_income": seg.at_income,
        "base_tax_at": float(seg.base_tax_at),
        "per100": float(seg.per100),
    }
