from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

from .models import BracketCfg, TaxBracket, chf


def build_table(brackets: Sequence[BracketCfg]) -> List[TaxBracket]:
    """
    Turn (lower, rate_percent) rows into TaxBracket rows, deriving each row's
    cumulative base from the rows below it. The last row is open-ended.
    """
    table: List[TaxBracket] = []
    base = Decimal(0)
    for idx, b in enumerate(brackets):
        lower = chf(b.lower)
        rate = chf(b.rate_percent) / Decimal(100)
        if idx > 0:
            prev = table[-1]
            base += (lower - prev.lower) * prev.rate
        table.append(TaxBracket(lower=lower, rate=rate, base=base))
    return table


def table_from_points(points: Iterable[Tuple[float, float]]) -> List[TaxBracket]:
    """
    Build a table equivalent to linear interpolation between (amount, tax)
    anchors: proportional below the first anchor, last slope beyond the last.
    """
    pts = sorted((chf(a), chf(t)) for a, t in points)
    if len(pts) < 2:
        raise ValueError("At least two anchor points are required")
    first_amount, first_tax = pts[0]
    if first_amount <= 0:
        raise ValueError("Anchor amounts must be positive")
    table = [TaxBracket(lower=Decimal(0), rate=first_tax / first_amount, base=Decimal(0))]
    for (a0, t0), (a1, t1) in zip(pts, pts[1:]):
        table.append(TaxBracket(lower=a0, rate=(t1 - t0) / (a1 - a0), base=t0))
    last_amount, last_tax = pts[-1]
    table.append(TaxBracket(lower=last_amount, rate=table[-1].rate, base=last_tax))
    return table


def bracket_for(amount: Decimal, table: Sequence[TaxBracket]) -> TaxBracket:
    # first bracket whose upper bound (next lower) reaches the amount
    for current, nxt in zip(table, table[1:]):
        if amount <= nxt.lower:
            return current
    return table[-1]


def progressive_tax(amount: Decimal, table: Sequence[TaxBracket]) -> Decimal:
    if amount < 0:
        raise ValueError("Taxable amount must be non-negative; clamp before calling")
    if not table or amount == 0:
        return Decimal(0)
    b = bracket_for(amount, table)
    return b.base + (amount - b.lower) * b.rate


def marginal_rate(amount: Decimal, table: Sequence[TaxBracket]) -> Decimal:
    """Rate applying to the next franc above ``amount``."""
    if not table:
        return Decimal(0)
    return bracket_for(amount + 1, table).rate
