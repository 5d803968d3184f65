"""Numeric input parsing.

Form fields arrive as free text. ``parse_amount`` keeps the difference between
"nothing entered", "zero" and "garbage" visible to the caller; the ``*_or_zero``
helpers collapse everything that is not a usable number to 0, which is what
the calculators use when fed raw form values.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

log = structlog.get_logger(__name__)

# Swiss formatting: 80'000, 80’000, "80 000 CHF"
_STRIP = ("'", "’", " ", " ", " ", "CHF", "chf", "Fr.")


@dataclass(frozen=True)
class Parsed:
    value: Optional[Decimal]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def missing(self) -> bool:
        return self.error is None and self.value is None

    def or_zero(self) -> Decimal:
        return self.value if self.ok and self.value is not None else Decimal(0)


def parse_amount(raw: Any) -> Parsed:
    if raw is None:
        return Parsed(None)
    if isinstance(raw, bool):
        return Parsed(None, f"not a number: {raw!r}")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    else:
        text = str(raw).strip()
        for token in _STRIP:
            text = text.replace(token, "")
        if not text:
            return Parsed(None)
        try:
            value = Decimal(text.replace(",", "."))
        except InvalidOperation:
            return Parsed(None, f"not a number: {raw!r}")
    if not value.is_finite():
        return Parsed(None, f"not a finite number: {raw!r}")
    return Parsed(value)


def parse_count(raw: Any) -> Parsed:
    res = parse_amount(raw)
    if not res.ok or res.value is None:
        return res
    if res.value != res.value.to_integral_value():
        return Parsed(None, f"not a whole number: {raw!r}")
    return res


def amount_or_zero(raw: Any) -> Decimal:
    res = parse_amount(raw)
    if not res.ok:
        log.debug("numeric_input_coerced", raw=raw, error=res.error)
    return res.or_zero()


def count_or_zero(raw: Any) -> int:
    res = parse_count(raw)
    if not res.ok:
        log.debug("count_input_coerced", raw=raw, error=res.error)
    return int(res.or_zero())
