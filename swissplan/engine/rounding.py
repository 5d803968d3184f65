from decimal import Decimal
from .models import round_to_increment

CENTS = Decimal("0.01")
FRANC = Decimal(1)


def cents(amount: Decimal) -> Decimal:
    return round_to_increment(amount, CENTS)


def francs(amount: Decimal) -> Decimal:
    return round_to_increment(amount, FRANC)
