"""Input records consumed by the calculators.

Every record is frozen: build it once from persisted or form values, pass it
to a formula, throw it away.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    CIVIL_STATUSES, CONFESSIONS, CivilStatus, Confession, InsuranceType,
    SwitzerlandConfig, ThirdPillarType,
)
from .parsing import amount_or_zero, count_or_zero, parse_amount, parse_count

_FROZEN = ConfigDict(frozen=True)

# form field -> TaxProfile field
TAX_FORM_AMOUNTS = {
    "income": "annual_income",
    "wealth": "wealth",
    "third_pillar": "deduction_third_pillar",
    "mortgage_interest": "deduction_mortgage_interest",
    "social_charges": "deduction_social_charges",
    "other_deductions": "deduction_other",
}


class TaxProfile(BaseModel):
    model_config = _FROZEN

    canton: Optional[str] = None
    commune: Optional[str] = None
    civil_status: Optional[CivilStatus] = None
    confession: Confession = "none"
    annual_income: Decimal = Field(default=Decimal(0), ge=0)
    wealth: Decimal = Field(default=Decimal(0), ge=0)
    children: int = Field(default=0, ge=0)
    deduction_third_pillar: Decimal = Field(default=Decimal(0), ge=0)
    deduction_mortgage_interest: Decimal = Field(default=Decimal(0), ge=0)
    deduction_social_charges: Decimal = Field(default=Decimal(0), ge=0)
    deduction_other: Decimal = Field(default=Decimal(0), ge=0)

    @property
    def declared_deductions(self) -> Decimal:
        return (
            self.deduction_third_pillar
            + self.deduction_mortgage_interest
            + self.deduction_social_charges
            + self.deduction_other
        )

    @classmethod
    def from_form(cls, fields: Mapping[str, Any]) -> "TaxProfile":
        """Lenient construction: unparseable or negative numbers become 0,
        unknown civil status / confession values are dropped."""
        status = _choice(fields.get("civil_status"), CIVIL_STATUSES)
        confession = _choice(fields.get("confession"), CONFESSIONS) or "none"
        amounts = {
            attr: max(Decimal(0), amount_or_zero(fields.get(key)))
            for key, attr in TAX_FORM_AMOUNTS.items()
        }
        return cls(
            canton=_text(fields.get("canton")),
            commune=_text(fields.get("commune")),
            civil_status=status,
            confession=confession,
            children=max(0, count_or_zero(fields.get("children"))),
            **amounts,
        )


def validate_tax_form(
    fields: Mapping[str, Any], config: SwitzerlandConfig
) -> Tuple[Optional[TaxProfile], List[str]]:
    """Strict counterpart of ``TaxProfile.from_form``.

    Returns the profile only when every field is usable, plus the list of
    problems found.
    """
    errors: List[str] = []

    canton = _text(fields.get("canton"))
    commune = _text(fields.get("commune"))
    if canton is None:
        errors.append("canton: required")
    elif canton not in config.cantons:
        errors.append(f"canton: unknown canton '{canton}'")
    if commune is None:
        errors.append("commune: required")
    elif canton in config.cantons and commune not in config.cantons[canton].communes:
        errors.append(f"commune: '{commune}' is not a commune of {canton}")

    status = _text(fields.get("civil_status"))
    if status is None:
        errors.append("civil_status: required")
    elif status not in CIVIL_STATUSES:
        errors.append(f"civil_status: must be one of {', '.join(CIVIL_STATUSES)}")

    confession = _text(fields.get("confession")) or "none"
    if confession not in CONFESSIONS:
        errors.append(f"confession: must be one of {', '.join(CONFESSIONS)}")

    income = parse_amount(fields.get("income"))
    if income.missing:
        errors.append("income: required")

    for key in TAX_FORM_AMOUNTS:
        res = parse_amount(fields.get(key))
        if not res.ok:
            errors.append(f"{key}: {res.error}")
        elif res.value is not None and res.value < 0:
            errors.append(f"{key}: must be non-negative")

    children = parse_count(fields.get("children"))
    if not children.ok:
        errors.append(f"children: {children.error}")
    elif children.value is not None and children.value < 0:
        errors.append("children: must be non-negative")

    if errors:
        return None, errors
    return TaxProfile.from_form(fields), []


class YearlyIncome(BaseModel):
    model_config = _FROZEN

    year: int
    income: Optional[Decimal] = None
    is_estimated: bool = False


class AVSAccount(BaseModel):
    model_config = _FROZEN

    id: str = ""
    owner_name: str = ""
    marital_status: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    average_annual_income_determinant: Decimal = Field(default=Decimal(0), ge=0)
    years_contributed: int = Field(default=44, ge=0)
    number_of_children: int = Field(default=0, ge=0)
    is_active: bool = True
    yearly_incomes: Tuple[YearlyIncome, ...] = ()


class LPPAccount(BaseModel):
    model_config = _FROZEN

    id: str = ""
    provider_name: str = ""
    plan_name: Optional[str] = None
    is_active: bool = True
    current_retirement_savings: Decimal = Decimal(0)
    employee_savings_contribution: Decimal = Decimal(0)
    employer_savings_contribution: Decimal = Decimal(0)
    interest_rate: float = 0.0
    conversion_rate_at_65: Optional[float] = None
    # certificate figures
    projected_savings_at_65: Optional[Decimal] = None
    projected_retirement_rent_at_60: Optional[Decimal] = None
    projected_retirement_rent_at_61: Optional[Decimal] = None
    projected_retirement_rent_at_62: Optional[Decimal] = None
    projected_retirement_rent_at_63: Optional[Decimal] = None
    projected_retirement_rent_at_64: Optional[Decimal] = None
    projected_retirement_rent_at_65: Optional[Decimal] = None
    disability_rent_annual: Optional[Decimal] = None
    child_disability_rent_annual: Optional[Decimal] = None
    widow_rent_annual: Optional[Decimal] = None
    orphan_rent_annual: Optional[Decimal] = None
    death_capital: Optional[Decimal] = None
    additional_death_capital: Optional[Decimal] = None
    waiting_period_days: int = 0

    @property
    def annual_savings_contribution(self) -> Decimal:
        return self.employee_savings_contribution + self.employer_savings_contribution

    def certificate_rent_at(self, age: int) -> Optional[Decimal]:
        value = getattr(self, f"projected_retirement_rent_at_{age}", None)
        return value if value else None


class ThirdPillarAccount(BaseModel):
    model_config = _FROZEN

    id: str = ""
    account_type: ThirdPillarType = "3a_bank"
    institution_name: str = ""
    current_amount: Decimal = Decimal(0)
    annual_contribution: Decimal = Decimal(0)
    return_rate: float = 0.0
    is_active: bool = True


class InsuranceContract(BaseModel):
    model_config = _FROZEN

    id: str = ""
    insurance_type: InsuranceType
    company_name: str = ""
    annual_premium: Decimal = Decimal(0)
    death_capital: Optional[Decimal] = None
    disability_rent_annual: Optional[Decimal] = None
    is_active: bool = True


class InvestmentAsset(BaseModel):
    model_config = _FROZEN

    id: str = ""
    asset_name: str = ""
    asset_type: str = "autres"
    quantity: Decimal = Decimal(0)
    purchase_price: Decimal = Decimal(0)
    current_price: Decimal = Decimal(0)
    currency: str = "CHF"
    is_active: bool = True

    @property
    def invested(self) -> Decimal:
        return self.quantity * self.purchase_price

    @property
    def market_value(self) -> Decimal:
        return self.quantity * (self.current_price or self.purchase_price)


class Household(BaseModel):
    """Everything the pension and aggregation views need about one person."""
    model_config = _FROZEN

    name: str = ""
    date_of_birth: Optional[date] = None
    annual_salary: Decimal = Field(default=Decimal(0), ge=0)
    tax: Dict[str, Any] = Field(default_factory=dict)
    avs: Optional[AVSAccount] = None
    lpp: Tuple[LPPAccount, ...] = ()
    third_pillar: Tuple[ThirdPillarAccount, ...] = ()
    insurance: Tuple[InsuranceContract, ...] = ()
    investments: Tuple[InvestmentAsset, ...] = ()

    @property
    def tax_profile(self) -> TaxProfile:
        return TaxProfile.from_form(self.tax)


def _text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _choice(raw: Any, allowed) -> Optional[str]:
    text = _text(raw)
    return text if text in allowed else None
