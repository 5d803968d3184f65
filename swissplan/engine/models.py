from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import List, Optional, Literal, Dict, Tuple
from pydantic import BaseModel, Field, ConfigDict

getcontext().prec = 28

CHF = Decimal

CivilStatus = Literal["single", "married", "single_parent"]
Confession = Literal["none", "catholic", "protestant", "catholic_christian"]
StrategyTag = Literal["geneva", "vaud", "romandie", "generic"]
InsuranceType = Literal[
    "health_basic", "health_complementary", "household", "liability", "vehicle",
    "legal_protection", "life", "disability", "loss_of_earnings",
]
ThirdPillarType = Literal["3a_bank", "3a_insurance", "3b"]

CIVIL_STATUSES = ("single", "married", "single_parent")
CONFESSIONS = ("none", "catholic", "protestant", "catholic_christian")


# ---------------------------------------------------------------------------
# Tax configuration (configs/<year>/switzerland.yaml)
# ---------------------------------------------------------------------------

class BracketCfg(BaseModel):
    lower: int
    rate_percent: float


class FedSegment(BaseModel):
    from_: int = Field(alias="from")
    to: Optional[int] = None
    at_income: int
    base_tax_at: float
    per100: float


class FedRoundCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")
    per_100_step: bool = True
    step_size: int = 100
    step_mode: Literal["ceil", "floor"] = "floor"


class FederalConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    currency: Literal["CHF"]
    rounding: FedRoundCfg
    segments: List[FedSegment]
    notes: Optional[str] = None


class GeneralDeductions(BaseModel):
    per_child: float = 6500
    married_couple: float = 2600
    wealth_exemption: float = 100000


class GenevaParams(BaseModel):
    splitting: Dict[str, float]
    centimes_additionnels: float
    rebate_factor: float
    home_care_levy: float
    brackets: List[BracketCfg]


class VaudQuotient(BaseModel):
    single: float = 1.0
    married: float = 1.8
    single_parent: float = 1.3
    per_child: float = 0.5


class VaudParams(BaseModel):
    quotient: VaudQuotient
    quotient_floor_step: int = 100
    wealth_exemption: float = 50000
    income_points: List[Tuple[float, float]]
    wealth_points: List[Tuple[float, float]]


class RomandieParams(BaseModel):
    family_reduction: float
    wealth_rate: float
    wealth_exemption: float
    tables: Dict[str, List[BracketCfg]]


class GenericParams(BaseModel):
    cantonal_income_rate: float
    cantonal_wealth_rate: float
    communal_income_rate: float
    communal_wealth_rate: float


class StrategyParams(BaseModel):
    geneva: GenevaParams
    vaud: VaudParams
    romandie: RomandieParams
    generic: GenericParams


class CommuneTaxRule(BaseModel):
    name: str
    coefficient: float


class CantonTaxRule(BaseModel):
    name: str
    strategy: StrategyTag = "generic"
    multiplier: float = 1.0
    child_deduction: float = 0
    bracket_table: Optional[str] = None
    default_commune_coefficient: float = 1.0
    notes: Optional[str] = None
    communes: Dict[str, CommuneTaxRule]


class SwitzerlandConfig(BaseModel):
    schema_version: str
    currency: Literal["CHF"]
    country: Literal["Switzerland"]
    deductions: GeneralDeductions
    federal: FederalConfig
    ecclesiastical: Dict[str, Dict[str, float]]
    strategies: StrategyParams
    defaults: Dict[str, str]
    cantons: Dict[str, CantonTaxRule]


# ---------------------------------------------------------------------------
# Pension configuration (configs/<year>/prevoyance.yaml)
# ---------------------------------------------------------------------------

class AVSScaleCfg(BaseModel):
    full_contribution_years: int = 44
    min_monthly: int
    max_monthly: int
    min_income: int
    max_income: int
    # [max determinant income, full monthly pension], ascending
    scale: List[Tuple[int, int]]
    disability_ratio: float = 1.0
    widow_ratio: float = 0.8
    child_ratio: float = 0.4


class LPPCfg(BaseModel):
    retirement_age: int = 65
    conversion_rate_percent: float = 6.8
    early_retirement_ages: List[int] = [60, 61, 62, 63, 64]
    early_conversion_reduction_percent: float = 0.2
    child_disability_ratio: float = 0.2
    widow_ratio: float = 0.6
    orphan_ratio: float = 0.2


class ThirdPillarCfg(BaseModel):
    retirement_age: int = 65
    payout_years: int = 20


class TimelineCfg(BaseModel):
    retirement_age: int = 65
    horizon_age: int = 85
    step_years: int = 5


class InsuranceCfg(BaseModel):
    groups: Dict[str, List[str]]
    labels: Dict[str, str]


class InvestmentCfg(BaseModel):
    labels: Dict[str, str]


class PrevoyanceConfig(BaseModel):
    schema_version: str
    currency: Literal["CHF"]
    avs: AVSScaleCfg
    lpp: LPPCfg
    third_pillar: ThirdPillarCfg
    timeline: TimelineCfg
    insurance: InsuranceCfg
    investment: InvestmentCfg


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaxBracket:
    lower: CHF
    rate: CHF
    base: CHF


@dataclass(frozen=True)
class CantonalTax:
    cantonal: CHF
    communal: CHF
    simple: CHF = Decimal(0)


@dataclass
class TaxResult:
    taxable_income: CHF
    taxable_wealth: CHF
    total_deductions: CHF
    federal: CHF
    cantonal: CHF
    communal: CHF
    ecclesiastical: CHF
    total: CHF
    effective_rate: float
    canton: str = ""
    commune: str = ""
    commune_coefficient: float = 1.0
    strategy: Optional[str] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "taxable_income": float(self.taxable_income),
            "taxable_wealth": float(self.taxable_wealth),
            "total_deductions": float(self.total_deductions),
            "federal": float(self.federal),
            "cantonal": float(self.cantonal),
            "communal": float(self.communal),
            "ecclesiastical": float(self.ecclesiastical),
            "total": float(self.total),
            "effective_rate": self.effective_rate,
            "canton": self.canton,
            "commune": self.commune,
            "commune_coefficient": self.commune_coefficient,
            "strategy": self.strategy,
        }


@dataclass
class TaxSavings:
    with_deduction: TaxResult
    without_deduction: TaxResult
    savings: CHF


@dataclass(frozen=True)
class Rent:
    """Monthly/annual pair kept in sync from whichever side was entered."""
    monthly: CHF
    annual: CHF

    @classmethod
    def from_monthly(cls, monthly: float | int | str | Decimal) -> "Rent":
        m = chf(monthly)
        return cls(monthly=m, annual=m * 12)

    @classmethod
    def from_annual(cls, annual: float | int | str | Decimal) -> "Rent":
        a = chf(annual)
        return cls(monthly=round_to_increment(a / 12, 1), annual=a)

    def scaled(self, ratio: float | Decimal) -> "Rent":
        return Rent.from_annual(round_to_increment(self.annual * chf(ratio), "0.01"))

    def __add__(self, other: "Rent") -> "Rent":
        return Rent(self.monthly + other.monthly, self.annual + other.annual)


AnnuityPair = Rent


@dataclass
class AVSPensions:
    determinant_income: CHF
    years_contributed: int
    coefficient: float
    full_old_age: Rent
    old_age: Rent
    disability: Rent
    widow: Rent
    child: Rent
    children: int = 0

    @property
    def children_total(self) -> Rent:
        n = Decimal(self.children)
        return Rent(self.child.monthly * n, self.child.annual * n)


@dataclass(frozen=True)
class RetirementOption:
    age: int
    annual_rent: CHF
    monthly_rent: CHF


@dataclass
class LPPProjection:
    account_id: str
    provider_name: str
    current_savings: CHF
    projected_savings_65: CHF
    rent_65: Rent
    retirement_options: List[RetirementOption]
    disability: Rent
    child_disability: Rent
    widow: Rent
    orphan: Rent
    death_capital: CHF
    waiting_period_days: int = 0


@dataclass
class LPPAnalysis:
    total_accounts: int
    total_current_savings: CHF
    total_projected_savings_65: CHF
    rent_65: Rent
    disability: Rent
    widow: Rent
    orphan: Rent
    total_death_capital: CHF
    accounts: List[LPPProjection] = field(default_factory=list)


@dataclass
class ThirdPillarProjection:
    account_id: str
    institution_name: str
    account_type: str
    current_amount: CHF
    annual_contribution: CHF
    years_to_retirement: int
    return_rate: float
    projected_amount: CHF
    projected_annual_rent: CHF
    death_capital: CHF
    disability_capital: CHF


@dataclass
class ThirdPillarAnalysis:
    total_current_amount: CHF
    total_annual_contribution: CHF
    total_projected_amount: CHF
    total_projected_annual_rent: CHF
    total_death_capital: CHF
    total_disability_capital: CHF
    accounts: List[ThirdPillarProjection] = field(default_factory=list)


@dataclass(frozen=True)
class TimelinePoint:
    age: int
    salary: CHF
    avs: CHF
    lpp: CHF
    third_pillar: CHF

    @property
    def total(self) -> CHF:
        return self.salary + self.avs + self.lpp + self.third_pillar


@dataclass
class PensionSummary:
    retirement_annual: Dict[str, CHF]
    retirement_monthly: Dict[str, CHF]
    disability_annual: Dict[str, CHF]
    death_capital: Dict[str, CHF]
    survivor_annual: Dict[str, CHF]
    timeline: List[TimelinePoint]

    @property
    def total_retirement_annual(self) -> CHF:
        return sum(self.retirement_annual.values(), Decimal(0))

    @property
    def total_retirement_monthly(self) -> CHF:
        return sum(self.retirement_monthly.values(), Decimal(0))


@dataclass
class GroupTotal:
    count: int
    amount: CHF
    percentage: float


@dataclass
class InsuranceAnalysis:
    total_annual_premium: CHF
    total_death_capital: CHF
    total_disability_rent: CHF
    by_group: Dict[str, GroupTotal]
    by_type: Dict[str, GroupTotal]
    contract_count: int


@dataclass
class AssetGroup:
    count: int
    value: CHF
    invested: CHF
    gain_loss: CHF
    percentage: float
    return_percent: float = 0.0


@dataclass
class PortfolioSummary:
    total_invested: CHF
    current_value: CHF
    total_gain_loss: CHF
    percentage_change: float
    asset_count: int
    by_type: Dict[str, AssetGroup]


# helpers

def chf(x: float | int | str | Decimal) -> CHF:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def round_to_increment(amount: CHF, inc: int | str | Decimal) -> CHF:
    q = chf(inc)
    if q <= 0:
        return amount
    # nearest multiple of inc, half up
    return (amount / q).to_integral_value(rounding=ROUND_HALF_UP) * q
