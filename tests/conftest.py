"""Common test fixtures and configuration for swissplan tests."""

import shutil

import matplotlib
matplotlib.use("Agg")

import pytest
from pathlib import Path
from decimal import Decimal

from swissplan.io.loader import load_switzerland_config, load_prevoyance_config
from swissplan.engine.models import chf
from swissplan.engine.records import TaxProfile

# Path to the shipped configs
CONFIG_ROOT = Path(__file__).resolve().parents[1] / "swissplan" / "configs"


@pytest.fixture
def config_root():
    """Path to configuration files."""
    return CONFIG_ROOT


@pytest.fixture
def year_2025():
    """Tax year for testing."""
    return 2025


@pytest.fixture
def swiss_config(config_root, year_2025):
    """Load 2025 tax tables."""
    return load_switzerland_config(config_root, year_2025)


@pytest.fixture
def prevoyance_config(config_root, year_2025):
    """Load 2025 pension parameters."""
    return load_prevoyance_config(config_root, year_2025)


@pytest.fixture
def tmp_config_root(tmp_path):
    """Writable copy of the shipped configs."""
    root = tmp_path / "configs"
    shutil.copytree(CONFIG_ROOT, root, ignore=shutil.ignore_patterns("_archive"))
    return root


@pytest.fixture
def make_profile():
    """Factory: single Geneva resident with no deductions unless overridden."""
    def _make(**overrides) -> TaxProfile:
        fields = {
            "canton": "GE",
            "commune": "geneve",
            "civil_status": "single",
            "annual_income": Decimal(80000),
        }
        fields.update(overrides)
        return TaxProfile(**fields)
    return _make


class TaxTestCase:
    """Expected per-level amounts for one profile."""
    def __init__(self, canton: str, commune: str, income: int, federal: float,
                 cantonal: float, communal: float, total: float, description: str = ""):
        self.canton = canton
        self.commune = commune
        self.income = income
        self.federal = chf(federal)
        self.cantonal = chf(cantonal)
        self.communal = chf(communal)
        self.total = chf(total)
        self.description = description

    def __repr__(self):
        return f"TaxTestCase({self.canton}/{self.commune}, income={self.income}, total={self.total})"


@pytest.fixture
def single_tax_cases():
    """Single taxpayers without deductions, hand-checked against the 2025 tables."""
    return [
        TaxTestCase(
            canton="GE", commune="geneve", income=80000,
            federal=1192.80, cantonal=10910.22, communal=3786.60, total=15889.62,
            description="Geneva: chained cantonal factors, communal share of the base",
        ),
        TaxTestCase(
            canton="VD", commune="lausanne", income=100000,
            federal=2688.00, cantonal=15174.50, communal=7734.10, total=25596.60,
            description="Vaud: income exactly on an anchor of the barème",
        ),
        TaxTestCase(
            canton="FR", commune="fribourg", income=80000,
            federal=1192.80, cantonal=3800.00, communal=4256.00, total=9248.80,
            description="Fribourg: standard Romandie table",
        ),
        TaxTestCase(
            canton="ZH", commune="zurich", income=100000,
            federal=2688.00, cantonal=6500.00, communal=2975.00, total=12163.00,
            description="Zurich: generic flat rates",
        ),
    ]


HOUSEHOLD_YAML = """\
name: Alex Muster
date_of_birth: 1980-06-15
annual_salary: 90000
tax:
  canton: GE
  commune: geneve
  civil_status: single
  income: "90'000"
  third_pillar: 7056
avs:
  average_annual_income_determinant: 90000
  years_contributed: 44
  number_of_children: 0
lpp:
  - id: lpp-1
    provider_name: Caisse de pension A
    current_retirement_savings: 100000
    employee_savings_contribution: 5000
    employer_savings_contribution: 5000
    interest_rate: 1.0
  - id: lpp-old
    provider_name: Ancienne caisse
    is_active: false
    current_retirement_savings: 50000
third_pillar:
  - {id: 3a-1, account_type: 3a_bank, institution_name: Banque A, current_amount: 10000, annual_contribution: 7000, return_rate: 2.0}
insurance:
  - {id: i-1, insurance_type: health_basic, company_name: Assura, annual_premium: 4800}
  - {id: i-2, insurance_type: life, company_name: Vie SA, annual_premium: 2000, death_capital: 100000}
  - {id: i-3, insurance_type: vehicle, company_name: Auto SA, annual_premium: 900, is_active: false}
investments:
  - {id: a-1, asset_name: Nestlé, asset_type: actions, quantity: 10, purchase_price: 100, current_price: 120}
  - {id: a-2, asset_name: World ETF, asset_type: etf, quantity: 5, purchase_price: 200, current_price: 0}
"""


@pytest.fixture
def household_file(tmp_path):
    """Household YAML written to a temp dir."""
    path = tmp_path / "household.yaml"
    path.write_text(HOUSEHOLD_YAML, encoding="utf-8")
    return path
