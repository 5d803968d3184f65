from .brackets import build_table, table_from_points, progressive_tax, marginal_rate
from .federal import tax_federal, federal_marginal_hundreds
from .cantons import cantonal_tax, STRATEGIES
from .tax import compute_tax, third_pillar_savings
from .avs import calculate_avs_pensions, average_determinant_income, pensions_for_account
from .lpp import calculate_lpp_projection, lpp_analysis
from .third_pillar import calculate_third_pillar_projection, third_pillar_analysis
from .pension import pension_summary, retirement_timeline
from .aggregate import insurance_analysis, portfolio_summary
from .parsing import parse_amount, amount_or_zero
from .models import (
    SwitzerlandConfig, PrevoyanceConfig, TaxResult, Rent, AnnuityPair,
)
from .records import (
    TaxProfile, AVSAccount, LPPAccount, ThirdPillarAccount,
    InsuranceContract, InvestmentAsset, validate_tax_form,
)
