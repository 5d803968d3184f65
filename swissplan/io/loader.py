from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import structlog
import yaml

from ..engine.models import (
    BracketCfg, CantonTaxRule, CommuneTaxRule, CONFESSIONS, FederalConfig,
    PrevoyanceConfig, SwitzerlandConfig,
)
from ..engine.records import Household

log = structlog.get_logger(__name__)


def load_yaml(path: Path):
    """Load YAML file safely."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _year_file(root: Path, year: int, name: str) -> Path:
    config_file = root / str(year) / name
    if not config_file.exists():
        raise FileNotFoundError(f"Config not found: {config_file}")
    return config_file


def load_switzerland_config(root: Path, year: int) -> SwitzerlandConfig:
    """Load the canton/commune tax tables for a year."""
    config_file = _year_file(root, year, "switzerland.yaml")
    config = SwitzerlandConfig(**load_yaml(config_file))
    _validate_switzerland_config(config)
    log.debug("config_loaded", file=str(config_file), cantons=len(config.cantons))
    return config


def load_prevoyance_config(root: Path, year: int) -> PrevoyanceConfig:
    """Load the AVS/LPP/3rd pillar parameters for a year."""
    config_file = _year_file(root, year, "prevoyance.yaml")
    config = PrevoyanceConfig(**load_yaml(config_file))
    _validate_prevoyance_config(config)
    log.debug("config_loaded", file=str(config_file))
    return config


def load_household(path: Path) -> Household:
    """Load a household file (profile, tax form fields and pension/insurance/investment records)."""
    if not path.exists():
        raise FileNotFoundError(f"Household file not found: {path}")
    data = load_yaml(path) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Household file {path} must contain a mapping at top level")
    return Household(**data)


def get_canton_and_commune(
    config: SwitzerlandConfig,
    canton_key: Optional[str] = None,
    commune_key: Optional[str] = None,
) -> Tuple[CantonTaxRule, CommuneTaxRule]:
    """Look up a canton and one of its communes, falling back to the configured defaults."""
    if canton_key is None:
        canton_key = config.defaults["canton"]

    if canton_key not in config.cantons:
        available = list(config.cantons.keys())
        raise ValueError(f"Canton '{canton_key}' not found. Available: {available}")

    canton = config.cantons[canton_key]
    if commune_key is None:
        if canton_key == config.defaults["canton"]:
            commune_key = config.defaults["commune"]
        else:
            commune_key = next(iter(canton.communes))
    if commune_key not in canton.communes:
        available = list(canton.communes.keys())
        raise ValueError(f"Commune '{commune_key}' not found in canton '{canton_key}'. Available: {available}")

    return canton, canton.communes[commune_key]


def _validate_switzerland_config(config: SwitzerlandConfig):
    """Validate the tax tables."""
    _validate_federal_config(config.federal)
    _validate_brackets(config.strategies.geneva.brackets, "geneva")
    for key, table in config.strategies.romandie.tables.items():
        _validate_brackets(table, f"romandie/{key}")
    _validate_points(config.strategies.vaud.income_points, "vaud income")
    _validate_points(config.strategies.vaud.wealth_points, "vaud wealth")

    for canton_key, canton in config.cantons.items():
        _validate_canton_config(config, canton, canton_key)

    for canton_key, rates in config.ecclesiastical.items():
        for confession, rate in rates.items():
            if confession not in CONFESSIONS or confession == "none":
                raise ValueError(f"Ecclesiastical {canton_key}: unknown confession '{confession}'")
            if rate < 0:
                raise ValueError(f"Ecclesiastical {canton_key}/{confession}: rate must be non-negative")

    default_canton = config.defaults.get("canton")
    default_commune = config.defaults.get("commune")
    if default_canton not in config.cantons:
        raise ValueError(f"Default canton '{default_canton}' is not defined")
    if default_commune not in config.cantons[default_canton].communes:
        raise ValueError(f"Default commune '{default_commune}' is not a commune of {default_canton}")


def _validate_federal_config(fed: FederalConfig):
    """Validate federal tax configuration."""
    last_to = -1
    last_from = -1
    for idx, s in enumerate(fed.segments):
        if s.from_ < 0:
            raise ValueError(f"Federal segment {idx}: 'from' must be >= 0")
        if s.to is not None and s.to < s.from_:
            raise ValueError(f"Federal segment {idx}: 'to' must be >= 'from' or null")
        if s.at_income < s.from_:
            raise ValueError(f"Federal segment {idx}: 'at_income' must be >= 'from'")
        if s.per100 < 0 or s.base_tax_at < 0:
            raise ValueError(f"Federal segment {idx}: negative rate/base not allowed")
        if idx > 0 and s.from_ <= last_from:
            raise ValueError(f"Federal segments must be strictly increasing at 'from' (idx={idx})")
        if last_to != -1 and s.from_ < last_to:
            raise ValueError(f"Federal segments overlap at idx={idx}")
        last_from = s.from_
        last_to = s.to if s.to is not None else 10**12

    for i in range(len(fed.segments) - 1):
        current_to = fed.segments[i].to
        next_from = fed.segments[i + 1].from_
        if current_to is not None and current_to != next_from:
            raise ValueError(f"Gap in federal segments: {current_to} -> {next_from}")


def _validate_brackets(brackets: Sequence[BracketCfg], label: str):
    if not brackets:
        raise ValueError(f"Bracket table {label} is empty")
    if brackets[0].lower != 0:
        raise ValueError(f"Bracket table {label} must start at 0")
    last_lower = -1
    for idx, b in enumerate(brackets):
        if b.rate_percent < 0:
            raise ValueError(f"Bracket table {label} row {idx}: rate_percent must be >= 0")
        if b.lower <= last_lower:
            raise ValueError(f"Bracket table {label} must be strictly increasing by 'lower' (idx={idx})")
        last_lower = b.lower


def _validate_points(points: List[Tuple[float, float]], label: str):
    if len(points) < 2:
        raise ValueError(f"Tax points {label}: at least two anchors required")
    if points[0][0] <= 0:
        raise ValueError(f"Tax points {label}: anchor amounts must be positive")
    for idx in range(1, len(points)):
        (a0, t0), (a1, t1) = points[idx - 1], points[idx]
        if a1 <= a0:
            raise ValueError(f"Tax points {label} must be strictly increasing by amount (idx={idx})")
        if t1 < t0:
            raise ValueError(f"Tax points {label}: tax must not decrease (idx={idx})")


def _validate_canton_config(config: SwitzerlandConfig, canton: CantonTaxRule, canton_key: str):
    """Validate one canton and its communes."""
    if canton.multiplier < 0:
        raise ValueError(f"Canton {canton_key}: multiplier must be non-negative")
    if canton.child_deduction < 0:
        raise ValueError(f"Canton {canton_key}: child_deduction must be non-negative")
    if canton.strategy == "romandie":
        table = canton.bracket_table or "standard"
        if table not in config.strategies.romandie.tables:
            available = list(config.strategies.romandie.tables.keys())
            raise ValueError(f"Canton {canton_key}: unknown bracket_table '{table}'. Available: {available}")
    if not canton.communes:
        raise ValueError(f"Canton {canton_key} has no communes")
    for commune_key, commune in canton.communes.items():
        if commune.coefficient < 0:
            raise ValueError(f"Commune coefficient must be non-negative: {canton_key}/{commune_key}")
        # coefficients are fractions of the simple tax, never percentages
        if commune.coefficient > 5.0:
            raise ValueError(f"Commune coefficient {commune.coefficient:.2f} in {canton_key}/{commune_key} - seems too high")


def _validate_prevoyance_config(config: PrevoyanceConfig):
    """Validate pension parameters."""
    avs = config.avs
    if avs.full_contribution_years <= 0:
        raise ValueError("AVS: full_contribution_years must be > 0")
    if not 0 < avs.min_monthly < avs.max_monthly:
        raise ValueError("AVS: require 0 < min_monthly < max_monthly")
    if not 0 < avs.min_income < avs.max_income:
        raise ValueError("AVS: require 0 < min_income < max_income")
    if not avs.scale:
        raise ValueError("AVS: scale is empty")
    for (lo, lo_rent), (hi, hi_rent) in zip(avs.scale, avs.scale[1:]):
        if hi <= lo:
            raise ValueError(f"AVS: scale incomes must be strictly increasing ({lo} -> {hi})")
        if hi_rent < lo_rent:
            raise ValueError(f"AVS: scale pension must not decrease ({lo} -> {hi})")
    if tuple(avs.scale[0]) != (avs.min_income, avs.min_monthly):
        raise ValueError("AVS: first scale row must be (min_income, min_monthly)")
    if tuple(avs.scale[-1]) != (avs.max_income, avs.max_monthly):
        raise ValueError("AVS: last scale row must be (max_income, max_monthly)")

    lpp = config.lpp
    if lpp.conversion_rate_percent <= 0:
        raise ValueError("LPP: conversion_rate_percent must be > 0")
    for age in lpp.early_retirement_ages:
        if age >= lpp.retirement_age:
            raise ValueError(f"LPP: early retirement age {age} must be below {lpp.retirement_age}")

    if config.third_pillar.payout_years <= 0:
        raise ValueError("Third pillar: payout_years must be > 0")
    if config.timeline.step_years <= 0:
        raise ValueError("Timeline: step_years must be > 0")

    seen = {}
    for group, types in config.insurance.groups.items():
        for t in types:
            if t in seen:
                raise ValueError(f"Insurance type '{t}' is in both '{seen[t]}' and '{group}'")
            seen[t] = group
