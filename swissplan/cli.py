from __future__ import annotations
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Optional, Dict, Any
import json
import logging
import platform
import sys

import structlog
import typer
from rich import print as rprint

from .io.loader import (
    load_switzerland_config, load_prevoyance_config, load_household, get_canton_and_commune,
)
from .engine.avs import calculate_avs_pensions, pensions_for_account
from .engine.aggregate import insurance_analysis, portfolio_summary
from .engine.federal import federal_segment_info
from .engine.lpp import lpp_analysis
from .engine.models import CIVIL_STATUSES, CONFESSIONS, TaxResult, chf
from .engine.parsing import amount_or_zero, parse_amount
from .engine.pension import pension_summary
from .engine.records import Household, TaxProfile, validate_tax_form
from .engine.tax import compute_tax, third_pillar_savings
from .engine.third_pillar import current_age, third_pillar_analysis
from .viz.curve import plot_tax_curve, plot_retirement_timeline
from .config.manager import ConfigManager

app = typer.Typer(help="Swiss tax & pension planner (federal, cantonal, communal, AVS/LPP/3a), config driven")

CONFIG_ROOT = Path(__file__).parent / "configs"

SCHEMA_VERSION = "1.0"
SWISSPLAN_VERSION = "0.3.0"  # Should match pyproject.toml

# Error codes for JSON responses
ERROR_CODES = {
    "INVALID_INPUT": 2,
    "CALCULATION_ERROR": 3,
    "FILE_NOT_FOUND": 4,
    "VALIDATION_ERROR": 5,
    "INTERNAL_ERROR": 8,
    "SCHEMA_MISMATCH": 9,
}

log = structlog.get_logger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Route structlog through stdlib logging on stderr; stdout stays clean for --json."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr")):
    configure_logging(verbose)


def _create_console_with_imports():
    """Create Rich console with all required imports."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text
    from rich.table import Table

    return Console(), Panel, Text, Table


def _create_json_response(data: Any, success: bool = True) -> Dict[str, Any]:
    """Create standardized JSON response envelope."""
    return {
        "success": success,
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data
    }


def _create_json_error(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create standardized JSON error response.

    Args:
        code: Error code from ERROR_CODES
        message: Human-readable error message
        details: Optional additional error details
    """
    error_data = {
        "code": code,
        "message": message
    }
    if details:
        error_data["details"] = details

    return {
        "success": False,
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error": error_data
    }


def _handle_json_error(error: Exception, json_mode: bool = False) -> None:
    """Print the error in the requested format and exit with its code."""
    if isinstance(error, FileNotFoundError):
        code = "FILE_NOT_FOUND"
        message = str(error)
    elif isinstance(error, ValueError):
        code = "INVALID_INPUT"
        message = str(error)
    else:
        code = "INTERNAL_ERROR"
        message = f"Unexpected error: {error}"
        log.error("command_failed", error=str(error), exc_info=True)

    if json_mode:
        print(json.dumps(_create_json_error(code, message), indent=2))
    else:
        rprint({"error": str(error)})
    raise typer.Exit(code=ERROR_CODES[code])


def _jsonable(obj: Any) -> Any:
    """Dataclasses and pydantic models to plain JSON types; money as float."""
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    elif hasattr(obj, "model_dump"):
        obj = obj.model_dump()
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


def _print_json(data: Any) -> None:
    print(json.dumps(_create_json_response(_jsonable(data)), indent=2, ensure_ascii=False))


def _validate_choice(value: Optional[str], allowed, label: str) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    if value not in allowed:
        raise typer.BadParameter(f"{label} must be one of: {', '.join(allowed)}")
    return value


def _civil_status_cb(value: Optional[str]) -> Optional[str]:
    return _validate_choice(value, CIVIL_STATUSES, "Civil status")


def _confession_cb(value: Optional[str]) -> Optional[str]:
    return _validate_choice(value, CONFESSIONS, "Confession")


def _tax_form(
    canton, commune, civil_status, confession, income, wealth, children,
    third_pillar, mortgage_interest, social_charges, other_deductions,
) -> Dict[str, Any]:
    return {
        "canton": canton,
        "commune": commune,
        "civil_status": civil_status,
        "confession": confession,
        "income": income,
        "wealth": wealth,
        "children": children,
        "third_pillar": third_pillar,
        "mortgage_interest": mortgage_interest,
        "social_charges": social_charges,
        "other_deductions": other_deductions,
    }


def _profile(fields: Dict[str, Any], config, strict: bool) -> TaxProfile:
    if not strict:
        return TaxProfile.from_form(fields)
    profile, errors = validate_tax_form(fields, config)
    if errors:
        raise ValueError("; ".join(errors))
    return profile


def _fmt(amount: Decimal | float) -> str:
    return f"{float(amount):,.2f}".replace(",", "'")


def _print_tax_result(res: TaxResult, title: str = "Tax Calculation"):
    console, Panel, Text, Table = _create_console_with_imports()

    text = Text()
    text.append("💰 TAX CALCULATION RESULTS\n\n", style="bold green")
    text.append(f"Location: {res.commune} ({res.canton})\n", style="bold cyan")
    text.append(f"Taxable income: {_fmt(res.taxable_income)} CHF\n", style="cyan")
    text.append(f"Taxable wealth: {_fmt(res.taxable_wealth)} CHF\n", style="cyan")
    text.append(f"Total tax: {_fmt(res.total)} CHF\n", style="bold red")
    text.append(f"Effective rate: {res.effective_rate:.2f}%", style="bold yellow")
    console.print(Panel(text, title=title, border_style="green"))

    table = Table(title="📊 Tax Component Breakdown", show_header=True, header_style="bold blue")
    table.add_column("Component", style="cyan")
    table.add_column("Amount (CHF)", justify="right", style="green")
    table.add_row("Federal", _fmt(res.federal))
    table.add_row("Cantonal", _fmt(res.cantonal))
    table.add_row(f"Communal (×{res.commune_coefficient})", _fmt(res.communal))
    table.add_row("Ecclesiastical", _fmt(res.ecclesiastical))
    table.add_row("[bold]Total", f"[bold]{_fmt(res.total)}")
    console.print("\n", table)


def _load_context(household: Path, year: int):
    data = load_household(household)
    prev = load_prevoyance_config(CONFIG_ROOT, year)
    return data, prev


def _household_pensions(data: Household, prev, as_of: Optional[date]):
    age = current_age(data.date_of_birth, as_of)
    avs = pensions_for_account(data.avs, prev.avs) if data.avs and data.avs.is_active else None
    lpp = lpp_analysis(data.lpp, prev.lpp, age)
    third = third_pillar_analysis(data.third_pillar, age if age is not None else prev.third_pillar.retirement_age, prev.third_pillar)
    summary = pension_summary(avs, lpp, third, prev.timeline, age, data.annual_salary)
    return age, avs, lpp, third, summary


def _parse_as_of(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter("--as-of must be an ISO date (YYYY-MM-DD)")


# Shared option factories
def _year_opt():
    return typer.Option(2025, min=1900, help="Tax year, e.g., 2025")


@app.command()
def version(
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    schema_version: bool = typer.Option(False, "--schema-version", help="Include schema version information"),
):
    """Show version information."""
    try:
        version_data = {
            "version": SWISSPLAN_VERSION,
            "platform": platform.system().lower()
        }
        if schema_version:
            version_data["schema_version"] = SCHEMA_VERSION

        if json_out:
            _print_json(version_data)
        else:
            console, Panel, Text, _ = _create_console_with_imports()
            version_text = Text()
            version_text.append(f"swissplan version {SWISSPLAN_VERSION}\n", style="bold green")
            version_text.append(f"Platform: {platform.system()}")
            if schema_version:
                version_text.append(f"\nSchema version: {SCHEMA_VERSION}", style="cyan")
            console.print(Panel(version_text, title="Version Information", border_style="blue"))
    except Exception as e:
        _handle_json_error(e, json_out)


@app.command()
def tax(
    year: int = _year_opt(),
    canton: Optional[str] = typer.Option(None, help="Canton code, e.g. GE"),
    commune: Optional[str] = typer.Option(None, help="Commune key within the canton, e.g. geneve"),
    civil_status: Optional[str] = typer.Option(
        None, callback=_civil_status_cb,
        help="single, married or single_parent"),
    confession: str = typer.Option(
        "none", callback=_confession_cb,
        help="none, catholic, protestant or catholic_christian"),
    income: Optional[str] = typer.Option(None, help="Gross annual income (CHF, 80'000 accepted)"),
    wealth: Optional[str] = typer.Option(None, help="Net wealth (CHF)"),
    children: Optional[str] = typer.Option(None, help="Number of dependent children"),
    third_pillar: Optional[str] = typer.Option(None, help="3rd pillar (3a) deduction"),
    mortgage_interest: Optional[str] = typer.Option(None, help="Mortgage interest deduction"),
    social_charges: Optional[str] = typer.Option(None, help="Social charges deduction"),
    other_deductions: Optional[str] = typer.Option(None, help="Other deductions"),
    strict: bool = typer.Option(False, "--strict", help="Reject malformed numbers and unknown locations instead of treating them as 0"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Compute federal + cantonal + communal + ecclesiastical tax.

    Without --canton/--commune/--civil-status the result is all zero.
    """
    try:
        config = load_switzerland_config(CONFIG_ROOT, year)
        fields = _tax_form(canton, commune, civil_status, confession, income, wealth, children,
                           third_pillar, mortgage_interest, social_charges, other_deductions)
        res = compute_tax(_profile(fields, config, strict), config)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json(res.as_dict())
    else:
        _print_tax_result(res)


@app.command()
def savings(
    year: int = _year_opt(),
    canton: Optional[str] = typer.Option(None, help="Canton code, e.g. GE"),
    commune: Optional[str] = typer.Option(None, help="Commune key within the canton"),
    civil_status: Optional[str] = typer.Option(
        None, callback=_civil_status_cb,
        help="single, married or single_parent"),
    confession: str = typer.Option(
        "none", callback=_confession_cb,
        help="none, catholic, protestant or catholic_christian"),
    income: Optional[str] = typer.Option(None, help="Gross annual income (CHF)"),
    wealth: Optional[str] = typer.Option(None, help="Net wealth (CHF)"),
    children: Optional[str] = typer.Option(None, help="Number of dependent children"),
    third_pillar: Optional[str] = typer.Option(None, help="3rd pillar (3a) contribution to evaluate"),
    mortgage_interest: Optional[str] = typer.Option(None),
    social_charges: Optional[str] = typer.Option(None),
    other_deductions: Optional[str] = typer.Option(None),
    strict: bool = typer.Option(False, "--strict"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Tax saved by the 3rd pillar deduction (with vs. without)."""
    try:
        config = load_switzerland_config(CONFIG_ROOT, year)
        fields = _tax_form(canton, commune, civil_status, confession, income, wealth, children,
                           third_pillar, mortgage_interest, social_charges, other_deductions)
        res = third_pillar_savings(_profile(fields, config, strict), config)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json({
            "with_deduction": res.with_deduction.as_dict(),
            "without_deduction": res.without_deduction.as_dict(),
            "savings": float(res.savings),
        })
        return

    console, Panel, Text, Table = _create_console_with_imports()
    table = Table(title="🏦 3rd Pillar Tax Saving", show_header=True, header_style="bold blue")
    table.add_column("Component", style="cyan")
    table.add_column("Without 3a", justify="right", style="red")
    table.add_column("With 3a", justify="right", style="green")
    for label, attr in (("Federal", "federal"), ("Cantonal", "cantonal"), ("Communal", "communal"),
                        ("Ecclesiastical", "ecclesiastical"), ("[bold]Total", "total")):
        table.add_row(label, _fmt(getattr(res.without_deduction, attr)), _fmt(getattr(res.with_deduction, attr)))
    console.print(table)
    console.print(Panel(f"Tax saved: [bold yellow]{_fmt(res.savings)} CHF", border_style="green"))


@app.command()
def avs(
    year: int = _year_opt(),
    income: Optional[str] = typer.Option(None, help="Average determinant annual income (CHF)"),
    years: Optional[int] = typer.Option(None, min=0, help="Contribution years (default: complete record)"),
    children: int = typer.Option(0, min=0, help="Children entitled to a child rent"),
    household: Optional[Path] = typer.Option(None, help="Household YAML file (uses its AVS account)"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """AVS old-age, disability, widow and child rents from the Echelle 44 scale."""
    try:
        prev = load_prevoyance_config(CONFIG_ROOT, year)
        if household is not None:
            data = load_household(household)
            if data.avs is None:
                raise ValueError(f"Household file {household} has no AVS account")
            res = pensions_for_account(data.avs, prev.avs)
        else:
            parsed = parse_amount(income)
            if not parsed.ok:
                raise ValueError(f"income: {parsed.error}")
            res = calculate_avs_pensions(parsed.or_zero(), prev.avs, years, children)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        payload = _jsonable(res)
        payload["children_total"] = _jsonable(res.children_total)
        _print_json(payload)
        return

    console, Panel, Text, Table = _create_console_with_imports()
    head = Text()
    head.append(f"Determinant income: {_fmt(res.determinant_income)} CHF\n", style="cyan")
    head.append(f"Contribution years: {res.years_contributed} (coefficient {res.coefficient:.4f})", style="cyan")
    console.print(Panel(head, title="AVS / 1st pillar", border_style="blue"))

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Rent", style="cyan")
    table.add_column("Monthly", justify="right", style="green")
    table.add_column("Annual", justify="right", style="green")
    for label, rent in (("Old age", res.old_age), ("Disability", res.disability),
                        ("Widow", res.widow), ("Child (each)", res.child),
                        (f"Children ×{res.children}", res.children_total)):
        table.add_row(label, _fmt(rent.monthly), _fmt(rent.annual))
    console.print(table)


@app.command()
def pension(
    household: Path = typer.Option(..., help="Household YAML file"),
    year: int = _year_opt(),
    as_of: Optional[str] = typer.Option(None, help="Reference date for ages (YYYY-MM-DD, default today)"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Three-pillar summary: retirement, disability, death cover and income timeline."""
    ref = _parse_as_of(as_of)
    try:
        data, prev = _load_context(household, year)
        age, avs_res, lpp, third, summary = _household_pensions(data, prev, ref)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json({
            "age": age,
            "avs": avs_res,
            "lpp": lpp,
            "third_pillar": third,
            "summary": summary,
            "total_retirement_annual": summary.total_retirement_annual,
            "total_retirement_monthly": summary.total_retirement_monthly,
        })
        return

    console, Panel, Text, Table = _create_console_with_imports()
    table = Table(title="🧓 Retirement income at 65", show_header=True, header_style="bold blue")
    table.add_column("Pillar", style="cyan")
    table.add_column("Monthly", justify="right", style="green")
    table.add_column("Annual", justify="right", style="green")
    for key, label in (("avs", "AVS"), ("lpp", "LPP"), ("third_pillar", "3rd pillar")):
        table.add_row(label, _fmt(summary.retirement_monthly[key]), _fmt(summary.retirement_annual[key]))
    table.add_row("[bold]Total", f"[bold]{_fmt(summary.total_retirement_monthly)}",
                  f"[bold]{_fmt(summary.total_retirement_annual)}")
    console.print(table)

    cover = Text()
    cover.append("Disability (annual): ", style="bold")
    cover.append(", ".join(f"{k.upper()} {_fmt(v)}" for k, v in summary.disability_annual.items()) + "\n")
    cover.append("Death capital: ", style="bold")
    cover.append(", ".join(f"{k} {_fmt(v)}" for k, v in summary.death_capital.items()) + "\n")
    cover.append("Survivors (annual): ", style="bold")
    cover.append(", ".join(f"{k.upper()} {_fmt(v)}" for k, v in summary.survivor_annual.items()))
    console.print(Panel(cover, title="Risk cover", border_style="magenta"))


@app.command()
def insurance(
    household: Path = typer.Option(..., help="Household YAML file"),
    year: int = _year_opt(),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Premiums and cover of the active insurance contracts, per group and type."""
    try:
        data, prev = _load_context(household, year)
        res = insurance_analysis(data.insurance, prev.insurance)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json(res)
        return

    console, Panel, Text, Table = _create_console_with_imports()
    table = Table(title=f"🛡️ Insurance ({res.contract_count} active contracts)", show_header=True, header_style="bold blue")
    table.add_column("Type", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Premium", justify="right", style="green")
    table.add_column("Share", justify="right", style="yellow")
    for key, total in res.by_type.items():
        table.add_row(prev.insurance.labels.get(key, key), str(total.count), _fmt(total.amount), f"{total.percentage:.1f}%")
    console.print(table)
    rprint({group: {"count": t.count, "premium": float(t.amount), "percentage": round(t.percentage, 2)}
            for group, t in res.by_group.items()})
    console.print(f"Total premium: [bold]{_fmt(res.total_annual_premium)} CHF[/bold], "
                  f"death capital {_fmt(res.total_death_capital)}, disability rent {_fmt(res.total_disability_rent)}")


@app.command()
def portfolio(
    household: Path = typer.Option(..., help="Household YAML file"),
    year: int = _year_opt(),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Investment portfolio value, gain/loss and allocation per asset type."""
    try:
        data, prev = _load_context(household, year)
        res = portfolio_summary(data.investments)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json(res)
        return

    console, Panel, Text, Table = _create_console_with_imports()
    table = Table(title="📈 Portfolio", show_header=True, header_style="bold blue")
    table.add_column("Type", style="cyan")
    table.add_column("Assets", justify="right")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Gain/Loss", justify="right")
    table.add_column("Allocation", justify="right", style="yellow")
    for key, group in res.by_type.items():
        table.add_row(prev.investment.labels.get(key, key), str(group.count), _fmt(group.value),
                      f"{_fmt(group.gain_loss)} ({group.return_percent:+.2f}%)", f"{group.percentage:.1f}%")
    table.add_row("[bold]Total", str(res.asset_count), f"[bold]{_fmt(res.current_value)}",
                  f"{_fmt(res.total_gain_loss)} ({res.percentage_change:+.2f}%)", "100%")
    console.print(table)


@app.command()
def locations(
    year: int = _year_opt(),
    canton: Optional[str] = typer.Option(None, help="Only list this canton"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """List cantons and their communes with multiplier and coefficient."""
    try:
        config = load_switzerland_config(CONFIG_ROOT, year)
        if canton is not None:
            get_canton_and_commune(config, canton)
        cantons_data = []
        for canton_key, rule in config.cantons.items():
            if canton is not None and canton_key != canton:
                continue
            cantons_data.append({
                "key": canton_key,
                "name": rule.name,
                "strategy": rule.strategy,
                "multiplier": rule.multiplier,
                "communes": [
                    {"key": k, "name": c.name, "coefficient": c.coefficient}
                    for k, c in rule.communes.items()
                ],
            })
        result_data = {"cantons": cantons_data, "defaults": dict(config.defaults)}
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json(result_data)
    else:
        rprint(result_data)


@app.command()
def validate(
    year: int = typer.Option(..., help="Tax year to validate"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """Validate configuration files for given year."""
    try:
        load_switzerland_config(CONFIG_ROOT, year)
        load_prevoyance_config(CONFIG_ROOT, year)
        result_data = {"status": "valid", "year": year, "message": "All configurations valid"}

        if json_out:
            _print_json(result_data)
        else:
            rprint(result_data)
    except Exception as e:
        if json_out:
            error_response = _create_json_error("VALIDATION_ERROR", str(e), {"year": year})
            print(json.dumps(error_response, indent=2))
        else:
            rprint({"status": "invalid", "year": year, "error": str(e)})
        raise typer.Exit(code=ERROR_CODES["VALIDATION_ERROR"])


@app.command()
def federal_segment(
    income: str = typer.Option(..., help="Taxable income (CHF)"),
    year: int = _year_opt(),
    json_out: bool = typer.Option(False, "--json"),
):
    """Show the federal scale segment an income falls into."""
    try:
        config = load_switzerland_config(CONFIG_ROOT, year)
        info = federal_segment_info(amount_or_zero(income), config.federal)
    except Exception as e:
        _handle_json_error(e, json_out)
        return
    if json_out:
        _print_json(info)
    else:
        rprint(info)


@app.command()
def config_summary(
    year: int = _year_opt(),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """Summarise a year's tax tables."""
    try:
        summary = ConfigManager(CONFIG_ROOT).get_config_summary(year)
    except Exception as e:
        _handle_json_error(e, json_out)
        return
    if json_out:
        _print_json(summary)
    else:
        rprint(summary)


@app.command()
def list_years(
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """List all available tax years."""
    try:
        config_manager = ConfigManager(CONFIG_ROOT)
        years = config_manager.get_available_years()

        result_data = {
            "available_years": years,
            "count": len(years)
        }

        if json_out:
            _print_json(result_data)
        else:
            console, Panel, Text, _ = _create_console_with_imports()

            years_text = Text()
            years_text.append("📅 AVAILABLE TAX YEARS\n\n", style="bold green")
            if years:
                years_text.append(f"Found {len(years)} tax year(s):\n", style="cyan")
                for y in years:
                    years_text.append(f"• {y}\n", style="yellow")
            else:
                years_text.append("No tax years found in configuration directory.", style="red")

            console.print(Panel(years_text, title="Tax Years", border_style="blue"))

    except Exception as e:
        _handle_json_error(e, json_out)


@app.command()
def create_year(
    source_year: int = typer.Option(..., help="Year to copy configuration from"),
    target_year: int = typer.Option(..., help="New year to create"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite target year if it exists"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """Create new tax year by copying configuration from existing year."""
    try:
        result = ConfigManager(CONFIG_ROOT).create_year(source_year, target_year, overwrite)

        if json_out:
            _print_json(result)
        else:
            console, Panel, Text, _ = _create_console_with_imports()

            result_text = Text()
            result_text.append("📋 YEAR CREATION SUCCESSFUL\n\n", style="bold green")
            result_text.append(f"Source Year: {result['source_year']}\n", style="cyan")
            result_text.append(f"Target Year: {result['target_year']}\n", style="yellow")
            result_text.append(f"Status: {result['message']}", style="green")

            console.print(Panel(result_text, title="Create Year", border_style="green"))

    except Exception as e:
        _handle_json_error(e, json_out)


@app.command()
def set_commune(
    year: int = typer.Option(..., help="Tax year to edit"),
    canton: str = typer.Option(..., help="Canton code"),
    commune: str = typer.Option(..., help="Commune key"),
    coefficient: float = typer.Option(..., min=0, help="Communal coefficient (fraction of the simple tax)"),
    name: Optional[str] = typer.Option(None, help="Display name (required to create a new commune)"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """Create or update a commune's coefficient. The previous file is archived."""
    try:
        result = ConfigManager(CONFIG_ROOT).set_commune_coefficient(year, canton, commune, coefficient, name)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json(result)
    else:
        console, Panel, Text, _ = _create_console_with_imports()
        text = Text()
        text.append("🏙️ COMMUNE SAVED\n\n", style="bold green")
        text.append(f"{result['message']}\n", style="green")
        text.append(f"Coefficient: {result['previous_coefficient']} → {result['coefficient']}", style="cyan")
        if result.get("archive_file"):
            text.append(f"\n\nArchive created: {result['archive_file']}", style="dim")
        console.print(Panel(text, title="Set Commune", border_style="green"))


@app.command()
def set_multiplier(
    year: int = typer.Option(..., help="Tax year to edit"),
    canton: str = typer.Option(..., help="Canton code"),
    multiplier: float = typer.Option(..., min=0, help="Cantonal multiplier"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """Update a canton's multiplier. The previous file is archived."""
    try:
        result = ConfigManager(CONFIG_ROOT).set_canton_multiplier(year, canton, multiplier)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        _print_json(result)
    else:
        rprint(result)


@app.command()
def plot_tax(
    year: int = _year_opt(),
    canton: Optional[str] = typer.Option(None, help="Canton code (default from config)"),
    commune: Optional[str] = typer.Option(None, help="Commune key (default from config)"),
    civil_status: str = typer.Option(
        "single", callback=_civil_status_cb),
    children: int = typer.Option(0, min=0),
    min: int = typer.Option(0, min=0, help="Min gross income"),
    max: int = typer.Option(200000, min=1, help="Max gross income"),
    step: int = typer.Option(1000, min=1),
    income: Optional[int] = typer.Option(None, min=0, help="Mark this income on the curve"),
    out: str = typer.Option("tax_curve.png"),
):
    """Plot total tax over gross income for one location."""
    try:
        if min >= max:
            raise ValueError("--min must be below --max")
        config = load_switzerland_config(CONFIG_ROOT, year)
        rule, commune_rule = get_canton_and_commune(config, canton, commune)
        canton_key = canton or config.defaults["canton"]
        commune_key = next(k for k, c in rule.communes.items() if c is commune_rule)

        def total_at(x: int) -> Decimal:
            profile = TaxProfile(canton=canton_key, commune=commune_key, civil_status=civil_status,
                                 children=children, annual_income=chf(x))
            return compute_tax(profile, config).total

        pts = [(x, total_at(x)) for x in range(min, max + 1, step)]
        annotations = {"title": f"Tax curve, {commune_rule.name} ({canton_key})"}
        if income is not None:
            annotations.update({"income": income, "total": total_at(income),
                                "label": f"{income:,} CHF"})
        plot_tax_curve(pts, out, annotations=annotations)
    except Exception as e:
        _handle_json_error(e)
        return
    rprint({"saved": out, "points": len(pts)})


@app.command()
def plot_retirement(
    household: Path = typer.Option(..., help="Household YAML file"),
    year: int = _year_opt(),
    as_of: Optional[str] = typer.Option(None, help="Reference date for ages (YYYY-MM-DD)"),
    out: str = typer.Option("retirement.png"),
):
    """Plot the retirement income timeline of a household."""
    ref = _parse_as_of(as_of)
    try:
        data, prev = _load_context(household, year)
        _, _, _, _, summary = _household_pensions(data, prev, ref)
        if not summary.timeline:
            raise ValueError("Household needs a date_of_birth to build the timeline")
        plot_retirement_timeline(summary.timeline, out, annual_salary=data.annual_salary)
    except Exception as e:
        _handle_json_error(e)
        return
    rprint({"saved": out, "points": len(summary.timeline)})
