"""Command-line interface — click entry point + rich output.

Commands:
  calculate  monthly payment, escrow breakdown, totals and (optionally) the schedule
  afford     maximum affordable loan for an income/debt profile
  compare    the same loan over several terms, or across rate-catalog products
  rates      show the rate catalog in use

Monetary options are passed through to the engine as strings and normalised
there, so "400000", "400000.0" and "4e5" are all accepted.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

import click
from click.core import ParameterSource
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .affordability import AffordabilityResult, assess_affordability
from .calculator import CalculationResult, calculate as run_calculation, round_cents
from .compare import ScenarioComparison, compare_products, compare_terms
from .config import (
    DEFAULT_DOWN_PAYMENT_RATIO,
    DEFAULT_MAX_PAYMENT_TO_INCOME_RATIO,
    DEFAULT_PMI_RATE_PERCENT,
    DEFAULT_TERM_YEARS,
    HUNDRED,
    MAX_TERM_YEARS,
    RATES_FILE_ENVVAR,
)
from .errors import InvalidInputError, NumericOverflowError
from .rates import (
    DEFAULT_CATALOG,
    LOAN_PRODUCTS,
    RateCatalog,
    RateCatalogError,
    load_rate_catalog,
    product_label,
    product_term_years,
)
from .serialization import affordability_to_dict, loan_terms_from_json, result_to_dict, result_to_json
from .terms import LoanTerms, as_decimal

console = Console()
err_console = Console(stderr=True, style="bold red")

# ──────────────────────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────────────────────

def _fmt_money(value: Decimal) -> str:
    return f"${round_cents(value):,.2f}"


def _fmt_pct(value: Decimal) -> str:
    """Format a value already expressed in percent."""
    return f"{value:.2f}%"


def _fail(message: str) -> None:
    err_console.print(escape(message))
    sys.exit(1)


# ──────────────────────────────────────────────────────────────────────────────
# Result display
# ──────────────────────────────────────────────────────────────────────────────

def display_result(result: CalculationResult) -> None:
    terms = result.terms

    console.print()
    console.print(Panel(
        f"[bold green]Mortgage Payment[/bold green] — "
        f"{_fmt_money(terms.principal)} at {_fmt_pct(terms.annual_rate_percent)} "
        f"over {terms.term_years} years",
        expand=False,
    ))

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")

    t.add_row("Principal & interest", _fmt_money(result.monthly_principal_and_interest))
    t.add_row("Property tax", _fmt_money(result.monthly_property_tax))
    t.add_row("Insurance", _fmt_money(result.monthly_insurance))
    if result.monthly_pmi > 0:
        t.add_row("PMI", _fmt_money(result.monthly_pmi))
    if result.monthly_hoa > 0:
        t.add_row("HOA fees", _fmt_money(result.monthly_hoa))
    t.add_row("[bold]Total monthly payment[/bold]", f"[bold]{_fmt_money(result.total_monthly_payment)}[/bold]")
    t.add_row("", "")
    t.add_row("Loan-to-value", _fmt_pct(terms.loan_to_value_ratio))
    t.add_row("PMI required", "yes" if terms.is_pmi_required else "no")
    t.add_row("Total interest", _fmt_money(result.total_interest_paid))
    t.add_row("Total amount paid", _fmt_money(result.total_amount_paid))
    t.add_row("Interest / total paid", _fmt_pct(result.interest_to_total_ratio))
    t.add_row("Payoff date", result.payoff_date.isoformat())
    console.print(t)


def display_schedule(result: CalculationResult) -> None:
    t = Table(title="Amortization Schedule", box=box.MINIMAL_HEAVY_HEAD)
    for col in ("#", "Due", "Principal", "Interest", "Payment", "Balance"):
        t.add_column(col, justify="right")

    for row in result.schedule:
        t.add_row(
            str(row.index),
            row.due_date.isoformat(),
            _fmt_money(row.principal_portion),
            _fmt_money(row.interest_portion),
            _fmt_money(row.total_payment),
            _fmt_money(row.remaining_balance),
        )
    console.print(t)


def display_affordability(result: AffordabilityResult, down_payment_ratio: Decimal) -> None:
    console.print()
    console.print(Panel(
        f"[bold yellow]Affordability[/bold yellow] — "
        f"{_fmt_pct(result.annual_rate * HUNDRED)} over {result.term_years} years, "
        f"{result.max_payment_to_income_ratio:.0%} of gross income",
        expand=False,
    ))

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")
    t.add_row("Max monthly payment", _fmt_money(result.max_monthly_payment))
    t.add_row("Max affordable loan", _fmt_money(result.max_loan))
    t.add_row(f"Max home price ({down_payment_ratio:.0%} down)", _fmt_money(result.max_home_price))
    t.add_row("Debt-to-income", _fmt_pct(result.debt_to_income_ratio))
    console.print(t)

    if not result.can_afford_loan:
        console.print("[yellow]Existing debts use up the whole payment budget; no loan is affordable.[/yellow]")


def display_comparison(scenarios: list[ScenarioComparison]) -> None:
    t = Table(title="Scenario Comparison", box=box.SIMPLE_HEAVY, padding=(0, 1))
    t.add_column("Scenario", style="cyan")
    t.add_column("Rate", justify="right")
    t.add_column("Monthly", justify="right")
    t.add_column("Total interest", justify="right")
    t.add_column("Saved", justify="right")
    t.add_column("Payoff", justify="right")

    for s in scenarios:
        t.add_row(
            s.label,
            _fmt_pct(s.annual_rate_percent),
            _fmt_money(s.result.total_monthly_payment),
            _fmt_money(s.result.total_interest_paid),
            _fmt_money(s.interest_saved),
            s.result.payoff_date.isoformat(),
        )
    console.print(t)


def display_rates(catalog: RateCatalog) -> None:
    t = Table(title=f"Mortgage Rates — {catalog.timestamp:%Y-%m-%d}", box=box.SIMPLE, padding=(0, 2))
    t.add_column("Product", style="cyan")
    t.add_column("Rate", justify="right")
    t.add_column("Term", justify="right")
    for product in LOAN_PRODUCTS:
        t.add_row(product_label(product), _fmt_pct(catalog.rate_for(product)), f"{product_term_years(product)}y")
    console.print(t)
    console.print(f"  {catalog.trend_description}. Average points (30-year): {catalog.average_points_30yr}")


# ──────────────────────────────────────────────────────────────────────────────
# Input helpers
# ──────────────────────────────────────────────────────────────────────────────

def _load_catalog(path: Optional[str]) -> RateCatalog:
    if path is None:
        return DEFAULT_CATALOG
    return load_rate_catalog(path)


def _build_terms(
    principal: Optional[str],
    property_value: Optional[str],
    down_payment: Optional[str],
    rate: Optional[str],
    term: Optional[int],
    tax: str,
    insurance: str,
    hoa: str,
    pmi_rate: str,
) -> LoanTerms:
    if rate is None:
        raise InvalidInputError("an interest rate is required: pass --rate or --product")
    escrow = dict(
        annual_property_tax=tax,
        annual_insurance=insurance,
        monthly_hoa=hoa,
        pmi_annual_rate_percent=pmi_rate,
    )
    years = term if term is not None else DEFAULT_TERM_YEARS
    if principal is not None:
        return LoanTerms(
            principal=principal,  # type: ignore[arg-type]
            annual_rate_percent=rate,  # type: ignore[arg-type]
            term_years=years,
            property_value=property_value,  # type: ignore[arg-type]
            down_payment=down_payment if down_payment is not None else "0",  # type: ignore[arg-type]
            **escrow,
        )
    if property_value is not None:
        return LoanTerms.for_purchase(
            property_value, down_payment if down_payment is not None else "0", rate, years, **escrow
        )
    raise InvalidInputError("a loan amount is required: pass --principal or --property-value")


def _loan_options(func: Callable) -> Callable:
    """Options shared by every command that builds LoanTerms."""
    options = [
        click.option("--principal", type=str, default=None, help="Loan amount"),
        click.option("--property-value", type=str, default=None, help="Property value (principal = value - down payment when --principal is omitted)"),
        click.option("--down-payment", type=str, default=None, help="Down payment"),
        click.option("--rate", type=str, default=None, help="Annual interest rate in percent (e.g. 6.5)"),
        click.option("--tax", type=str, default="0", show_default=True, help="Annual property tax"),
        click.option("--insurance", type=str, default="0", show_default=True, help="Annual homeowners insurance"),
        click.option("--hoa", type=str, default="0", show_default=True, help="Monthly HOA fees"),
        click.option("--pmi-rate", type=str, default=str(DEFAULT_PMI_RATE_PERCENT), show_default=True, help="Annual PMI rate in percent, charged while LTV > 80%"),
        click.option("--start-date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Loan start date (default: today)"),
        click.option("--rates", "rates_path", type=click.Path(dir_okay=False), default=None, envvar=RATES_FILE_ENVVAR, help=f"Rate catalog JSON file (env: {RATES_FILE_ENVVAR})"),
        click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of tables"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _start(start_date: Optional[datetime]) -> Optional[date]:
    return start_date.date() if start_date is not None else None


_TERM_TYPE = click.IntRange(1, MAX_TERM_YEARS)
_ENGINE_ERRORS = (InvalidInputError, NumericOverflowError, RateCatalogError)

# Loan options that --input replaces.
_INPUT_CONFLICTS = (
    "principal", "property_value", "down_payment", "rate", "term", "product",
    "tax", "insurance", "hoa", "pmi_rate",
)


def _reject_input_conflicts(ctx: click.Context) -> None:
    given = [
        name for name in _INPUT_CONFLICTS
        if ctx.get_parameter_source(name) not in (None, ParameterSource.DEFAULT)
    ]
    if given:
        flags = ", ".join("--" + name.replace("_", "-") for name in given)
        raise click.UsageError(f"--input cannot be combined with {flags}", ctx=ctx)


# ──────────────────────────────────────────────────────────────────────────────
# Click entry points
# ──────────────────────────────────────────────────────────────────────────────

@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log calculation details to stderr")
def main(verbose: bool) -> None:
    """Mortgage calculator: payments, amortization schedules and affordability."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@main.command()
@_loan_options
@click.option("--term", type=_TERM_TYPE, default=None, help=f"Loan term in years (default: {DEFAULT_TERM_YEARS}, or the product's term)")
@click.option("--product", type=click.Choice(LOAN_PRODUCTS), default=None, help="Take rate and term from the rate catalog")
@click.option("--input", "input_file", type=click.File("r"), default=None, help="Read loan terms from a JSON file ('-' for stdin) instead of the loan options")
@click.option("--schedule", "show_schedule", is_flag=True, help="Print the full amortization schedule")
@click.option("--rounded", is_flag=True, help="Round JSON amounts to cents")
def calculate(
    principal: Optional[str],
    property_value: Optional[str],
    down_payment: Optional[str],
    rate: Optional[str],
    tax: str,
    insurance: str,
    hoa: str,
    pmi_rate: str,
    start_date: Optional[datetime],
    rates_path: Optional[str],
    as_json: bool,
    term: Optional[int],
    product: Optional[str],
    input_file,
    show_schedule: bool,
    rounded: bool,
) -> None:
    """Calculate the monthly payment and amortization schedule for a loan."""
    if input_file is not None:
        _reject_input_conflicts(click.get_current_context())
    try:
        if input_file is not None:
            terms = loan_terms_from_json(input_file.read())
        else:
            if product is not None:
                catalog = _load_catalog(rates_path)
                if rate is None:
                    rate = str(catalog.rate_for(product))
                if term is None:
                    term = product_term_years(product)
            terms = _build_terms(principal, property_value, down_payment, rate, term, tax, insurance, hoa, pmi_rate)
        result = run_calculation(terms, _start(start_date))
    except _ENGINE_ERRORS as exc:
        _fail(f"Error: {exc}")
        return

    if as_json:
        click.echo(result_to_json(result, rounded=rounded, include_schedule=show_schedule, indent=2))
        return

    display_result(result)
    if show_schedule:
        display_schedule(result)


@main.command()
@click.option("--income", type=str, required=True, help="Monthly gross income")
@click.option("--debts", type=str, default="0", show_default=True, help="Monthly debt payments")
@click.option("--rate", type=str, required=True, help="Annual interest rate in percent (e.g. 6.5)")
@click.option("--term", type=_TERM_TYPE, default=DEFAULT_TERM_YEARS, show_default=True, help="Loan term in years")
@click.option("--ratio", type=str, default=str(DEFAULT_MAX_PAYMENT_TO_INCOME_RATIO), show_default=True, help="Maximum payment-to-income ratio")
@click.option("--down-payment-ratio", type=str, default=str(DEFAULT_DOWN_PAYMENT_RATIO), show_default=True, help="Down payment assumed for the max home price")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of tables")
def afford(
    income: str,
    debts: str,
    rate: str,
    term: int,
    ratio: str,
    down_payment_ratio: str,
    as_json: bool,
) -> None:
    """Find the largest loan an income can support."""
    try:
        down_ratio = as_decimal(down_payment_ratio, "down_payment_ratio")
        result = assess_affordability(
            income,  # type: ignore[arg-type]
            debts,  # type: ignore[arg-type]
            as_decimal(rate, "rate") / HUNDRED,
            term,
            ratio,  # type: ignore[arg-type]
            down_ratio,
        )
    except _ENGINE_ERRORS as exc:
        _fail(f"Error: {exc}")
        return

    if as_json:
        click.echo(json.dumps(affordability_to_dict(result), indent=2))
        return
    display_affordability(result, down_ratio)


@main.command()
@_loan_options
@click.option("--term", "terms_years", type=_TERM_TYPE, multiple=True, help="Term in years; repeat to compare (default: 15 and 30)")
@click.option("--product", "products", type=click.Choice(LOAN_PRODUCTS), multiple=True, help="Compare rate-catalog products instead of terms; repeat for several")
@click.option("--all-products", is_flag=True, help="Compare every product in the rate catalog")
def compare(
    principal: Optional[str],
    property_value: Optional[str],
    down_payment: Optional[str],
    rate: Optional[str],
    tax: str,
    insurance: str,
    hoa: str,
    pmi_rate: str,
    start_date: Optional[datetime],
    rates_path: Optional[str],
    as_json: bool,
    terms_years: tuple[int, ...],
    products: tuple[str, ...],
    all_products: bool,
) -> None:
    """Compare the same loan across terms or loan products."""
    try:
        if products or all_products:
            catalog = _load_catalog(rates_path)
            # Rate and term are replaced per product.
            base = _build_terms(
                principal, property_value, down_payment, rate or "0", None, tax, insurance, hoa, pmi_rate,
            )
            scenarios = compare_products(
                base, catalog, None if all_products else products, start_date=_start(start_date)
            )
        else:
            base = _build_terms(principal, property_value, down_payment, rate, None, tax, insurance, hoa, pmi_rate)
            scenarios = compare_terms(base, terms_years or (15, 30), start_date=_start(start_date))
    except _ENGINE_ERRORS as exc:
        _fail(f"Error: {exc}")
        return

    if as_json:
        payload = []
        for s in scenarios:
            item = result_to_dict(s.result, include_schedule=False)
            item.update({
                "label": s.label,
                "termYears": s.term_years,
                "annualRatePercent": float(s.annual_rate_percent),
                "interestSaved": float(s.interest_saved),
            })
            payload.append(item)
        click.echo(json.dumps(payload, indent=2))
        return
    display_comparison(scenarios)


@main.command()
@click.option("--rates", "rates_path", type=click.Path(dir_okay=False), default=None, envvar=RATES_FILE_ENVVAR, help=f"Rate catalog JSON file (env: {RATES_FILE_ENVVAR})")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of a table")
def rates(rates_path: Optional[str], as_json: bool) -> None:
    """Show the mortgage rate catalog in use."""
    try:
        catalog = _load_catalog(rates_path)
    except RateCatalogError as exc:
        _fail(f"Error: {exc}")
        return

    if as_json:
        click.echo(json.dumps(catalog.to_dict(), indent=2))
        return
    display_rates(catalog)
