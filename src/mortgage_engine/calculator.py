"""Core mortgage calculation functions.

All monetary values use decimal.Decimal at full context precision.
Nothing in here rounds: presentation layers call round_cents() on the way
out.  Every function is a pure function of its arguments.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Optional

from dateutil.relativedelta import relativedelta

from .config import CENT, HUNDRED, MONTHS_PER_YEAR, ZERO
from .errors import InvalidInputError, NumericOverflowError, overflow_guard
from .terms import LoanTerms, as_decimal, as_term_years

logger = logging.getLogger(__name__)


def round_cents(value: Decimal) -> Decimal:
    """Round half-up to cents.

    Values with too many integer digits to carry cents at context precision
    are returned unchanged.
    """
    if value.is_finite() and value.adjusted() + 3 > getcontext().prec:
        return value
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AmortizationEntry:
    index: int                  # 1-based
    due_date: date
    principal_portion: Decimal
    interest_portion: Decimal
    total_payment: Decimal
    remaining_balance: Decimal

    @property
    def principal_ratio(self) -> Decimal:
        """Principal as a percentage of this payment."""
        if self.total_payment == ZERO:
            return ZERO
        return self.principal_portion * HUNDRED / self.total_payment


@dataclass(frozen=True)
class CalculationResult:
    # Monthly components
    monthly_principal_and_interest: Decimal
    monthly_property_tax: Decimal
    monthly_insurance: Decimal
    monthly_pmi: Decimal
    monthly_hoa: Decimal
    total_monthly_payment: Decimal
    # Totals over the loan term
    total_interest_paid: Decimal
    total_amount_paid: Decimal
    total_pmi_paid: Decimal
    total_hoa_paid: Decimal
    payoff_date: date
    schedule: tuple             # tuple[AmortizationEntry, ...], ordered by index
    # Inputs echoed back
    terms: LoanTerms

    @property
    def interest_to_total_ratio(self) -> Decimal:
        """Interest as a percentage of everything paid."""
        if self.total_amount_paid == ZERO:
            return ZERO
        return self.total_interest_paid * HUNDRED / self.total_amount_paid


def ensure_finite(value: Decimal, what: str) -> Decimal:
    if not value.is_finite():
        raise NumericOverflowError(f"{what} is not a finite number ({value})")
    return value


def compound_factor(monthly_rate: Decimal, periods: int) -> Decimal:
    """(1 + r)^n, raising NumericOverflowError instead of overflowing."""
    with overflow_guard(f"compounding factor for monthly rate {monthly_rate} over {periods} periods"):
        factor = (1 + monthly_rate) ** periods
    return ensure_finite(factor, "compounding factor")


def _validate_loan(principal: object, annual_rate: object, term_years: object) -> tuple[Decimal, Decimal, int]:
    p = as_decimal(principal, "principal")
    rate = as_decimal(annual_rate, "annual_rate")
    years = as_term_years(term_years)
    if p <= ZERO:
        raise InvalidInputError(f"principal must be > 0, got {p}")
    if rate < ZERO:
        raise InvalidInputError(f"annual_rate must be >= 0, got {rate}")
    if years < 1:
        raise InvalidInputError(f"term_years must be >= 1, got {years}")
    return p, rate, years


def _payment(principal: Decimal, annual_rate: Decimal, periods: int) -> Decimal:
    if annual_rate == ZERO:
        return principal / Decimal(periods)

    r = annual_rate / Decimal(MONTHS_PER_YEAR)
    factor = compound_factor(r, periods)
    if factor == 1:
        # Rate too small to register at context precision; the limit is straight-line.
        return principal / Decimal(periods)
    with overflow_guard("monthly payment"):
        payment = principal * (r * factor) / (factor - 1)
    return ensure_finite(payment, "monthly payment")


def compute_monthly_payment(
    principal: Decimal,
    annual_rate: Decimal,
    term_years: int,
) -> Decimal:
    """Return the fixed monthly payment (principal + interest only).

    Uses the standard fully-amortizing formula:
        M = P * r * (1 + r)^n / ((1 + r)^n - 1),  r = annual_rate / 12, n = years * 12

    Special case: if annual_rate == 0, M = P / n exactly.
    annual_rate is a decimal fraction (0.065 for 6.5%).
    """
    p, rate, years = _validate_loan(principal, annual_rate, term_years)
    return _payment(p, rate, years * MONTHS_PER_YEAR)


def build_amortization_schedule(
    principal: Decimal,
    annual_rate: Decimal,
    term_years: int,
    start_date: date,
) -> list[AmortizationEntry]:
    """Build the full month-by-month amortization schedule.

    Entry i falls due start_date + i calendar months.  Whatever residue is
    left on the balance after the last period is folded into that period's
    principal and total payment, so the final remaining_balance is exactly 0.
    """
    p, rate, years = _validate_loan(principal, annual_rate, term_years)
    periods = years * MONTHS_PER_YEAR
    payment = _payment(p, rate, periods)
    r = rate / Decimal(MONTHS_PER_YEAR)

    rows: list[AmortizationEntry] = []
    balance = p

    for index in range(1, periods + 1):
        interest = balance * r
        principal_portion = payment - interest
        balance -= principal_portion
        due_date = start_date + relativedelta(months=index)

        if index == periods:
            residual = ensure_finite(balance, "final balance")
            rows.append(
                AmortizationEntry(
                    index=index,
                    due_date=due_date,
                    principal_portion=principal_portion + residual,
                    interest_portion=interest,
                    total_payment=payment + residual,
                    remaining_balance=ZERO,
                )
            )
        else:
            rows.append(
                AmortizationEntry(
                    index=index,
                    due_date=due_date,
                    principal_portion=principal_portion,
                    interest_portion=interest,
                    total_payment=payment,
                    remaining_balance=balance,
                )
            )

    return rows


def calculate(terms: LoanTerms, start_date: Optional[date] = None) -> CalculationResult:
    """Compute the full result for *terms*: payments, escrow, totals and schedule."""
    if start_date is None:
        start_date = date.today()

    monthly_pi = compute_monthly_payment(terms.principal, terms.annual_rate, terms.term_years)
    schedule = build_amortization_schedule(
        terms.principal, terms.annual_rate, terms.term_years, start_date
    )

    periods = Decimal(terms.number_of_payments)
    years = Decimal(terms.term_years)

    with overflow_guard("payment totals"):
        monthly_tax = terms.annual_property_tax / Decimal(MONTHS_PER_YEAR)
        monthly_insurance = terms.annual_insurance / Decimal(MONTHS_PER_YEAR)
        if terms.is_pmi_required:
            monthly_pmi = terms.principal * terms.pmi_annual_rate_percent / HUNDRED / Decimal(MONTHS_PER_YEAR)
        else:
            monthly_pmi = ZERO
        total_monthly = monthly_pi + monthly_tax + monthly_insurance + monthly_pmi + terms.monthly_hoa

        total_interest = sum((row.interest_portion for row in schedule), ZERO)
        total_paid = (
            terms.principal
            + total_interest
            + terms.annual_property_tax * years
            + terms.annual_insurance * years
        )
        total_pmi = monthly_pmi * periods
        total_hoa = terms.monthly_hoa * periods

    logger.debug(
        "Calculated %s at %s%% over %d years: P&I %s, %d payments, interest %s",
        terms.principal, terms.annual_rate_percent, terms.term_years,
        round_cents(monthly_pi), len(schedule), round_cents(total_interest),
    )

    return CalculationResult(
        monthly_principal_and_interest=monthly_pi,
        monthly_property_tax=monthly_tax,
        monthly_insurance=monthly_insurance,
        monthly_pmi=monthly_pmi,
        monthly_hoa=terms.monthly_hoa,
        total_monthly_payment=total_monthly,
        total_interest_paid=total_interest,
        total_amount_paid=total_paid,
        total_pmi_paid=total_pmi,
        total_hoa_paid=total_hoa,
        payoff_date=schedule[-1].due_date,
        schedule=tuple(schedule),
        terms=terms,
    )
