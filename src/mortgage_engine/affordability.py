"""Affordability: the largest loan a borrower's income supports.

Inverts the payment formula used by calculator.compute_monthly_payment:
    max_payment = income * ratio - debts
    max_loan    = max_payment * ((1 + r)^n - 1) / (r * (1 + r)^n)
A non-positive max_payment is a valid answer ("no loan is affordable"),
not an error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from .calculator import compound_factor, ensure_finite
from .config import (
    DEFAULT_DOWN_PAYMENT_RATIO,
    DEFAULT_MAX_PAYMENT_TO_INCOME_RATIO,
    HUNDRED,
    MONTHS_PER_YEAR,
    ZERO,
)
from .errors import InvalidInputError, overflow_guard
from .terms import as_decimal, as_term_years

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AffordabilityResult:
    # Inputs echoed back
    monthly_gross_income: Decimal
    monthly_debt_payments: Decimal
    annual_rate: Decimal
    term_years: int
    max_payment_to_income_ratio: Decimal
    # Outputs
    max_monthly_payment: Decimal   # may be <= 0 when debts eat the whole budget
    max_loan: Decimal              # 0 when max_monthly_payment <= 0
    debt_to_income_ratio: Decimal  # percent
    max_home_price: Decimal        # max_loan grossed up by the assumed down payment

    @property
    def can_afford_loan(self) -> bool:
        return self.max_loan > ZERO


def debt_to_income_ratio(monthly_debt_payments: Decimal, monthly_gross_income: Decimal) -> Decimal:
    """Monthly debts as a percentage of monthly gross income."""
    debts = as_decimal(monthly_debt_payments, "monthly_debt_payments")
    income = as_decimal(monthly_gross_income, "monthly_gross_income")
    if income <= ZERO:
        raise InvalidInputError(f"monthly_gross_income must be > 0, got {income}")
    if debts < ZERO:
        raise InvalidInputError(f"monthly_debt_payments must be >= 0, got {debts}")
    with overflow_guard("debt-to-income ratio"):
        return debts * HUNDRED / income


def max_affordable_loan(
    monthly_gross_income: Decimal,
    monthly_debt_payments: Decimal,
    annual_rate: Decimal,
    term_years: int,
    max_payment_to_income_ratio: Decimal = DEFAULT_MAX_PAYMENT_TO_INCOME_RATIO,
) -> Decimal:
    """Return the largest principal whose payment fits the income budget."""
    return assess_affordability(
        monthly_gross_income,
        monthly_debt_payments,
        annual_rate,
        term_years,
        max_payment_to_income_ratio,
    ).max_loan


def assess_affordability(
    monthly_gross_income: Decimal,
    monthly_debt_payments: Decimal,
    annual_rate: Decimal,
    term_years: int,
    max_payment_to_income_ratio: Decimal = DEFAULT_MAX_PAYMENT_TO_INCOME_RATIO,
    down_payment_ratio: Decimal = DEFAULT_DOWN_PAYMENT_RATIO,
) -> AffordabilityResult:
    """Full affordability picture for one borrower.

    annual_rate is a decimal fraction (0.065 for 6.5%).  Raises
    InvalidInputError for non-positive income, negative debts or rate,
    a term shorter than a year, or a ratio outside (0, 1].
    """
    income = as_decimal(monthly_gross_income, "monthly_gross_income")
    debts = as_decimal(monthly_debt_payments, "monthly_debt_payments")
    rate = as_decimal(annual_rate, "annual_rate")
    years = as_term_years(term_years)
    ratio = as_decimal(max_payment_to_income_ratio, "max_payment_to_income_ratio")
    down_ratio = as_decimal(down_payment_ratio, "down_payment_ratio")

    if income <= ZERO:
        raise InvalidInputError(f"monthly_gross_income must be > 0, got {income}")
    if debts < ZERO:
        raise InvalidInputError(f"monthly_debt_payments must be >= 0, got {debts}")
    if rate < ZERO:
        raise InvalidInputError(f"annual_rate must be >= 0, got {rate}")
    if years < 1:
        raise InvalidInputError(f"term_years must be >= 1, got {years}")
    if not ZERO < ratio <= 1:
        raise InvalidInputError(f"max_payment_to_income_ratio must be in (0, 1], got {ratio}")
    if not ZERO <= down_ratio < 1:
        raise InvalidInputError(f"down_payment_ratio must be in [0, 1), got {down_ratio}")

    periods = years * MONTHS_PER_YEAR
    max_payment = income * ratio - debts

    with overflow_guard("maximum loan"):
        if max_payment <= ZERO:
            max_loan = ZERO
        elif rate == ZERO:
            max_loan = max_payment * Decimal(periods)
        else:
            r = rate / Decimal(MONTHS_PER_YEAR)
            factor = compound_factor(r, periods)
            if factor == 1:
                max_loan = max_payment * Decimal(periods)
            else:
                max_loan = ensure_finite(max_payment * (factor - 1) / (r * factor), "maximum loan")
        max_home_price = max_loan / (1 - down_ratio)

    logger.debug(
        "Affordability for income %s, debts %s: max payment %s, max loan %s",
        income, debts, max_payment, max_loan,
    )

    return AffordabilityResult(
        monthly_gross_income=income,
        monthly_debt_payments=debts,
        annual_rate=rate,
        term_years=years,
        max_payment_to_income_ratio=ratio,
        max_monthly_payment=max_payment,
        max_loan=max_loan,
        debt_to_income_ratio=debt_to_income_ratio(debts, income),
        max_home_price=max_home_price,
    )
