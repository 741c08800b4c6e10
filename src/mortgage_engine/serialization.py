"""JSON boundary: LoanTerms in, CalculationResult out.

Keys are camelCase; dates are ISO-8601 (YYYY-MM-DD).  Numbers may arrive as
ints or floats and are normalised to Decimal by LoanTerms; on the way out
Decimal values are written as JSON numbers, rounded to cents on request.
"""
from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional

from .affordability import AffordabilityResult
from .calculator import AmortizationEntry, CalculationResult, round_cents
from .errors import InvalidInputError
from .terms import LoanTerms


def loan_terms_from_json(text: str) -> LoanTerms:
    """Parse a JSON object into LoanTerms.  Raises InvalidInputError."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"Loan terms are not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidInputError("Loan terms must be a JSON object")
    return LoanTerms.from_dict(data)


def _num(value: Decimal, rounded: bool) -> float:
    return float(round_cents(value) if rounded else value)


def entry_to_dict(entry: AmortizationEntry, rounded: bool = False) -> dict[str, Any]:
    return {
        "index": entry.index,
        "dueDate": entry.due_date.isoformat(),
        "principalPortion": _num(entry.principal_portion, rounded),
        "interestPortion": _num(entry.interest_portion, rounded),
        "totalPayment": _num(entry.total_payment, rounded),
        "remainingBalance": _num(entry.remaining_balance, rounded),
    }


def result_to_dict(
    result: CalculationResult,
    rounded: bool = False,
    include_schedule: bool = True,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "monthlyPrincipalAndInterest": _num(result.monthly_principal_and_interest, rounded),
        "monthlyPropertyTax": _num(result.monthly_property_tax, rounded),
        "monthlyInsurance": _num(result.monthly_insurance, rounded),
        "monthlyPMI": _num(result.monthly_pmi, rounded),
        "monthlyHOA": _num(result.monthly_hoa, rounded),
        "totalMonthlyPayment": _num(result.total_monthly_payment, rounded),
        "totalInterestPaid": _num(result.total_interest_paid, rounded),
        "totalAmountPaid": _num(result.total_amount_paid, rounded),
        "totalPMIPaid": _num(result.total_pmi_paid, rounded),
        "totalHOAPaid": _num(result.total_hoa_paid, rounded),
        "payoffDate": result.payoff_date.isoformat(),
        "loanToValueRatio": float(result.terms.loan_to_value_ratio),
        "isPmiRequired": result.terms.is_pmi_required,
    }
    if include_schedule:
        data["schedule"] = [entry_to_dict(entry, rounded) for entry in result.schedule]
    return data


def result_to_json(
    result: CalculationResult,
    rounded: bool = False,
    include_schedule: bool = True,
    indent: Optional[int] = None,
) -> str:
    return json.dumps(result_to_dict(result, rounded, include_schedule), indent=indent)


def affordability_to_dict(result: AffordabilityResult, rounded: bool = False) -> dict[str, Any]:
    return {
        "monthlyGrossIncome": _num(result.monthly_gross_income, rounded),
        "monthlyDebtPayments": _num(result.monthly_debt_payments, rounded),
        "annualRate": float(result.annual_rate),
        "termYears": result.term_years,
        "maxPaymentToIncomeRatio": float(result.max_payment_to_income_ratio),
        "maxMonthlyPayment": _num(result.max_monthly_payment, rounded),
        "maxLoan": _num(result.max_loan, rounded),
        "debtToIncomeRatio": float(result.debt_to_income_ratio),
        "maxHomePrice": _num(result.max_home_price, rounded),
    }
