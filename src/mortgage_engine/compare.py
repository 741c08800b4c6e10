"""Side-by-side scenario comparison (e.g. 15-year vs 30-year).

Each scenario is an independent pure calculation, so they run on a thread
pool with no coordination.  Results come back in the order requested.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .calculator import CalculationResult, calculate
from .errors import InvalidInputError
from .rates import LOAN_PRODUCTS, RateCatalog, product_label, product_term_years
from .terms import LoanTerms, as_term_years

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioComparison:
    label: str
    terms: LoanTerms
    result: CalculationResult
    interest_saved: Decimal  # vs. the most expensive scenario in the same comparison

    @property
    def term_years(self) -> int:
        return self.terms.term_years

    @property
    def annual_rate_percent(self) -> Decimal:
        return self.terms.annual_rate_percent


def _run(
    scenarios: Sequence[tuple[str, LoanTerms]],
    start_date: Optional[date],
    max_workers: Optional[int],
) -> list[ScenarioComparison]:
    if not scenarios:
        raise InvalidInputError("at least one scenario is required for a comparison")
    if start_date is None:
        start_date = date.today()

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(lambda s: calculate(s[1], start_date), scenarios))

    worst = max(result.total_interest_paid for result in results)
    logger.debug("Compared %d scenarios starting %s", len(results), start_date)
    return [
        ScenarioComparison(
            label=label,
            terms=terms,
            result=result,
            interest_saved=worst - result.total_interest_paid,
        )
        for (label, terms), result in zip(scenarios, results)
    ]


def compare_terms(
    terms: LoanTerms,
    term_years_options: Iterable[int],
    start_date: Optional[date] = None,
    max_workers: Optional[int] = None,
) -> list[ScenarioComparison]:
    """Calculate *terms* once per term length in *term_years_options*."""
    scenarios = []
    for option in term_years_options:
        years = as_term_years(option)
        scenarios.append((f"{years}-year", replace(terms, term_years=years)))
    return _run(scenarios, start_date, max_workers)


def compare_products(
    terms: LoanTerms,
    catalog: RateCatalog,
    products: Optional[Iterable[str]] = None,
    start_date: Optional[date] = None,
    max_workers: Optional[int] = None,
) -> list[ScenarioComparison]:
    """Calculate *terms* under each catalog product's rate and default term."""
    scenarios = [
        (
            product_label(product),
            replace(
                terms,
                annual_rate_percent=catalog.rate_for(product),
                term_years=product_term_years(product),
            ),
        )
        for product in (LOAN_PRODUCTS if products is None else products)
    ]
    return _run(scenarios, start_date, max_workers)
