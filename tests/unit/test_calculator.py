"""Unit tests for calculator.py — monthly payment, amortization, result assembly."""
import dataclasses
from datetime import date
from decimal import Decimal

import pytest

from mortgage_engine.calculator import (
    build_amortization_schedule,
    calculate,
    compute_monthly_payment,
    round_cents,
)
from mortgage_engine.errors import InvalidInputError, NumericOverflowError
from mortgage_engine.terms import LoanTerms

ZERO = Decimal("0")
TINY = Decimal("1e-12")


class TestComputeMonthlyPayment:
    @pytest.mark.parametrize("principal,annual_rate,years,expected", [
        (Decimal("400000"), Decimal("0.065"), 30, Decimal("2528.27")),
        (Decimal("100000"), Decimal("0.035"), 20, Decimal("579.96")),
        (Decimal("200000"), Decimal("0.032"), 25, Decimal("969.36")),
        (Decimal("500000"), Decimal("0.050"), 30, Decimal("2684.11")),
        # 1 200 at 12% over one year: textbook PMT
        (Decimal("1200"), Decimal("0.12"), 1, Decimal("106.62")),
    ])
    def test_standard_cases(self, principal, annual_rate, years, expected):
        result = compute_monthly_payment(principal, annual_rate, years)
        assert round_cents(result) == expected, f"payment mismatch: got {result}, expected {expected}"

    def test_zero_rate_is_straight_line(self):
        result = compute_monthly_payment(Decimal("100000"), ZERO, 10)
        assert result == Decimal("100000") / Decimal("120")
        assert round_cents(result) == Decimal("833.33")

    def test_zero_rate_with_trailing_zeros(self):
        result = compute_monthly_payment(Decimal("120000"), Decimal("0.000"), 10)
        assert result == Decimal("1000")

    @pytest.mark.parametrize("principal,annual_rate,years", [
        (Decimal("400000"), Decimal("0.065"), 30),
        (Decimal("1"), Decimal("0.001"), 1),
        (Decimal("750000"), Decimal("0.0999"), 50),
        (Decimal("85000.55"), Decimal("0.2"), 7),
    ])
    def test_total_paid_covers_principal(self, principal, annual_rate, years):
        payment = compute_monthly_payment(principal, annual_rate, years)
        assert payment > ZERO
        assert payment * years * 12 >= principal

    def test_accepts_plain_numbers(self):
        assert compute_monthly_payment(400000, 0.065, 30) == compute_monthly_payment(
            Decimal("400000"), Decimal("0.065"), 30
        )

    def test_whole_float_term_accepted(self):
        assert compute_monthly_payment(100000, "0.05", 30.0) == compute_monthly_payment(100000, "0.05", 30)

    @pytest.mark.parametrize("principal", [Decimal("0"), Decimal("-1")])
    def test_non_positive_principal(self, principal):
        with pytest.raises(InvalidInputError, match="principal"):
            compute_monthly_payment(principal, Decimal("0.05"), 30)

    def test_negative_rate(self):
        with pytest.raises(InvalidInputError, match="annual_rate"):
            compute_monthly_payment(Decimal("100000"), Decimal("-0.01"), 30)

    @pytest.mark.parametrize("years", [0, -5, 2.5])
    def test_invalid_term(self, years):
        with pytest.raises(InvalidInputError, match="term_years"):
            compute_monthly_payment(Decimal("100000"), Decimal("0.05"), years)

    def test_non_finite_input(self):
        with pytest.raises(InvalidInputError):
            compute_monthly_payment(float("inf"), Decimal("0.05"), 30)

    def test_overflowing_growth_factor(self):
        with pytest.raises(NumericOverflowError):
            compute_monthly_payment(Decimal("100000"), Decimal("1E90"), 1000)

    @pytest.mark.parametrize("principal,annual_rate,years", [
        # growth factor fits; r * factor does not
        ("1", "1.2E80001", 1),
        # formula fits until scaled by the principal
        ("1E999998", "0.5", 30),
    ])
    def test_overflowing_payment_formula(self, principal, annual_rate, years):
        with pytest.raises(NumericOverflowError):
            compute_monthly_payment(Decimal(principal), Decimal(annual_rate), years)


class TestAmortizationSchedule:
    START = date(2025, 1, 1)

    def _build(self, principal="400000", annual_rate="0.065", years=30, start=START):
        return build_amortization_schedule(Decimal(principal), Decimal(annual_rate), years, start)

    def test_row_count(self):
        assert len(self._build()) == 360
        assert len(self._build(years=15)) == 180

    def test_indices_contiguous_from_one(self):
        schedule = self._build(years=5)
        assert [row.index for row in schedule] == list(range(1, 61))

    def test_first_period(self):
        row = self._build()[0]
        # interest = 400000 * 0.065 / 12 = 2166.67
        assert round_cents(row.interest_portion) == Decimal("2166.67")
        assert row.principal_portion + row.interest_portion == row.total_payment
        assert row.remaining_balance == Decimal("400000") - row.principal_portion

    @pytest.mark.parametrize("principal,annual_rate,years", [
        ("400000", "0.065", 30),
        ("1000", "0.12", 1),
        ("250000", "0.0375", 15),
        ("123456.78", "0.0799", 7),
        ("50000", "0", 3),
        ("1", "0.5", 50),
    ])
    def test_final_balance_is_exactly_zero(self, principal, annual_rate, years):
        schedule = self._build(principal, annual_rate, years)
        assert schedule[-1].remaining_balance == ZERO
        assert len(schedule) == years * 12

    @pytest.mark.parametrize("principal,annual_rate,years", [
        ("400000", "0.065", 30),
        ("250000", "0.0375", 15),
        ("50000", "0", 3),
    ])
    def test_balance_monotonically_non_increasing(self, principal, annual_rate, years):
        balances = [row.remaining_balance for row in self._build(principal, annual_rate, years)]
        for i in range(len(balances) - 1):
            assert balances[i] >= balances[i + 1], "Balance should never increase"
        assert all(b >= ZERO for b in balances)

    def test_final_payment_absorbs_residual(self):
        schedule = self._build()
        payment = compute_monthly_payment(Decimal("400000"), Decimal("0.065"), 30)
        last = schedule[-1]
        assert abs(last.total_payment - payment) < Decimal("1e-10")
        assert abs(last.principal_portion + last.interest_portion - last.total_payment) < Decimal("1e-20")
        for row in schedule[:-1]:
            assert row.total_payment == payment

    def test_principal_portions_sum_to_principal(self):
        schedule = self._build()
        total = sum((row.principal_portion for row in schedule), ZERO)
        assert abs(total - Decimal("400000")) < TINY

    def test_zero_rate_has_no_interest(self):
        schedule = self._build("100000", "0", 10)
        assert all(row.interest_portion == ZERO for row in schedule)
        assert sum((row.interest_portion for row in schedule), ZERO) == ZERO
        assert schedule[0].total_payment == Decimal("100000") / Decimal("120")

    def test_due_dates_are_calendar_months(self):
        schedule = self._build(years=2)
        assert schedule[0].due_date == date(2025, 2, 1)
        assert schedule[11].due_date == date(2026, 1, 1)
        assert schedule[-1].due_date == date(2027, 1, 1)

    def test_month_end_start_clamps_to_last_valid_day(self):
        schedule = self._build(years=1, start=date(2025, 1, 31))
        assert schedule[0].due_date == date(2025, 2, 28)
        # Each date is measured from the start, not chained from the clamped one
        assert schedule[1].due_date == date(2025, 3, 31)
        assert schedule[2].due_date == date(2025, 4, 30)

    def test_leap_year_february(self):
        schedule = self._build(years=1, start=date(2024, 1, 31))
        assert schedule[0].due_date == date(2024, 2, 29)

    def test_year_rollover(self):
        schedule = self._build(years=1, start=date(2025, 12, 15))
        assert schedule[0].due_date == date(2026, 1, 15)

    def test_regenerating_is_deterministic(self):
        assert self._build(years=10) == self._build(years=10)

    def test_principal_ratio(self):
        row = self._build()[0]
        assert ZERO < row.principal_ratio < Decimal("100")

    def test_invalid_input_rejected_before_iterating(self):
        with pytest.raises(InvalidInputError):
            build_amortization_schedule(Decimal("0"), Decimal("0.05"), 30, self.START)


class TestCalculate:
    START = date(2025, 1, 1)

    def _terms(self, **kwargs) -> LoanTerms:
        defaults = dict(
            principal=Decimal("400000"),
            annual_rate_percent=Decimal("6.5"),
            term_years=30,
            property_value=Decimal("500000"),
            down_payment=Decimal("100000"),
            annual_property_tax=Decimal("6000"),
            annual_insurance=Decimal("1200"),
            monthly_hoa=Decimal("100"),
            pmi_annual_rate_percent=Decimal("0.5"),
        )
        defaults.update(kwargs)
        return LoanTerms(**defaults)

    def test_reference_scenario(self):
        result = calculate(self._terms(), self.START)
        assert abs(result.monthly_principal_and_interest - Decimal("2528.27")) <= Decimal("0.01")
        assert len(result.schedule) == 360
        assert result.schedule[-1].remaining_balance == ZERO

    def test_escrow_components(self):
        result = calculate(self._terms(), self.START)
        assert result.monthly_property_tax == Decimal("500")
        assert result.monthly_insurance == Decimal("100")
        assert result.monthly_hoa == Decimal("100")

    def test_total_monthly_is_sum_of_components(self):
        result = calculate(self._terms(principal=Decimal("450000")), self.START)
        assert result.total_monthly_payment == (
            result.monthly_principal_and_interest
            + result.monthly_property_tax
            + result.monthly_insurance
            + result.monthly_pmi
            + result.monthly_hoa
        )

    def test_no_pmi_at_exactly_80_ltv(self):
        result = calculate(self._terms(), self.START)
        assert result.monthly_pmi == ZERO
        assert result.total_pmi_paid == ZERO

    def test_pmi_above_80_ltv(self):
        result = calculate(self._terms(principal=Decimal("450000")), self.START)
        # 450000 * 0.5% / 12
        assert result.monthly_pmi == Decimal("187.5")
        assert result.total_pmi_paid == Decimal("187.5") * 360

    def test_total_interest_is_sum_of_schedule(self):
        result = calculate(self._terms(), self.START)
        assert result.total_interest_paid == sum(
            (row.interest_portion for row in result.schedule), ZERO
        )

    def test_total_interest_reconciles_with_total_paid(self):
        terms = self._terms()
        result = calculate(terms, self.START)
        derived = (
            result.total_amount_paid
            - terms.principal
            - terms.annual_property_tax * terms.term_years
            - terms.annual_insurance * terms.term_years
        )
        assert abs(result.total_interest_paid - derived) < TINY

    def test_total_interest_matches_payments(self):
        result = calculate(self._terms(), self.START)
        expected = result.monthly_principal_and_interest * 360 - Decimal("400000")
        assert abs(result.total_interest_paid - expected) < Decimal("0.000001")

    def test_zero_rate_scenario(self):
        result = calculate(
            self._terms(principal=Decimal("100000"), annual_rate_percent=ZERO, term_years=10),
            self.START,
        )
        assert result.monthly_principal_and_interest == Decimal("100000") / Decimal("120")
        assert result.total_interest_paid == ZERO

    def test_payoff_date_is_last_due_date(self):
        result = calculate(self._terms(), self.START)
        assert result.payoff_date == result.schedule[-1].due_date
        assert result.payoff_date == date(2055, 1, 1)

    def test_default_start_date_is_today(self):
        result = calculate(self._terms(term_years=1))
        assert result.schedule[0].due_date > date.today()

    def test_hoa_total(self):
        result = calculate(self._terms(), self.START)
        assert result.total_hoa_paid == Decimal("36000")

    def test_interest_to_total_ratio(self):
        result = calculate(self._terms(), self.START)
        assert ZERO < result.interest_to_total_ratio < Decimal("100")

    def test_result_is_immutable(self):
        result = calculate(self._terms(), self.START)
        assert isinstance(result.schedule, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.total_interest_paid = ZERO  # type: ignore[misc]

    def test_pure_function_of_terms(self):
        terms = self._terms()
        assert calculate(terms, self.START) == calculate(terms, self.START)

    def test_overflowing_escrow_totals(self):
        terms = self._terms(annual_property_tax=Decimal("9E999999"))
        with pytest.raises(NumericOverflowError):
            calculate(terms, self.START)


class TestRoundCents:
    @pytest.mark.parametrize("value,expected", [
        ("2528.2703", "2528.27"),
        ("0.005", "0.01"),
        ("-0.005", "-0.01"),
    ])
    def test_half_up(self, value, expected):
        assert round_cents(Decimal(value)) == Decimal(expected)

    def test_too_large_for_cents_returned_unchanged(self):
        value = Decimal("1E40")
        assert round_cents(value) == value
