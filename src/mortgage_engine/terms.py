"""Loan terms: normalisation and validation of a borrower's requested loan.

Resolution rules:
1. Every numeric field is normalised to Decimal; ints, floats and numeric
   strings are accepted, booleans and non-finite values are not.
2. Escrow fields (tax, insurance, HOA, PMI rate) and the down payment default
   to zero when absent.  Which fields were defaulted is recorded in
   ``defaulted`` so a caller can tell "not provided" from "explicitly zero".
3. property_value defaults to principal + down_payment when absent.
4. Validation happens here, once, before any calculation runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from .config import HUNDRED, MONTHS_PER_YEAR, PMI_LTV_THRESHOLD, ZERO
from .errors import InvalidInputError, overflow_guard


def as_decimal(value: object, name: str) -> Decimal:
    """Normalise *value* to a finite Decimal.

    Floats go through ``str()`` so 0.1 becomes Decimal("0.1"), not the
    binary expansion.
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidInputError(f"{name} must be a number, got {value!r}") from exc
    else:
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    if not result.is_finite():
        raise InvalidInputError(f"{name} must be a finite number, got {value!r}")
    return result


def as_term_years(value: object, name: str = "term_years") -> int:
    """Normalise a term to an int.  30, 30.0 and "30" are fine; 30.5 is not."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    years = as_decimal(value, name)
    if years != years.to_integral_value():
        raise InvalidInputError(f"{name} must be a whole number of years, got {value!r}")
    return int(years)


@dataclass(frozen=True)
class LoanTerms:
    """A validated loan request.  Immutable once constructed."""
    # Mandatory
    principal: Decimal
    annual_rate_percent: Decimal
    term_years: int
    # Property
    property_value: Optional[Decimal] = None  # None → principal + down_payment
    down_payment: Decimal = ZERO
    # Escrow
    annual_property_tax: Decimal = ZERO
    annual_insurance: Decimal = ZERO
    monthly_hoa: Decimal = ZERO
    pmi_annual_rate_percent: Decimal = ZERO
    # Provenance: names of fields filled in by default rather than supplied
    defaulted: frozenset = field(default_factory=frozenset, compare=False)

    def __post_init__(self) -> None:
        set_ = object.__setattr__
        for name in (
            "principal", "annual_rate_percent", "down_payment", "annual_property_tax",
            "annual_insurance", "monthly_hoa", "pmi_annual_rate_percent",
        ):
            set_(self, name, as_decimal(getattr(self, name), name))
        set_(self, "term_years", as_term_years(self.term_years))
        if self.property_value is None:
            with overflow_guard("property_value"):
                set_(self, "property_value", self.principal + self.down_payment)
        else:
            set_(self, "property_value", as_decimal(self.property_value, "property_value"))
        set_(self, "defaulted", frozenset(self.defaulted))
        self._validate()

    def _validate(self) -> None:
        if self.principal <= ZERO:
            raise InvalidInputError(f"principal must be > 0, got {self.principal}")
        if self.property_value <= ZERO:
            raise InvalidInputError(f"property_value must be > 0, got {self.property_value}")
        if self.term_years < 1:
            raise InvalidInputError(f"term_years must be >= 1, got {self.term_years}")
        for name in (
            "annual_rate_percent", "down_payment", "annual_property_tax",
            "annual_insurance", "monthly_hoa", "pmi_annual_rate_percent",
        ):
            value = getattr(self, name)
            if value < ZERO:
                raise InvalidInputError(f"{name} must be >= 0, got {value}")

    # ── Derived, read-only ────────────────────────────────────────────────────

    @property
    def annual_rate(self) -> Decimal:
        """Annual rate as a decimal fraction (6.5% → 0.065)."""
        return self.annual_rate_percent / HUNDRED

    @property
    def number_of_payments(self) -> int:
        return self.term_years * MONTHS_PER_YEAR

    @property
    def loan_to_value_ratio(self) -> Decimal:
        # Multiply first so round figures (80 000 / 100 000) stay exact.
        return self.principal * HUNDRED / self.property_value

    @property
    def down_payment_percent(self) -> Decimal:
        return self.down_payment * HUNDRED / self.property_value

    @property
    def is_pmi_required(self) -> bool:
        return self.loan_to_value_ratio > PMI_LTV_THRESHOLD

    # ── Alternate constructors ────────────────────────────────────────────────

    @classmethod
    def for_purchase(
        cls,
        property_value: object,
        down_payment: object,
        annual_rate_percent: object,
        term_years: object,
        **escrow: Any,
    ) -> "LoanTerms":
        """Build terms from a purchase price; principal = price - down payment."""
        price = as_decimal(property_value, "property_value")
        down = as_decimal(down_payment, "down_payment")
        if down >= price:
            raise InvalidInputError(
                f"down_payment ({down}) must be less than property_value ({price})"
            )
        return cls(
            principal=price - down,
            annual_rate_percent=annual_rate_percent,  # type: ignore[arg-type]
            term_years=term_years,  # type: ignore[arg-type]
            property_value=price,
            down_payment=down,
            **escrow,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoanTerms":
        """Build terms from a JSON-shaped mapping (camelCase or snake_case keys).

        Unknown keys are ignored.  Raises InvalidInputError when a mandatory
        field is missing or any value is invalid.
        """
        values: dict[str, Any] = {}
        defaulted: set[str] = set()
        for name, keys in _FIELD_KEYS.items():
            for key in keys:
                if key in data and data[key] is not None:
                    values[name] = data[key]
                    break
            else:
                if name in _REQUIRED_FIELDS:
                    raise InvalidInputError(f"missing required field '{keys[0]}'")
                defaulted.add(name)
        return cls(defaulted=frozenset(defaulted), **values)


# field name → accepted mapping keys (camelCase first, as emitted on the wire)
_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "principal": ("principal", "loanAmount"),
    "annual_rate_percent": ("annualRatePercent", "annual_rate_percent"),
    "term_years": ("termYears", "term_years"),
    "property_value": ("propertyValue", "property_value"),
    "down_payment": ("downPayment", "down_payment"),
    "annual_property_tax": ("annualPropertyTax", "annual_property_tax"),
    "annual_insurance": ("annualInsurance", "annual_insurance"),
    "monthly_hoa": ("monthlyHOA", "monthly_hoa"),
    "pmi_annual_rate_percent": ("pmiAnnualRatePercent", "pmi_annual_rate_percent"),
}

_REQUIRED_FIELDS = frozenset({"principal", "annual_rate_percent", "term_years"})
