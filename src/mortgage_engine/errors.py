"""Exceptions raised by the calculation engine, and the guard that produces overflow errors."""
from __future__ import annotations

from contextlib import contextmanager
from decimal import Overflow
from typing import Iterator


class InvalidInputError(ValueError):
    """Raised when a calculation input is outside its valid domain.

    Covers non-positive principal or income, negative rates or escrow amounts,
    terms shorter than one year, and values that are not finite numbers.
    """


class NumericOverflowError(ArithmeticError):
    """Raised when an intermediate value stops being a finite number.

    Extreme rate/term combinations can push the compounding factor past what
    Decimal can represent; the calculation is abandoned rather than emitting
    a corrupted schedule.
    """


@contextmanager
def overflow_guard(what: str) -> Iterator[None]:
    """Re-raise decimal.Overflow from the block as NumericOverflowError."""
    try:
        yield
    except Overflow as exc:
        raise NumericOverflowError(f"{what} overflows the decimal range") from exc
