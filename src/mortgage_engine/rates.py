"""Rate catalog: current market rates per loan product.

The catalog is data only.  It is supplied from outside (a JSON document in
the shape below) and the engine performs no freshness checks on it.

    {
      "timestamp": "2026-10-01T00:00:00",
      "rate30YearFixed": 6.5,  "rate15YearFixed": 5.75,
      "rate5YearARM": 6.1,     "rate7YearARM": 6.2,    "rate10YearARM": 6.35,
      "rateFHA30Year": 6.2,    "rateVA30Year": 6.0,    "rateJumbo30Year": 6.8,
      "averagePoints30Year": 0.7,
      "trend": "stable"
    }

All rates are annual percentages (6.5 means 6.5%).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping, Union

from .errors import InvalidInputError
from .terms import as_decimal

LoanProduct = Literal[
    "30yr_fixed", "15yr_fixed", "5_1_arm", "7_1_arm", "10_1_arm",
    "fha_30yr", "va_30yr", "jumbo_30yr",
]
RateTrend = Literal["rising", "falling", "stable"]

# product → (wire key, display label, default term in years)
_PRODUCTS: dict[str, tuple[str, str, int]] = {
    "30yr_fixed": ("rate30YearFixed", "30-Year Fixed", 30),
    "15yr_fixed": ("rate15YearFixed", "15-Year Fixed", 15),
    "5_1_arm": ("rate5YearARM", "5/1 ARM", 30),
    "7_1_arm": ("rate7YearARM", "7/1 ARM", 30),
    "10_1_arm": ("rate10YearARM", "10/1 ARM", 30),
    "fha_30yr": ("rateFHA30Year", "FHA 30-Year", 30),
    "va_30yr": ("rateVA30Year", "VA 30-Year", 30),
    "jumbo_30yr": ("rateJumbo30Year", "Jumbo 30-Year", 30),
}

_TREND_DESCRIPTIONS: dict[str, str] = {
    "rising": "Rates are rising",
    "falling": "Rates are falling",
    "stable": "Rates are stable",
}

LOAN_PRODUCTS: tuple[str, ...] = tuple(_PRODUCTS)
RATE_TRENDS = frozenset(_TREND_DESCRIPTIONS)


class RateCatalogError(Exception):
    """Raised when a rate catalog document cannot be read or parsed."""


def _check_product(product: str) -> str:
    if product not in _PRODUCTS:
        raise InvalidInputError(
            f"Unknown loan product '{product}'. "
            f"Supported products: {', '.join(LOAN_PRODUCTS)}"
        )
    return product


def product_label(product: str) -> str:
    return _PRODUCTS[_check_product(product)][1]


def product_term_years(product: str) -> int:
    """Default term for *product* (15 for the 15-year fixed, 30 otherwise)."""
    return _PRODUCTS[_check_product(product)][2]


@dataclass(frozen=True)
class RateCatalog:
    timestamp: datetime
    rates: Mapping[str, Decimal]     # product → annual rate percent
    average_points_30yr: Decimal
    trend: RateTrend

    def __post_init__(self) -> None:
        # Read-only copy; DEFAULT_CATALOG is shared by every caller.
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))

    @property
    def trend_description(self) -> str:
        return _TREND_DESCRIPTIONS[self.trend]

    def rate_for(self, product: str) -> Decimal:
        """Annual rate percent for *product*."""
        return self.rates[_check_product(product)]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RateCatalog":
        """Parse the JSON shape documented at module level.

        Raises RateCatalogError on missing keys or malformed values.
        """
        try:
            timestamp = datetime.fromisoformat(str(data["timestamp"]))
            rates = {
                product: as_decimal(data[key], key)
                for product, (key, _label, _term) in _PRODUCTS.items()
            }
            points = as_decimal(data.get("averagePoints30Year", 0), "averagePoints30Year")
            trend = str(data["trend"]).lower()
        except KeyError as exc:
            raise RateCatalogError(f"Rate catalog is missing field {exc}") from exc
        except ValueError as exc:
            raise RateCatalogError(f"Rate catalog has an invalid value: {exc}") from exc

        if trend not in RATE_TRENDS:
            raise RateCatalogError(
                f"Unknown rate trend '{trend}'. Expected one of: {', '.join(sorted(RATE_TRENDS))}"
            )
        negative = [product for product, rate in rates.items() if rate < 0]
        if negative:
            raise RateCatalogError(f"Negative rate for: {', '.join(negative)}")

        return cls(
            timestamp=timestamp,
            rates=rates,
            average_points_30yr=points,
            trend=trend,  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"timestamp": self.timestamp.isoformat()}
        for product, (key, _label, _term) in _PRODUCTS.items():
            data[key] = float(self.rates[product])
        data["averagePoints30Year"] = float(self.average_points_30yr)
        data["trend"] = self.trend
        return data


def load_rate_catalog(path: Union[str, Path]) -> RateCatalog:
    """Read a rate catalog from a JSON file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise RateCatalogError(f"Cannot read rate catalog '{path}': {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RateCatalogError(f"Rate catalog '{path}' is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise RateCatalogError(f"Rate catalog '{path}' must contain a JSON object")
    return RateCatalog.from_dict(data)


# Static fallback used when no catalog is supplied.  Illustrative figures only.
DEFAULT_CATALOG = RateCatalog(
    timestamp=datetime(2026, 10, 1),
    rates={
        "30yr_fixed": Decimal("6.50"),
        "15yr_fixed": Decimal("5.75"),
        "5_1_arm": Decimal("6.10"),
        "7_1_arm": Decimal("6.20"),
        "10_1_arm": Decimal("6.35"),
        "fha_30yr": Decimal("6.20"),
        "va_30yr": Decimal("6.00"),
        "jumbo_30yr": Decimal("6.80"),
    },
    average_points_30yr=Decimal("0.7"),
    trend="stable",
)
