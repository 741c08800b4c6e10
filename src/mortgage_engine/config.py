"""Engine-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
"""
from __future__ import annotations

from decimal import Decimal

# ── Numeric convenience ───────────────────────────────────────────────────────

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

MONTHS_PER_YEAR: int = 12

# ── Escrow / PMI defaults ─────────────────────────────────────────────────────

PMI_LTV_THRESHOLD = Decimal("80")         # LTV strictly above this → PMI required
DEFAULT_PMI_RATE_PERCENT = Decimal("0.5")

# ── Affordability defaults ────────────────────────────────────────────────────

DEFAULT_MAX_PAYMENT_TO_INCOME_RATIO = Decimal("0.28")
DEFAULT_DOWN_PAYMENT_RATIO = Decimal("0.20")  # used to turn a max loan into a max price

# ── Term bounds ───────────────────────────────────────────────────────────────

DEFAULT_TERM_YEARS: int = 30
MAX_TERM_YEARS: int = 50  # CLI bound only; the engine accepts any term >= 1

# ── Environment ───────────────────────────────────────────────────────────────

RATES_FILE_ENVVAR = "MORTGAGE_ENGINE_RATES"
