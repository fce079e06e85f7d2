"""
pathfortune/amounts.py - Integer money math.

Amounts are micro-units (1 unit = 1_000_000). Everything here is integer
arithmetic; the only rounding rule anywhere in the ledger is floor division.
"""

# Micro-units per whole unit
MICRO = 1_000_000

# Largest value a SQLite INTEGER column holds
MAX_AMOUNT = 2**63 - 1


def require_uint(value, field: str = "amount") -> int:
    """Validate a caller-supplied unsigned integer and return it."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{field} must be non-negative, got {value}")
    if value > MAX_AMOUNT:
        raise OverflowError(f"{field} exceeds {MAX_AMOUNT}")
    return value


def checked_add(a: int, b: int) -> int:
    total = a + b
    if total > MAX_AMOUNT:
        raise OverflowError(f"{a} + {b} exceeds {MAX_AMOUNT}")
    return total


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ValueError(f"{a} - {b} would underflow")
    return a - b


def percent_of(amount: int, pct: int) -> int:
    """floor(amount * pct / 100)."""
    return amount * pct // 100


def format_units(micro: int) -> str:
    """Render micro-units as a decimal string, e.g. 2_500_000 -> '2.5'."""
    whole, frac = divmod(micro, MICRO)
    if frac == 0:
        return str(whole)
    return f"{whole}.{frac:06d}".rstrip("0")
