"""
Amounts -- signed balances, Dr/Cr expansion and the balance tolerance.

Responsibility:
    The one place that decides how a debit/credit pair becomes a signed
    number and back.  Everything in the ledger uses the convention
    "debit positive": a signed balance >= 0 is a debit balance, < 0 is a
    credit balance.

Architecture position:
    Kernel > Domain -- pure functions, Decimal only.

Invariants enforced:
    - Two amounts agree when their absolute difference is below TOLERANCE
      (one cent).  Posting validation, trial-balance and statement checks all
      use within_tolerance().
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

ZERO = Decimal("0")
TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")


class Side(str, Enum):
    """Debit or credit side of a balance or line."""

    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class DrCr:
    """A net amount expanded into debit and credit columns (one is zero)."""

    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.debit - self.credit


def to_decimal(value) -> Decimal:
    """Coerce int/str/Decimal to Decimal.  Floats are rejected."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    if value is None:
        return ZERO
    return Decimal(str(value))


def signed(amount: Decimal, side: str) -> Decimal:
    """Signed value of a magnitude on a side: debit +, credit -."""
    amount = to_decimal(amount)
    return -amount if side == Side.CREDIT else amount


def expand(net: Decimal) -> DrCr:
    """Split a signed net into Dr/Cr columns: positive -> debit, negative -> credit."""
    if net >= ZERO:
        return DrCr(debit=net, credit=ZERO)
    return DrCr(debit=ZERO, credit=-net)


def side_of(balance: Decimal) -> Side:
    """Dr/Cr label of a signed running balance (zero is labelled debit)."""
    return Side.DEBIT if balance >= ZERO else Side.CREDIT


def within_tolerance(left: Decimal, right: Decimal = ZERO) -> bool:
    return abs(left - right) < TOLERANCE


def quantize(amount: Decimal) -> Decimal:
    """Round to cents for presentation."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
