"""
lli_undef_fix/wide_int.py
═════════════════════════

Fixed-width two's-complement integers carrying a poison bit.

The interpreter hands the poison detectors values of an arbitrary but
fixed bit width.  Python's ``int`` already supplies unbounded precision, so
``WideInt`` is a thin value type on top of it that adds:

    • a bit width, set at construction and never changed;
    • the canonical *unsigned* bit pattern (``0 <= bits < 2**width``);
    • signed / unsigned views and comparisons, chosen per call;
    • bit-count helpers (leading zeros / ones, active bits, high / low
      slices);
    • wrapping arithmetic, used to compute the raw result of an
      instruction before its guarantees are checked;
    • the **taint bit** ``poisoned``.

Values are immutable.  Marking a value poisoned produces a copy through
:meth:`WideInt.or_poisoned`, which can only ever turn the bit on.

Binary operations require both operands to share one width; a mismatch is
a :class:`~lli_undef_fix.errors.ContractViolation`.
"""

from __future__ import annotations

import random as _random
from dataclasses import dataclass, replace
from typing import Optional, Union

from lli_undef_fix.errors import ContractViolation, require_same_width

IntLike = Union["WideInt", int]


def trunc_div(num: int, den: int) -> int:
    """Integer division rounding toward zero, as C does."""
    quotient = abs(num) // abs(den)
    return -quotient if (num < 0) != (den < 0) else quotient


@dataclass(frozen=True)
class WideInt:
    """An integer of ``width`` bits with an attached poison bit."""

    width: int
    bits: int = 0
    poisoned: bool = False

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ContractViolation(f"bit width must be positive, got {self.width}")
        # Normalise: store the unsigned pattern, negatives wrap
        object.__setattr__(self, "bits", self.bits & self.mask)

    # ─────────────────────────────────────────────────────────────
    # Constructors
    # ─────────────────────────────────────────────────────────────

    @classmethod
    def from_signed(cls, width: int, value: int, poisoned: bool = False) -> "WideInt":
        return cls(width, value, poisoned)

    @classmethod
    def zero(cls, width: int) -> "WideInt":
        return cls(width, 0)

    @classmethod
    def all_ones(cls, width: int) -> "WideInt":
        return cls(width, -1)

    @classmethod
    def signed_max(cls, width: int) -> "WideInt":
        return cls(width, (1 << (width - 1)) - 1)

    @classmethod
    def signed_min(cls, width: int) -> "WideInt":
        return cls(width, 1 << (width - 1))

    @classmethod
    def random(cls, width: int, rng: Optional[_random.Random] = None) -> "WideInt":
        """Uniformly random value of *width* bits (untainted)."""
        rng = rng or _random
        return cls(width, rng.getrandbits(width))

    # ─────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    @property
    def unsigned(self) -> int:
        return self.bits

    @property
    def signed(self) -> int:
        if self.bits >> (self.width - 1):
            return self.bits - (1 << self.width)
        return self.bits

    @property
    def is_negative(self) -> bool:
        return bool(self.bits >> (self.width - 1))

    @property
    def is_zero(self) -> bool:
        return self.bits == 0

    @property
    def is_all_ones(self) -> bool:
        return self.bits == self.mask

    # ─────────────────────────────────────────────────────────────
    # Comparisons
    # ─────────────────────────────────────────────────────────────

    def _operand(self, other: IntLike, signed: bool) -> int:
        if isinstance(other, WideInt):
            require_same_width(self, other)
            return other.signed if signed else other.unsigned
        return other

    def ult(self, other: IntLike) -> bool:
        return self.unsigned < self._operand(other, False)

    def ule(self, other: IntLike) -> bool:
        return self.unsigned <= self._operand(other, False)

    def ugt(self, other: IntLike) -> bool:
        return self.unsigned > self._operand(other, False)

    def uge(self, other: IntLike) -> bool:
        return self.unsigned >= self._operand(other, False)

    def slt(self, other: IntLike) -> bool:
        return self.signed < self._operand(other, True)

    def sle(self, other: IntLike) -> bool:
        return self.signed <= self._operand(other, True)

    def sgt(self, other: IntLike) -> bool:
        return self.signed > self._operand(other, True)

    def sge(self, other: IntLike) -> bool:
        return self.signed >= self._operand(other, True)

    # ─────────────────────────────────────────────────────────────
    # Bit counting
    # ─────────────────────────────────────────────────────────────

    def count_leading_zeros(self) -> int:
        return self.width - self.bits.bit_length()

    def count_leading_ones(self) -> int:
        return self.width - (~self.bits & self.mask).bit_length()

    def active_bits(self) -> int:
        """Number of significant bits, ``width - count_leading_zeros()``."""
        return self.bits.bit_length()

    def high_bits(self, count: int) -> int:
        """The top *count* bits of the pattern, as an unsigned int."""
        if not 0 <= count <= self.width:
            raise ContractViolation(f"cannot take {count} high bits of i{self.width}")
        return self.bits >> (self.width - count)

    def low_bits(self, count: int) -> int:
        """The bottom *count* bits of the pattern, as an unsigned int."""
        if not 0 <= count <= self.width:
            raise ContractViolation(f"cannot take {count} low bits of i{self.width}")
        return self.bits & ((1 << count) - 1)

    # ─────────────────────────────────────────────────────────────
    # Wrapping arithmetic (results are never tainted)
    # ─────────────────────────────────────────────────────────────

    def _new(self, bits: int) -> "WideInt":
        return WideInt(self.width, bits)

    def add(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        return self._new(self.bits + other.bits)

    def sub(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        return self._new(self.bits - other.bits)

    def mul(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        return self._new(self.bits * other.bits)

    def udiv(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        if other.is_zero:
            raise ContractViolation("division by zero")
        return self._new(self.bits // other.bits)

    def sdiv(self, other: "WideInt") -> "WideInt":
        """Signed division truncating toward zero; ``MIN / -1`` wraps to ``MIN``."""
        require_same_width(self, other)
        if other.is_zero:
            raise ContractViolation("division by zero")
        return self._new(trunc_div(self.signed, other.signed))

    def _shift_amount(self, amount: IntLike) -> int:
        if isinstance(amount, WideInt):
            require_same_width(self, amount)
            amount = amount.unsigned
        if not 0 <= amount < self.width:
            raise ContractViolation(f"shift amount {amount} out of range for i{self.width}")
        return amount

    def shl(self, amount: IntLike) -> "WideInt":
        return self._new(self.bits << self._shift_amount(amount))

    def lshr(self, amount: IntLike) -> "WideInt":
        return self._new(self.bits >> self._shift_amount(amount))

    def ashr(self, amount: IntLike) -> "WideInt":
        return self._new(self.signed >> self._shift_amount(amount))

    def and_(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        return self._new(self.bits & other.bits)

    def or_(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        return self._new(self.bits | other.bits)

    def xor(self, other: "WideInt") -> "WideInt":
        require_same_width(self, other)
        return self._new(self.bits ^ other.bits)

    # ─────────────────────────────────────────────────────────────
    # Taint
    # ─────────────────────────────────────────────────────────────

    def or_poisoned(self, flag: bool) -> "WideInt":
        """Copy of this value whose taint is ``self.poisoned or flag``."""
        if flag and not self.poisoned:
            return replace(self, poisoned=True)
        return self

    def __str__(self) -> str:
        text = f"i{self.width} {self.signed}"
        return f"{text} (poison)" if self.poisoned else text
