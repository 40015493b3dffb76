"""
lli_undef_fix/detectors.py
══════════════════════════

Poison detectors for integer instructions.

Each detector receives the raw result of an instruction (already wrapped
or truncated to the operand width), the operands, and the guarantee flags
the instruction was declared with.  It answers one question: *was a
declared guarantee violated?*  The caller merges the answer into the
result with :meth:`WideInt.or_poisoned`; detectors never build or modify
values themselves.

A guarantee that was not declared is not checked.  ``poison_uadd(...,
no_wrap=False)`` is ``False`` even when the addition wrapped, because
wrapping is then well defined.

  Detector        Guarantee   Poisoned when
  ──────────────  ──────────  ───────────────────────────────────────────
  poison_uadd     nuw         dest <u lhs  or  dest <u rhs
  poison_sadd     nsw         rhs <s 0 ? dest >s lhs : dest <s lhs
  poison_usub     nuw         lhs <u rhs
  poison_ssub     nsw         rhs >s 0 ? dest >s lhs : dest <s lhs
  poison_umul     nuw         product needs more than ``width`` bits
  poison_smul     nsw         product outside [INT_MIN, INT_MAX]
  poison_div      exact       rhs * dest != lhs
  poison_shl      nuw / nsw   shifted-out bits nonzero / not sign copies
  poison_shr      exact       shifted-out low bits nonzero
  poison_gep      inbounds    delegated to a caller-supplied BoundsModel

All values passed to one detector must share a bit width; anything else
raises :class:`~lli_undef_fix.errors.ContractViolation`.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Union, runtime_checkable

from lli_undef_fix.errors import ContractViolation, require_same_width
from lli_undef_fix.wide_int import WideInt, trunc_div

_log = logging.getLogger(__name__)

ShiftAmount = Union[WideInt, int]


def _violated(kind: str, dest: WideInt, *operands: object) -> bool:
    _log.debug("%s guarantee violated: operands=%s result=%s",
               kind, ", ".join(str(o) for o in operands), dest)
    return True


# ═══════════════════════════════════════════════════════════════════
#  ADD / SUB
# ═══════════════════════════════════════════════════════════════════

def poison_uadd(dest: WideInt, lhs: WideInt, rhs: WideInt, no_wrap: bool) -> bool:
    """Unsigned wrap of ``lhs + rhs``, checked only under ``nuw``."""
    require_same_width(dest, lhs, rhs)
    if not no_wrap:
        return False
    if dest.ult(lhs) or dest.ult(rhs):
        return _violated("add nuw", dest, lhs, rhs)
    return False


def poison_sadd(dest: WideInt, lhs: WideInt, rhs: WideInt, no_wrap: bool) -> bool:
    """Signed wrap of ``lhs + rhs``, checked only under ``nsw``."""
    require_same_width(dest, lhs, rhs)
    if not no_wrap:
        return False
    if dest.sgt(lhs) if rhs.slt(0) else dest.slt(lhs):
        return _violated("add nsw", dest, lhs, rhs)
    return False


def poison_usub(dest: WideInt, lhs: WideInt, rhs: WideInt, no_wrap: bool) -> bool:
    """Unsigned borrow of ``lhs - rhs``, checked only under ``nuw``."""
    require_same_width(dest, lhs, rhs)
    if not no_wrap:
        return False
    if lhs.ult(rhs):
        return _violated("sub nuw", dest, lhs, rhs)
    return False


def poison_ssub(dest: WideInt, lhs: WideInt, rhs: WideInt, no_wrap: bool) -> bool:
    """Signed wrap of ``lhs - rhs``, checked only under ``nsw``."""
    require_same_width(dest, lhs, rhs)
    if not no_wrap:
        return False
    if dest.sgt(lhs) if rhs.sgt(0) else dest.slt(lhs):
        return _violated("sub nsw", dest, lhs, rhs)
    return False


# ═══════════════════════════════════════════════════════════════════
#  MUL
# ═══════════════════════════════════════════════════════════════════

def poison_umul(dest: WideInt, lhs: WideInt, rhs: WideInt, no_wrap: bool) -> bool:
    """
    Unsigned overflow of ``lhs * rhs``, checked only under ``nuw``.

    A product of an *a*-bit and a *b*-bit number needs either ``a + b`` or
    ``a + b - 1`` bits.  So the significant-bit counts settle every case
    except ``a + b == width + 1``, where the product itself decides.
    """
    width = require_same_width(dest, lhs, rhs)
    if not no_wrap:
        return False
    needed = lhs.active_bits() + rhs.active_bits()
    if needed <= width:
        return False
    if needed > width + 1 or lhs.unsigned * rhs.unsigned > dest.mask:
        return _violated("mul nuw", dest, lhs, rhs)
    return False


def poison_smul(dest: WideInt, lhs: WideInt, rhs: WideInt, no_wrap: bool) -> bool:
    """
    Signed overflow of ``lhs * rhs``, checked only under ``nsw``.

    The product is never formed; each sign combination is compared against
    ``INT_MAX`` or ``INT_MIN`` divided by the nonzero operand.
    """
    width = require_same_width(dest, lhs, rhs)
    if not no_wrap:
        return False
    int_max = WideInt.signed_max(width).signed
    int_min = WideInt.signed_min(width).signed
    a, b = lhs.signed, rhs.signed

    if a > 0:
        if b > 0:
            overflow = a > trunc_div(int_max, b)
        else:
            overflow = b < trunc_div(int_min, a)
    else:
        if b > 0:
            overflow = a < trunc_div(int_min, b)
        else:
            overflow = a != 0 and b < trunc_div(int_max, a)

    if overflow:
        return _violated("mul nsw", dest, lhs, rhs)
    return False


# ═══════════════════════════════════════════════════════════════════
#  DIV
# ═══════════════════════════════════════════════════════════════════

def poison_div(dest: WideInt, lhs: WideInt, rhs: WideInt, exact: bool) -> bool:
    """
    Nonzero remainder of ``lhs / rhs``, checked only under ``exact``.

    Works for ``udiv`` and ``sdiv`` alike: the quotient multiplied back by
    the divisor (wrapping) reproduces the dividend exactly when nothing
    was discarded.
    """
    require_same_width(dest, lhs, rhs)
    if not exact:
        return False
    if rhs.mul(dest).bits != lhs.bits:
        return _violated("div exact", dest, lhs, rhs)
    return False


# ═══════════════════════════════════════════════════════════════════
#  SHIFTS
# ═══════════════════════════════════════════════════════════════════

def _shift_count(dest: WideInt, lhs: WideInt, shift: ShiftAmount) -> int:
    if isinstance(shift, WideInt):
        require_same_width(dest, lhs, shift)
        return shift.unsigned
    require_same_width(dest, lhs)
    if shift < 0:
        raise ContractViolation(f"negative shift amount {shift}")
    return shift


def poison_shl(dest: WideInt, lhs: WideInt, shift: ShiftAmount,
               no_signed_wrap: bool, no_unsigned_wrap: bool) -> bool:
    """
    Bits lost by ``lhs << shift``.

    nuw: any of the top ``shift`` bits of *lhs* is set.
    nsw: the top ``shift`` bits of *lhs* are not all copies of the
    result's sign bit.

    An amount of at least the bit width violates either flag.
    """
    count = _shift_count(dest, lhs, shift)
    if count == 0 or not (no_signed_wrap or no_unsigned_wrap):
        return False
    if count >= lhs.width:
        return _violated("shl by width", dest, lhs, count)
    shifted_out = lhs.high_bits(count)
    if no_unsigned_wrap and shifted_out != 0:
        return _violated("shl nuw", dest, lhs, count)
    if no_signed_wrap:
        expected = (1 << count) - 1 if dest.is_negative else 0
        if shifted_out != expected:
            return _violated("shl nsw", dest, lhs, count)
    return False


def poison_shr(dest: WideInt, lhs: WideInt, shift: ShiftAmount, exact: bool) -> bool:
    """
    Nonzero bits dropped by ``lshr`` / ``ashr``, checked only under ``exact``.

    An amount of at least the bit width violates ``exact``.
    """
    count = _shift_count(dest, lhs, shift)
    if count == 0 or not exact:
        return False
    if count >= lhs.width:
        return _violated("shr by width", dest, lhs, count)
    if lhs.low_bits(count) != 0:
        return _violated("shr exact", dest, lhs, count)
    return False


# ═══════════════════════════════════════════════════════════════════
#  GETELEMENTPTR
# ═══════════════════════════════════════════════════════════════════

@runtime_checkable
class BoundsModel(Protocol):
    """
    Knowledge of the allocation a pointer computation is based on.

    The core has no memory model; an interpreter that tracks allocations
    supplies one of these to give ``inbounds`` a meaning.
    """

    def contains(self, address: WideInt) -> bool:
        ...


def poison_gep(dest: WideInt, base: WideInt, offset: WideInt, inbounds: bool,
               bounds: Optional[BoundsModel] = None) -> bool:
    """
    ``getelementptr inbounds`` left the base allocation.

    Without a *bounds* model nothing is checked and the answer is
    ``False``.
    """
    require_same_width(dest, base, offset)
    if not inbounds:
        return False
    if bounds is None:
        _log.debug("gep inbounds not checked: no bounds model for base %s", base)
        return False
    if not bounds.contains(dest):
        return _violated("gep inbounds", dest, base, offset)
    return False


# ═══════════════════════════════════════════════════════════════════
#  Per-opcode combinations
# ═══════════════════════════════════════════════════════════════════

def poison_add(dest: WideInt, lhs: WideInt, rhs: WideInt,
               nsw: bool = False, nuw: bool = False) -> bool:
    # Both checks always run so each violation gets logged
    signed = poison_sadd(dest, lhs, rhs, nsw)
    unsigned = poison_uadd(dest, lhs, rhs, nuw)
    return signed or unsigned


def poison_sub(dest: WideInt, lhs: WideInt, rhs: WideInt,
               nsw: bool = False, nuw: bool = False) -> bool:
    signed = poison_ssub(dest, lhs, rhs, nsw)
    unsigned = poison_usub(dest, lhs, rhs, nuw)
    return signed or unsigned


def poison_mul(dest: WideInt, lhs: WideInt, rhs: WideInt,
               nsw: bool = False, nuw: bool = False) -> bool:
    signed = poison_smul(dest, lhs, rhs, nsw)
    unsigned = poison_umul(dest, lhs, rhs, nuw)
    return signed or unsigned
