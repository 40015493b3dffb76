# tests/test_detectors.py
"""
Tests for the per-instruction poison detectors.

Besides hand-picked cases, each detector is checked against the plain
mathematical definition of its guarantee over every pair of 4-bit
operands, and over seeded random operands of wider, odd widths.
"""

import random

import pytest

from lli_undef_fix.detectors import (
    BoundsModel,
    poison_add,
    poison_div,
    poison_gep,
    poison_mul,
    poison_sadd,
    poison_shl,
    poison_shr,
    poison_smul,
    poison_ssub,
    poison_sub,
    poison_uadd,
    poison_umul,
    poison_usub,
)
from lli_undef_fix.errors import ContractViolation
from lli_undef_fix.wide_int import WideInt


def _fits_signed(value, width):
    return -(1 << (width - 1)) <= value < (1 << (width - 1))


def _fits_unsigned(value, width):
    return 0 <= value < (1 << width)


def _trunc_rem(a, b):
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return a - b * q


# ═══════════════════════════════════════════════════════════════════
#  Hand-picked cases
# ═══════════════════════════════════════════════════════════════════

class TestAdd:

    def test_unsigned_wrap_poisons(self):
        lhs, rhs = WideInt(32, 0xFFFFFFFF), WideInt(32, 1)
        assert poison_uadd(WideInt(32, 0), lhs, rhs, True)

    def test_unsigned_no_wrap(self):
        one = WideInt(32, 1)
        assert not poison_uadd(WideInt(32, 2), one, one, True)

    def test_signed_overflow_poisons(self):
        lhs = rhs = WideInt(8, 100)
        assert poison_sadd(WideInt(8, -56), lhs, rhs, True)

    def test_signed_no_overflow(self):
        one = WideInt(8, 1)
        assert not poison_sadd(WideInt(8, 2), one, one, True)

    def test_signed_underflow_poisons(self):
        lhs = rhs = WideInt(8, -100)
        assert poison_sadd(lhs.add(rhs), lhs, rhs, True)

    def test_flag_off_never_checks(self):
        lhs, rhs = WideInt(32, 0xFFFFFFFF), WideInt(32, 1)
        assert not poison_uadd(WideInt(32, 0), lhs, rhs, False)
        assert not poison_sadd(WideInt(8, -56), WideInt(8, 100), WideInt(8, 100), False)

    def test_combined_checks_each_kind(self):
        lhs = rhs = WideInt(8, 100)
        dest = lhs.add(rhs)
        assert poison_add(dest, lhs, rhs, nsw=True)
        # 200 fits in 8 unsigned bits
        assert not poison_add(dest, lhs, rhs, nuw=True)


class TestSub:

    def test_unsigned_borrow(self):
        lhs, rhs = WideInt(8, 1), WideInt(8, 2)
        assert poison_usub(lhs.sub(rhs), lhs, rhs, True)

    def test_unsigned_no_borrow(self):
        lhs, rhs = WideInt(8, 2), WideInt(8, 2)
        assert not poison_usub(lhs.sub(rhs), lhs, rhs, True)

    def test_signed_overflow(self):
        lhs, rhs = WideInt(8, -128), WideInt(8, 1)
        assert poison_ssub(lhs.sub(rhs), lhs, rhs, True)

    def test_signed_overflow_negative_rhs(self):
        lhs, rhs = WideInt(8, 127), WideInt(8, -1)
        assert poison_ssub(lhs.sub(rhs), lhs, rhs, True)

    def test_combined(self):
        lhs, rhs = WideInt(8, 1), WideInt(8, 2)
        dest = lhs.sub(rhs)
        assert poison_sub(dest, lhs, rhs, nuw=True)
        assert not poison_sub(dest, lhs, rhs, nsw=True)


class TestMul:

    def test_unsigned_overflow(self):
        lhs = rhs = WideInt(8, 16)
        assert poison_umul(lhs.mul(rhs), lhs, rhs, True)

    def test_unsigned_boundary_fits(self):
        # 3 + 3 active bits = width + 1, but 5 * 5 = 25 still fits in 5 bits
        lhs = rhs = WideInt(5, 5)
        assert not poison_umul(lhs.mul(rhs), lhs, rhs, True)

    def test_unsigned_boundary_overflows(self):
        lhs = rhs = WideInt(5, 7)
        assert poison_umul(lhs.mul(rhs), lhs, rhs, True)

    def test_signed_min_times_minus_one(self):
        lhs, rhs = WideInt.signed_min(8), WideInt(8, -1)
        assert poison_smul(lhs.mul(rhs), lhs, rhs, True)

    @pytest.mark.parametrize("a,b,overflow", [
        (16, 8, True),      # both positive
        (-16, -8, True),    # both negative
        (16, -8, False),    # -128 fits
        (-8, 17, True),     # mixed
        (0, -128, False),   # zero operand
        (-1, -127, False),
    ])
    def test_signed_sign_cases(self, a, b, overflow):
        lhs, rhs = WideInt(8, a), WideInt(8, b)
        assert poison_smul(lhs.mul(rhs), lhs, rhs, True) is overflow

    def test_combined(self):
        lhs = rhs = WideInt(8, 12)
        dest = lhs.mul(rhs)
        assert poison_mul(dest, lhs, rhs, nsw=True)
        assert not poison_mul(dest, lhs, rhs, nuw=True)


class TestDiv:

    def test_remainder_poisons(self):
        lhs, rhs = WideInt(32, 7), WideInt(32, 2)
        assert poison_div(WideInt(32, 3), lhs, rhs, True)

    def test_exact_division(self):
        lhs, rhs = WideInt(32, 6), WideInt(32, 2)
        assert not poison_div(WideInt(32, 3), lhs, rhs, True)

    def test_signed_exact_division(self):
        lhs, rhs = WideInt(8, -6), WideInt(8, 3)
        assert not poison_div(lhs.sdiv(rhs), lhs, rhs, True)

    def test_signed_remainder(self):
        lhs, rhs = WideInt(8, -7), WideInt(8, 3)
        assert poison_div(lhs.sdiv(rhs), lhs, rhs, True)

    def test_flag_off(self):
        assert not poison_div(WideInt(32, 3), WideInt(32, 7), WideInt(32, 2), False)


class TestShifts:

    def test_shl_nuw_bit_lost(self):
        lhs = WideInt(8, 0b11000000)
        assert poison_shl(WideInt(8, 0), lhs, 2, False, True)

    def test_shl_nuw_nothing_lost(self):
        lhs = WideInt(8, 0b00000001)
        assert not poison_shl(WideInt(8, 0b100), lhs, 2, False, True)

    def test_shl_zero_amount_never_poisons(self):
        lhs = WideInt(8, 0xFF)
        assert not poison_shl(lhs, lhs, 0, True, True)

    def test_shl_nsw_sign_copies_shifted_out(self):
        lhs = WideInt(8, -2)              # 0b11111110
        dest = lhs.shl(3)                 # -16, top three bits were ones
        assert not poison_shl(dest, lhs, 3, True, False)

    def test_shl_nsw_sign_changed(self):
        lhs = WideInt(8, 0b01000000)
        dest = lhs.shl(1)                 # becomes negative
        assert poison_shl(dest, lhs, 1, True, False)

    def test_shl_nsw_allows_what_nuw_forbids(self):
        lhs = WideInt(8, -1)
        dest = lhs.shl(1)
        assert not poison_shl(dest, lhs, 1, True, False)
        assert poison_shl(dest, lhs, 1, False, True)

    def test_shl_amount_as_wide_int(self):
        lhs = WideInt(8, 0b11000000)
        assert poison_shl(WideInt(8, 0), lhs, WideInt(8, 2), False, True)

    def test_shr_exact_bits_lost(self):
        lhs = WideInt(8, 0b00000101)
        assert poison_shr(lhs.lshr(1), lhs, 1, True)

    def test_shr_exact_nothing_lost(self):
        lhs = WideInt(8, 0b00000100)
        assert not poison_shr(lhs.lshr(2), lhs, 2, True)
        assert not poison_shr(lhs.ashr(2), lhs, 2, True)

    def test_shr_zero_amount(self):
        lhs = WideInt(8, 0b101)
        assert not poison_shr(lhs, lhs, 0, True)

    @pytest.mark.parametrize("amount", [8, 9, 200, WideInt(8, 8), WideInt(8, 200)])
    def test_oversized_amount_without_flags(self, amount):
        dest, lhs = WideInt(8, 0), WideInt(8, 1)
        assert not poison_shl(dest, lhs, amount, False, False)
        assert not poison_shr(dest, lhs, amount, False)

    @pytest.mark.parametrize("amount", [8, 200, WideInt(8, 8), WideInt(8, 255)])
    def test_oversized_amount_with_flags(self, amount):
        dest, lhs = WideInt(8, 0), WideInt(8, 0)
        assert poison_shl(dest, lhs, amount, True, False)
        assert poison_shl(dest, lhs, amount, False, True)
        assert poison_shr(dest, lhs, amount, True)

    def test_negative_amount(self):
        lhs = WideInt(8, 1)
        with pytest.raises(ContractViolation):
            poison_shl(lhs, lhs, -1, False, False)
        with pytest.raises(ContractViolation):
            poison_shr(lhs, lhs, -1, True)

    def test_amount_width_mismatch(self):
        lhs = WideInt(8, 1)
        with pytest.raises(ContractViolation):
            poison_shl(lhs, lhs, WideInt(16, 1), False, False)
        with pytest.raises(ContractViolation):
            poison_shr(lhs, lhs, WideInt(16, 1), False)


class _Allocation:
    """Bounds model of a single allocation [start, end)."""

    def __init__(self, start, end):
        self.start, self.end = start, end

    def contains(self, address):
        return self.start <= address.unsigned < self.end


class TestGep:

    def test_bounds_model_protocol(self):
        assert isinstance(_Allocation(0, 1), BoundsModel)

    def test_unchecked_without_bounds_model(self):
        base, off = WideInt(64, 0x1000), WideInt(64, 1 << 40)
        assert not poison_gep(base.add(off), base, off, True)

    def test_out_of_bounds_with_model(self):
        base, off = WideInt(64, 0x1000), WideInt(64, 0x100)
        alloc = _Allocation(0x1000, 0x1010)
        assert poison_gep(base.add(off), base, off, True, alloc)

    def test_in_bounds_with_model(self):
        base, off = WideInt(64, 0x1000), WideInt(64, 0x8)
        alloc = _Allocation(0x1000, 0x1010)
        assert not poison_gep(base.add(off), base, off, True, alloc)

    def test_flag_off(self):
        base, off = WideInt(64, 0x1000), WideInt(64, 0x100)
        alloc = _Allocation(0x1000, 0x1010)
        assert not poison_gep(base.add(off), base, off, False, alloc)


class TestContract:

    @pytest.mark.parametrize("detector", [
        poison_uadd, poison_sadd, poison_usub, poison_ssub,
        poison_umul, poison_smul, poison_div,
    ])
    def test_width_mismatch(self, detector):
        with pytest.raises(ContractViolation):
            detector(WideInt(8, 0), WideInt(8, 0), WideInt(16, 0), True)

    def test_width_mismatch_checked_even_when_flag_off(self):
        with pytest.raises(ContractViolation):
            poison_uadd(WideInt(16, 0), WideInt(8, 0), WideInt(8, 0), False)


# ═══════════════════════════════════════════════════════════════════
#  Agreement with the mathematical definition
# ═══════════════════════════════════════════════════════════════════

class TestExhaustiveNibbles:
    """All 256 pairs of 4-bit operands, every detector, flag on and off."""

    def test_uadd(self, nibble_pairs):
        for a, b in nibble_pairs:
            dest = a.add(b)
            assert poison_uadd(dest, a, b, True) is not _fits_unsigned(a.unsigned + b.unsigned, 4)
            assert not poison_uadd(dest, a, b, False)

    def test_sadd(self, nibble_pairs):
        for a, b in nibble_pairs:
            dest = a.add(b)
            assert poison_sadd(dest, a, b, True) is not _fits_signed(a.signed + b.signed, 4)
            assert not poison_sadd(dest, a, b, False)

    def test_usub(self, nibble_pairs):
        for a, b in nibble_pairs:
            dest = a.sub(b)
            assert poison_usub(dest, a, b, True) is not _fits_unsigned(a.unsigned - b.unsigned, 4)
            assert not poison_usub(dest, a, b, False)

    def test_ssub(self, nibble_pairs):
        for a, b in nibble_pairs:
            dest = a.sub(b)
            assert poison_ssub(dest, a, b, True) is not _fits_signed(a.signed - b.signed, 4)
            assert not poison_ssub(dest, a, b, False)

    def test_umul(self, nibble_pairs):
        for a, b in nibble_pairs:
            dest = a.mul(b)
            assert poison_umul(dest, a, b, True) is not _fits_unsigned(a.unsigned * b.unsigned, 4)
            assert not poison_umul(dest, a, b, False)

    def test_smul(self, nibble_pairs):
        for a, b in nibble_pairs:
            dest = a.mul(b)
            assert poison_smul(dest, a, b, True) is not _fits_signed(a.signed * b.signed, 4)
            assert not poison_smul(dest, a, b, False)

    def test_udiv_exact(self, nibble_pairs):
        for a, b in nibble_pairs:
            if b.is_zero:
                continue
            dest = a.udiv(b)
            assert poison_div(dest, a, b, True) is (a.unsigned % b.unsigned != 0)
            assert not poison_div(dest, a, b, False)

    def test_sdiv_exact(self, nibble_pairs):
        for a, b in nibble_pairs:
            if b.is_zero:
                continue
            dest = a.sdiv(b)
            assert poison_div(dest, a, b, True) is (_trunc_rem(a.signed, b.signed) != 0)

    def test_shl(self):
        for bits in range(16):
            a = WideInt(4, bits)
            for amount in range(4):
                dest = a.shl(amount)
                nuw = not _fits_unsigned(a.unsigned << amount, 4)
                nsw = not _fits_signed(a.signed * (1 << amount), 4)
                assert poison_shl(dest, a, amount, False, True) is nuw
                assert poison_shl(dest, a, amount, True, False) is nsw
                assert poison_shl(dest, a, amount, True, True) is (nuw or nsw)
                assert not poison_shl(dest, a, amount, False, False)

    def test_shr(self):
        for bits in range(16):
            a = WideInt(4, bits)
            for amount in range(4):
                lost = a.unsigned % (1 << amount) != 0
                assert poison_shr(a.lshr(amount), a, amount, True) is lost
                assert poison_shr(a.ashr(amount), a, amount, True) is lost
                assert not poison_shr(a.lshr(amount), a, amount, False)


@pytest.mark.parametrize("width", [16, 32, 48, 64, 72])
class TestRandomWide:
    """Seeded random operands at the widths the interpreter meets."""

    def _pairs(self, width, count=200):
        rng = random.Random(45 + width)
        for _ in range(count):
            # bias toward small magnitudes so both outcomes occur
            a = WideInt.random(width, rng)
            b = WideInt(width, rng.getrandbits(rng.randint(1, width)))
            yield a, b

    def test_add_and_sub(self, width):
        for a, b in self._pairs(width):
            assert poison_uadd(a.add(b), a, b, True) is not _fits_unsigned(a.unsigned + b.unsigned, width)
            assert poison_sadd(a.add(b), a, b, True) is not _fits_signed(a.signed + b.signed, width)
            assert poison_usub(a.sub(b), a, b, True) is not _fits_unsigned(a.unsigned - b.unsigned, width)
            assert poison_ssub(a.sub(b), a, b, True) is not _fits_signed(a.signed - b.signed, width)

    def test_mul(self, width):
        for a, b in self._pairs(width):
            dest = a.mul(b)
            assert poison_umul(dest, a, b, True) is not _fits_unsigned(a.unsigned * b.unsigned, width)
            assert poison_smul(dest, a, b, True) is not _fits_signed(a.signed * b.signed, width)

    def test_div(self, width):
        for a, b in self._pairs(width):
            if b.is_zero:
                continue
            assert poison_div(a.udiv(b), a, b, True) is (a.unsigned % b.unsigned != 0)
