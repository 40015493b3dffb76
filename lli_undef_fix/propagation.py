"""
lli_undef_fix/propagation.py
════════════════════════════

How operand poison flows into a result.

The classical rule is simple: a result is poisoned if any operand is.
Two instructions can do better, and the policy store decides whether
they do:

``and`` / ``or`` (switch ``antidote_and_or``)
    An untainted annihilating operand (zero for ``and``, all-ones for
    ``or``) fixes the result whatever the other operand holds, so the
    other operand's poison cannot matter.  The cases are tried in order:

        1. both operands poisoned        → poisoned
        2. neither operand poisoned      → clean
        3. lhs poisoned, rhs clean and annihilating → clean
        4. rhs poisoned, lhs clean and annihilating → clean
        otherwise                        → classical

``select`` (switch ``antidote_select``)
    Only the arm that was chosen reaches the result; a poisoned
    condition always poisons.
"""

from __future__ import annotations

from typing import Callable

from lli_undef_fix.errors import ContractViolation, require_same_width
from lli_undef_fix.options import PolicyOptions, PolicySwitch
from lli_undef_fix.wide_int import WideInt


def classical_taint(*operands: WideInt) -> bool:
    """Logical OR of the operands' poison bits."""
    return any(op.poisoned for op in operands)


def _short_circuit(lhs: WideInt, rhs: WideInt,
                   annihilates: Callable[[WideInt], bool]) -> bool:
    if lhs.poisoned and rhs.poisoned:
        return True
    if not lhs.poisoned and not rhs.poisoned:
        return False
    if lhs.poisoned and annihilates(rhs):
        return False
    if rhs.poisoned and annihilates(lhs):
        return False
    return classical_taint(lhs, rhs)


def and_taint(lhs: WideInt, rhs: WideInt, options: PolicyOptions) -> bool:
    require_same_width(lhs, rhs)
    if not options[PolicySwitch.ANTIDOTE_AND_OR]:
        return classical_taint(lhs, rhs)
    return _short_circuit(lhs, rhs, lambda v: v.is_zero)


def or_taint(lhs: WideInt, rhs: WideInt, options: PolicyOptions) -> bool:
    require_same_width(lhs, rhs)
    if not options[PolicySwitch.ANTIDOTE_AND_OR]:
        return classical_taint(lhs, rhs)
    return _short_circuit(lhs, rhs, lambda v: v.is_all_ones)


def select_taint(cond: WideInt, true_value: WideInt, false_value: WideInt,
                 options: PolicyOptions) -> bool:
    """Poison of ``select cond, true_value, false_value``."""
    if cond.width != 1:
        raise ContractViolation(f"select condition must be i1, got i{cond.width}")
    require_same_width(true_value, false_value)
    if not options[PolicySwitch.ANTIDOTE_SELECT]:
        return classical_taint(cond, true_value, false_value)
    chosen = true_value if not cond.is_zero else false_value
    return cond.poisoned or chosen.poisoned
