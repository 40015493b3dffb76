"""
lli_undef_fix/evaluator.py
══════════════════════════

Glue between an interpreter's evaluation loop and the poison core.

For one binary integer instruction :meth:`PoisonEvaluator.evaluate`

    1. computes the raw (wrapping) result with ``WideInt`` arithmetic;
    2. works out the taint inherited from the operands, classical or
       per the ``and`` / ``or`` policy;
    3. runs the opcode's detector against the instruction's guarantees;
    4. merges both into the result's poison bit;
    5. hands the result to the reporter if it is poisoned while no
       operand was.

Shift amounts of at least the bit width produce poison regardless of
flags, as the IR defines them to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, unique
from typing import Callable, Dict, Optional

from lli_undef_fix import detectors
from lli_undef_fix.errors import require_same_width
from lli_undef_fix.options import PolicyOptions
from lli_undef_fix.propagation import and_taint, classical_taint, or_taint, select_taint
from lli_undef_fix.reporter import DiagnosticReporter, Instruction
from lli_undef_fix.wide_int import WideInt

_log = logging.getLogger(__name__)


@unique
class Opcode(Enum):
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    UDIV = "udiv"
    SDIV = "sdiv"
    SHL = "shl"
    LSHR = "lshr"
    ASHR = "ashr"
    AND = "and"
    OR = "or"
    XOR = "xor"

    @property
    def is_shift(self) -> bool:
        return self in (Opcode.SHL, Opcode.LSHR, Opcode.ASHR)


@dataclass(frozen=True)
class Guarantees:
    """Flags an instruction was declared with."""

    nsw: bool = False
    nuw: bool = False
    exact: bool = False
    inbounds: bool = False


NO_GUARANTEES = Guarantees()

_Arith = Callable[[WideInt, WideInt], WideInt]
_Check = Callable[[WideInt, WideInt, WideInt, Guarantees], bool]

_ARITHMETIC: Dict[Opcode, _Arith] = {
    Opcode.ADD: WideInt.add,
    Opcode.SUB: WideInt.sub,
    Opcode.MUL: WideInt.mul,
    Opcode.UDIV: WideInt.udiv,
    Opcode.SDIV: WideInt.sdiv,
    Opcode.SHL: WideInt.shl,
    Opcode.LSHR: WideInt.lshr,
    Opcode.ASHR: WideInt.ashr,
    Opcode.AND: WideInt.and_,
    Opcode.OR: WideInt.or_,
    Opcode.XOR: WideInt.xor,
}

_DETECTORS: Dict[Opcode, _Check] = {
    Opcode.ADD: lambda d, a, b, g: detectors.poison_add(d, a, b, g.nsw, g.nuw),
    Opcode.SUB: lambda d, a, b, g: detectors.poison_sub(d, a, b, g.nsw, g.nuw),
    Opcode.MUL: lambda d, a, b, g: detectors.poison_mul(d, a, b, g.nsw, g.nuw),
    Opcode.UDIV: lambda d, a, b, g: detectors.poison_div(d, a, b, g.exact),
    Opcode.SDIV: lambda d, a, b, g: detectors.poison_div(d, a, b, g.exact),
    Opcode.SHL: lambda d, a, b, g: detectors.poison_shl(d, a, b, g.nsw, g.nuw),
    Opcode.LSHR: lambda d, a, b, g: detectors.poison_shr(d, a, b, g.exact),
    Opcode.ASHR: lambda d, a, b, g: detectors.poison_shr(d, a, b, g.exact),
}


class PoisonEvaluator:
    """Evaluates integer instructions with poison tracking."""

    def __init__(self, options: PolicyOptions,
                 reporter: Optional[DiagnosticReporter] = None) -> None:
        self.options = options
        self.reporter = reporter or DiagnosticReporter(options)

    def _inherited(self, opcode: Opcode, lhs: WideInt, rhs: WideInt) -> bool:
        if opcode is Opcode.AND:
            return and_taint(lhs, rhs, self.options)
        if opcode is Opcode.OR:
            return or_taint(lhs, rhs, self.options)
        return classical_taint(lhs, rhs)

    def evaluate(
        self,
        opcode: Opcode,
        lhs: WideInt,
        rhs: WideInt,
        guarantees: Guarantees = NO_GUARANTEES,
        instruction: Optional[Instruction] = None,
    ) -> WideInt:
        require_same_width(lhs, rhs)
        inherited = self._inherited(opcode, lhs, rhs)

        if opcode.is_shift and rhs.uge(lhs.width):
            _log.debug("%s by %d on i%d is poison", opcode.value, rhs.unsigned, lhs.width)
            result = WideInt.zero(lhs.width).or_poisoned(True)
        else:
            raw = _ARITHMETIC[opcode](lhs, rhs)
            check = _DETECTORS.get(opcode)
            violated = check(raw, lhs, rhs, guarantees) if check else False
            result = raw.or_poisoned(inherited or violated)

        # Only first corruption is reported, not poison passed through
        self.reporter.report_transition(instruction, lhs.poisoned or rhs.poisoned, result)
        return result

    def evaluate_select(self, cond: WideInt, true_value: WideInt,
                        false_value: WideInt) -> WideInt:
        # select only forwards poison, so there is never anything new to report
        chosen = true_value if not cond.is_zero else false_value
        poisoned = select_taint(cond, true_value, false_value, self.options)
        return WideInt(chosen.width, chosen.bits).or_poisoned(poisoned)
