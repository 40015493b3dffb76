"""
lli_undef_fix/reporter.py
═════════════════════════

Reports where poison first appears.

When ``print_new_poison`` is on, every time an instruction produces a
poisoned value the reporter writes one line naming the instruction's
source location to the diagnostic stream (stderr)::

    new poison at overflow.c:12:9

The reporter only looks; it never changes a value's taint.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional, Protocol, TextIO, runtime_checkable

from lli_undef_fix.options import PolicyOptions, PolicySwitch
from lli_undef_fix.wide_int import WideInt

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceLocation:
    """A debug location attached to an IR instruction."""

    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def parse(cls, text: str) -> "SourceLocation":
        """Read ``file:line[:column]``; a bare file name is accepted."""
        parts = text.rsplit(":", 2)
        numbers = []
        while len(parts) > 1 and parts[-1].isdigit():
            numbers.insert(0, int(parts.pop()))
        file = ":".join(parts)
        line = numbers[0] if numbers else 0
        column = numbers[1] if len(numbers) > 1 else 0
        return cls(file, line, column)

    def __str__(self) -> str:
        text = f"{self.file}:{self.line}"
        return f"{text}:{self.column}" if self.column else text


@runtime_checkable
class Instruction(Protocol):
    """What the reporter needs from an interpreter's instruction object."""

    debug_loc: Optional[SourceLocation]


@dataclass(frozen=True)
class InstructionRef:
    """Minimal :class:`Instruction` for callers without an IR object model."""

    name: str = ""
    debug_loc: Optional[SourceLocation] = None


class DiagnosticReporter:
    """Writes a location line for newly poisoned values, if enabled."""

    def __init__(self, options: PolicyOptions, stream: Optional[TextIO] = None) -> None:
        self._enabled = options[PolicySwitch.PRINT_NEW_POISON]
        self._stream = stream

    @property
    def enabled(self) -> bool:
        return self._enabled

    def report(self, instruction: Optional[Instruction], value: WideInt) -> bool:
        """
        Emit the location of *instruction* if *value* is poisoned.

        Returns ``True`` when a line was written.
        """
        if not self._enabled or not value.poisoned:
            return False
        loc = getattr(instruction, "debug_loc", None)
        where = str(loc) if loc is not None else "<unknown location>"
        _log.debug("new poison value %s at %s", value, where)
        stream = self._stream or sys.stderr
        stream.write(f"new poison at {where}\n")
        return True

    def report_transition(self, instruction: Optional[Instruction],
                          before: bool, after: WideInt) -> bool:
        """Report only if the taint went from clean (*before*) to poisoned."""
        if before:
            return False
        return self.report(instruction, after)
