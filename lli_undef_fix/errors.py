# lli_undef_fix/errors.py
"""
Error types for the poison-tracking core.

Hierarchy
─────────
    LufError (base)
    ├── OptionsError        - unrecognised names in the option list
    └── ContractViolation   - a caller broke a precondition (bit widths,
                              zero divisor, oversized shift, ...)

``OptionsError`` is an ordinary configuration error: it is collected while
parsing and turned into a fail-fast exit by
:func:`lli_undef_fix.options.load_options`.

``ContractViolation`` is *not* a recoverable error.  It signals a bug in
the interpreter that called into this package and is never caught inside
the library.  It derives from ``AssertionError`` so it reads like a failed
``assert`` in tracebacks and test output.
"""

from __future__ import annotations

from typing import List, Sequence


class LufError(Exception):
    """Base exception for all lli-undef-fix errors."""


class OptionsError(LufError):
    """
    One or more option names in the option list were not recognised.

    All unknown names are collected before this is raised, so a single
    exception carries the full report.
    """

    def __init__(self, unknown: Sequence[str], var_name: str) -> None:
        self.unknown: List[str] = list(unknown)
        self.var_name = var_name
        self.messages: List[str] = [
            f'do not understand option "{name}" in environment variable '
            f'"{var_name}".'
            for name in self.unknown
        ]
        super().__init__("\n".join(self.messages))


class ContractViolation(LufError, AssertionError):
    """A precondition of a detector or ``WideInt`` operation was broken."""


def require_same_width(*values) -> int:
    """Return the common bit width of *values* or raise ``ContractViolation``."""
    widths = {v.width for v in values}
    if len(widths) != 1:
        raise ContractViolation(
            "bit width mismatch: "
            + ", ".join(str(v.width) for v in values)
        )
    return widths.pop()
