"""
lli_undef_fix — Poison Tracking for an IR Interpreter
=====================================================

This package lets an instruction-level interpreter reproduce the
undefined-behaviour semantics of LLVM IR instead of masking them.  When
an instruction was declared ``nsw``, ``nuw``, ``exact`` or ``inbounds``
and the guarantee does not hold at run time, the result is marked
*poisoned*; every value computed from it inherits the mark, and the
location of the first corruption can be reported.

Core modules
------------
wide_int
    ``WideInt``: fixed-width two's-complement integers with a poison bit.
detectors
    One decision function per arithmetic family (add, sub, mul, div,
    shl, lshr / ashr, gep).
propagation
    Classical operand-taint propagation and the ``and`` / ``or`` /
    ``select`` short-circuit policies.
options
    The policy store, read once from ``LLI_LUF_OPTS``.
reporter
    Prints the source location of newly poisoned values.
evaluator
    Ties the above together for one instruction at a time.

Quick start
-----------
>>> from lli_undef_fix import WideInt, PolicyOptions, PoisonEvaluator, Opcode, Guarantees
>>> ev = PoisonEvaluator(PolicyOptions.defaults())
>>> r = ev.evaluate(Opcode.ADD, WideInt(8, 100), WideInt(8, 100), Guarantees(nsw=True))
>>> r.signed, r.poisoned
(-56, True)
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import TYPE_CHECKING, List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.2.0"
__author__ = "lli-undef-fix contributors"
__license__ = "MIT"
__all__: List[str] = []          # populated below

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Public names per submodule, re-exported at package level
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "LufError",
        "OptionsError",
        "ContractViolation",
    ],
    "wide_int": [
        "WideInt",
    ],
    "options": [
        "ENV_VAR_NAME",
        "PolicySwitch",
        "PolicyOptions",
        "parse_options",
        "load_options",
        "format_options",
    ],
    "detectors": [
        "BoundsModel",
        "poison_uadd",
        "poison_sadd",
        "poison_usub",
        "poison_ssub",
        "poison_umul",
        "poison_smul",
        "poison_div",
        "poison_shl",
        "poison_shr",
        "poison_gep",
        "poison_add",
        "poison_sub",
        "poison_mul",
    ],
    "propagation": [
        "classical_taint",
        "and_taint",
        "or_taint",
        "select_taint",
    ],
    "reporter": [
        "SourceLocation",
        "Instruction",
        "InstructionRef",
        "DiagnosticReporter",
    ],
    "evaluator": [
        "Opcode",
        "Guarantees",
        "PoisonEvaluator",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"lli_undef_fix: submodule '{module_rel_name}' failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        if not hasattr(mod, name):
            raise AttributeError(f"lli_undef_fix.{module_rel_name} does not export '{name}'")
        setattr(current_module, name, getattr(mod, name))
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names

__all__ += ["__version__"]

# ---------------------------------------------------------------------------
# TYPE_CHECKING block — static visibility of the names bound above
# ---------------------------------------------------------------------------

if TYPE_CHECKING:
    from .errors import (
        LufError as LufError,
        OptionsError as OptionsError,
        ContractViolation as ContractViolation,
    )
    from .wide_int import WideInt as WideInt
    from .options import (
        ENV_VAR_NAME as ENV_VAR_NAME,
        PolicySwitch as PolicySwitch,
        PolicyOptions as PolicyOptions,
        parse_options as parse_options,
        load_options as load_options,
        format_options as format_options,
    )
    from .detectors import (
        BoundsModel as BoundsModel,
        poison_uadd as poison_uadd,
        poison_sadd as poison_sadd,
        poison_usub as poison_usub,
        poison_ssub as poison_ssub,
        poison_umul as poison_umul,
        poison_smul as poison_smul,
        poison_div as poison_div,
        poison_shl as poison_shl,
        poison_shr as poison_shr,
        poison_gep as poison_gep,
        poison_add as poison_add,
        poison_sub as poison_sub,
        poison_mul as poison_mul,
    )
    from .propagation import (
        classical_taint as classical_taint,
        and_taint as and_taint,
        or_taint as or_taint,
        select_taint as select_taint,
    )
    from .reporter import (
        SourceLocation as SourceLocation,
        Instruction as Instruction,
        InstructionRef as InstructionRef,
        DiagnosticReporter as DiagnosticReporter,
    )
    from .evaluator import (
        Opcode as Opcode,
        Guarantees as Guarantees,
        PoisonEvaluator as PoisonEvaluator,
    )
