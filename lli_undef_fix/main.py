#!/usr/bin/env python3
"""lli_undef_fix/main.py — command-line entry point.

Usage examples
--------------
    # Show the policy switches in force (from $LLI_LUF_OPTS)
    lli-luf options

    # Evaluate one instruction and print the result and its poison bit
    lli-luf eval add 8 100 100 --nsw
    lli-luf eval shl 8 0xC0 2 --nuw --loc overflow.c:12:9
    LLI_LUF_OPTS=antidote_and_or lli-luf eval and 8 123 0 --poison-lhs

Exit codes
----------
    0   Success.
    1   Unrecognised name in the option list.
    2   Usage error or broken precondition (width mismatch, zero divisor).

The module doubles as ``python -m lli_undef_fix`` via the companion
``__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from typing import Optional, Sequence

from lli_undef_fix import __version__
from lli_undef_fix.errors import ContractViolation
from lli_undef_fix.evaluator import Guarantees, Opcode, PoisonEvaluator
from lli_undef_fix.options import EXIT_FAILURE, load_options
from lli_undef_fix.reporter import DiagnosticReporter, InstructionRef, SourceLocation
from lli_undef_fix.wide_int import WideInt

_log = logging.getLogger("lli_undef_fix")

EXIT_OK: int = 0
EXIT_CONFIG: int = EXIT_FAILURE
EXIT_USAGE: int = 2


def _configure_logging(verbosity: int) -> None:
    """Set up the package logger: 0 → WARNING, 1 → INFO, 2+ → DEBUG."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("lli_undef_fix")
    root.setLevel(level)
    for old in [h for h in root.handlers if isinstance(h, logging.StreamHandler)]:
        root.removeHandler(old)
    root.addHandler(handler)


def _int_literal(text: str) -> int:
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")


# ===========================================================================
# Sub-commands
# ===========================================================================

def cmd_options(args: argparse.Namespace) -> int:
    load_options()
    return EXIT_OK


def cmd_eval(args: argparse.Namespace) -> int:
    # the listing goes to stderr so stdout carries only the result
    options = load_options(stream=sys.stderr)
    evaluator = PoisonEvaluator(options, DiagnosticReporter(options))
    lhs = WideInt(args.width, args.lhs, args.poison_lhs)
    rhs = WideInt(args.width, args.rhs, args.poison_rhs)
    guarantees = Guarantees(nsw=args.nsw, nuw=args.nuw, exact=args.exact)
    instruction = InstructionRef(
        name=args.opcode,
        debug_loc=SourceLocation.parse(args.loc) if args.loc else None,
    )

    result = evaluator.evaluate(Opcode(args.opcode), lhs, rhs, guarantees, instruction)
    sys.stdout.write(
        f"i{result.width} {result.signed} poisoned={int(result.poisoned)}\n")
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lli-luf",
        description=(
            "Poison tracking for LLVM IR integer instructions.\n\n"
            "Policy switches are read from the LLI_LUF_OPTS environment\n"
            "variable, a comma-separated list of switch names."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              lli-luf options
              lli-luf eval add 8 100 100 --nsw
              lli-luf eval udiv 32 7 2 --exact --loc div.c:4
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    p_options = subparsers.add_parser(
        "options",
        help="Print the policy switches in force.",
    )
    p_options.set_defaults(func=cmd_options)

    p_eval = subparsers.add_parser(
        "eval",
        help="Evaluate one integer instruction with poison tracking.",
    )
    p_eval.add_argument("opcode", choices=[op.value for op in Opcode])
    p_eval.add_argument("width", type=int, help="Bit width of the operands.")
    p_eval.add_argument("lhs", type=_int_literal)
    p_eval.add_argument("rhs", type=_int_literal)
    g = p_eval.add_argument_group("guarantees")
    g.add_argument("--nsw", action="store_true", help="No signed wrap.")
    g.add_argument("--nuw", action="store_true", help="No unsigned wrap.")
    g.add_argument("--exact", action="store_true", help="No remainder / no bits shifted out.")
    p_eval.add_argument("--poison-lhs", action="store_true", help="Mark lhs as poisoned.")
    p_eval.add_argument("--poison-rhs", action="store_true", help="Mark rhs as poisoned.")
    p_eval.add_argument(
        "--loc",
        default=None,
        metavar="FILE:LINE[:COL]",
        help="Source location reported for new poison.",
    )
    p_eval.set_defaults(func=cmd_eval)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    try:
        return args.func(args)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_CONFIG
    except ContractViolation as exc:
        _log.error("precondition failed: %s", exc)
        return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
