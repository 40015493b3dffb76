"""
lli_undef_fix/options.py
════════════════════════

The policy store: a closed set of boolean switches that decide how strict
poison propagation is and whether new poison is reported.

Switches are given as one comma-separated list, normally in the
``LLI_LUF_OPTS`` environment variable::

    LLI_LUF_OPTS=print_new_poison,antidote_and_or lli program.bc

Every switch starts at its default.  Naming a switch sets it to the
*opposite of its default*; naming it twice changes nothing more.  Any
name that is not a switch is an error, all of them are reported, and
then the process exits: a misspelt switch would silently change which
operations are checked.

The result of parsing is a :class:`PolicyOptions` value.  It is built
once, before evaluation starts, and is read-only afterwards; pass it to
whatever needs it.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum, unique
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, TextIO

from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from lli_undef_fix.errors import LufError, OptionsError

_log = logging.getLogger(__name__)

ENV_VAR_NAME: str = "LLI_LUF_OPTS"
EXIT_FAILURE: int = 1

_INDENT = "  "


# ═══════════════════════════════════════════════════════════════════
#  Switches
# ═══════════════════════════════════════════════════════════════════

@unique
class PolicySwitch(Enum):
    """Every switch the store knows, with its option name and default."""

    ANTIDOTE_SELECT = ("antidote_select", False)
    ANTIDOTE_AND_OR = ("antidote_and_or", False)
    PRINT_NEW_POISON = ("print_new_poison", False)

    def __init__(self, option_name: str, default: bool) -> None:
        self.option_name = option_name
        self.default = default


_SWITCHES_BY_NAME: Dict[str, PolicySwitch] = {
    switch.option_name: switch for switch in PolicySwitch
}
if len(_SWITCHES_BY_NAME) != len(PolicySwitch):
    raise LufError("duplicate option name in PolicySwitch")


@dataclass(frozen=True)
class PolicyOptions:
    """
    Immutable switch settings.

    Switches missing from *values* take their default.  Index with a
    :class:`PolicySwitch` or use the named properties.
    """

    values: Mapping[PolicySwitch, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        resolved = {s: bool(self.values.get(s, s.default)) for s in PolicySwitch}
        object.__setattr__(self, "values", MappingProxyType(resolved))

    @classmethod
    def defaults(cls) -> "PolicyOptions":
        return cls()

    def __getitem__(self, switch: PolicySwitch) -> bool:
        return self.values[switch]

    @property
    def antidote_select(self) -> bool:
        return self.values[PolicySwitch.ANTIDOTE_SELECT]

    @property
    def antidote_and_or(self) -> bool:
        return self.values[PolicySwitch.ANTIDOTE_AND_OR]

    @property
    def print_new_poison(self) -> bool:
        return self.values[PolicySwitch.PRINT_NEW_POISON]


# ═══════════════════════════════════════════════════════════════════
#  Option list grammar
# ═══════════════════════════════════════════════════════════════════

OPTION_LIST_GRAMMAR = Grammar(r'''
    option_list = item more_items*
    more_items  = "," item
    item        = ~r"[^,]*"
''')


class OptionListVisitor(NodeVisitor):
    """Turns an option-list parse tree into the list of non-empty names."""

    def visit_option_list(self, node, visited_children) -> List[str]:
        first, rest = visited_children
        return [name for name in [first, *rest] if name]

    def visit_more_items(self, node, visited_children) -> str:
        _, item = visited_children
        return item

    def visit_item(self, node, visited_children) -> str:
        return node.text

    def generic_visit(self, node, visited_children):
        return visited_children


def split_option_list(text: str) -> List[str]:
    """Names in a comma-separated option list, empty entries dropped."""
    return OptionListVisitor().visit(OPTION_LIST_GRAMMAR.parse(text))


# ═══════════════════════════════════════════════════════════════════
#  Parsing and loading
# ═══════════════════════════════════════════════════════════════════

def parse_options(text: Optional[str], var_name: str = ENV_VAR_NAME) -> PolicyOptions:
    """
    Build :class:`PolicyOptions` from an option list.

    Raises
    ------
    OptionsError
        If any name is not a known switch.  Every unknown name is listed.
    """
    values = {switch: switch.default for switch in PolicySwitch}
    unknown: List[str] = []
    for name in split_option_list(text or ""):
        switch = _SWITCHES_BY_NAME.get(name)
        if switch is None:
            unknown.append(name)
            continue
        values[switch] = not switch.default
    if unknown:
        raise OptionsError(unknown, var_name)
    return PolicyOptions(values)


def format_options(options: PolicyOptions, var_name: str = ENV_VAR_NAME) -> str:
    """Human-readable listing of every switch, its value and its default."""
    lines = [f"LUF Option settings via {var_name}:"]
    for switch in PolicySwitch:
        lines.append(
            f"{_INDENT}{switch.option_name}={int(options[switch])} "
            f"(default={int(switch.default)})"
        )
    lines.append(f"{_INDENT}(end of options)")
    return "\n".join(lines) + "\n"


def load_options(
    environ: Optional[Mapping[str, str]] = None,
    var_name: str = ENV_VAR_NAME,
    stream: Optional[TextIO] = None,
    err_stream: Optional[TextIO] = None,
) -> PolicyOptions:
    """
    Read the option list from the environment, once, at start-up.

    On success the listing is written to *stream* (stdout by default).
    On unknown names each error line and a final ``Too many errors,
    exiting.`` go to *err_stream* (stderr by default) and the process
    exits with status :data:`EXIT_FAILURE`.
    """
    environ = os.environ if environ is None else environ
    try:
        options = parse_options(environ.get(var_name, ""), var_name)
    except OptionsError as exc:
        err = err_stream or sys.stderr
        for message in exc.messages:
            err.write(message + "\n")
        err.write("Too many errors, exiting.\n")
        err.flush()
        raise SystemExit(EXIT_FAILURE) from exc

    _log.info("policy options: %s", ", ".join(
        f"{s.option_name}={options[s]}" for s in PolicySwitch))
    (stream or sys.stdout).write(format_options(options, var_name) + "\n")
    return options
