# tests/conftest.py
"""
Shared fixtures: policy option sets and small-width value builders.
"""

import itertools

import pytest

from lli_undef_fix.options import PolicyOptions, PolicySwitch
from lli_undef_fix.wide_int import WideInt


@pytest.fixture
def default_options():
    return PolicyOptions.defaults()


@pytest.fixture
def antidote_options():
    return PolicyOptions({PolicySwitch.ANTIDOTE_AND_OR: True,
                          PolicySwitch.ANTIDOTE_SELECT: True})


@pytest.fixture
def print_options():
    return PolicyOptions({PolicySwitch.PRINT_NEW_POISON: True})


@pytest.fixture
def i8():
    """Builder for 8-bit values: ``i8(100)``, ``i8(-1, poisoned=True)``."""
    def build(value, poisoned=False):
        return WideInt(8, value, poisoned)
    return build


@pytest.fixture(scope="session")
def nibble_pairs():
    """Every ordered pair of 4-bit values."""
    values = [WideInt(4, v) for v in range(16)]
    return list(itertools.product(values, values))
