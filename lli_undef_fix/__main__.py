#!/usr/bin/env python3
"""Entry point for ``python -m lli_undef_fix``; see :mod:`lli_undef_fix.main`."""

import sys

from lli_undef_fix.main import main

if __name__ == "__main__":
    sys.exit(main())
