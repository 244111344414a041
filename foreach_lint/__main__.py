#!/usr/bin/env python3
"""Allow ``python -m foreach_lint``."""

import sys

from foreach_lint.main import main

if __name__ == "__main__":
    sys.exit(main())
