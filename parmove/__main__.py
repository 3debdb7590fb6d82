"""Allows the package to be run as ``python -m parmove``."""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
