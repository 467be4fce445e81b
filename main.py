#!/usr/bin/env python3
"""
cartconv -- run the converter from a source checkout.

Usage examples::

    python main.py -i game.bin -o game.crt
    python main.py --types
"""

import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so that ``cartconv`` can be imported
# regardless of how the script is invoked.
# ---------------------------------------------------------------------------
_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from cartconv.main import main


if __name__ == "__main__":
    sys.exit(main())
