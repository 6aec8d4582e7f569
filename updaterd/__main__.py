"""
Entry point for running updaterd via `python -m updaterd`.
"""

import sys

from .console import main

if __name__ == "__main__":
    sys.exit(main())
