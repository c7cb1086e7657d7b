"""
blockplan - Main entry point.
"""

import sys

from blockplan.cli import main

if __name__ == "__main__":
    sys.exit(main())
