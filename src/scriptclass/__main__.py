"""
Entry point for module execution (``python -m scriptclass``).

This module delegates execution to the CLI handler in ``scriptclass.cli.__main__``.
"""

import sys
from scriptclass.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
