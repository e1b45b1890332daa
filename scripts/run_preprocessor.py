#!/usr/bin/env python3
"""
Launcher for the TurbPrep pre-processor.
"""

import sys

from turbprep.cli import main


if __name__ == "__main__":
    sys.exit(main())
