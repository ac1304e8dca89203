# run_journal.py
"""
Trade Journal Launcher
Purpose: Run the trade journal CLI from a source checkout
Usage:
    python run_journal.py ingest -d 2026-02-10
    python run_journal.py stats --week
"""

import os
import sys

# Add the project root to Python path
project_root = os.path.dirname(os.path.abspath(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from journal.cli import main

if __name__ == "__main__":
    sys.exit(main())
