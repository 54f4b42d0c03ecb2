#!/usr/bin/env python3
"""
Manage stored feature flags from a checkout (same as the `pennant` console script).

Examples:
  ./scripts/flags.py init
  ./scripts/flags.py set beta false
  ./scripts/flags.py --json get beta
"""

from __future__ import annotations

import sys
from pathlib import Path

# --- ensure we can import the package (src/ layout) ---
HERE = Path(__file__).resolve()
REPO_ROOT = HERE.parents[1]
SRC = REPO_ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from pennant.cli import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
