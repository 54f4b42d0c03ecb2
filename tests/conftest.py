# tests/conftest.py
import os, sys, pathlib

# Tests choose their stores explicitly; don't pick one up from the environment
os.environ.setdefault("PENNANT_STORE_DRIVER", "none")
os.environ.setdefault("PENNANT_ENV", "test")

# Add <repo>/src to sys.path so `import pennant...` works under pytest
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
