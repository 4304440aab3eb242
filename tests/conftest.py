import os
from pathlib import Path
import sys

# Ensure the src/ layout is importable without installing the package
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Tests never export spans
os.environ.setdefault("EVENTWIRE_DISABLE_TRACING", "1")
