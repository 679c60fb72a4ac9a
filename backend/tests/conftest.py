import sys
from pathlib import Path


# Put `backend/` on sys.path so tests import the top-level packages
# (`explorer`, `geo`, `layers`, `lod`, `upstream`) and `main` directly.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))
