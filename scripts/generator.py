from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

# All sub-commands (area / station / check) live in the package so they are importable and testable.
from metroproximity.generator.cli import main


if __name__ == "__main__":
    # Propagate the command's exit code (1 on a missing area/station or invalid input).
    raise SystemExit(main())
