# Use postponed evaluation of annotations so type hints don't require importing types at runtime.
from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

# `uvicorn` serves the FastAPI app as an ASGI server during local development.
import uvicorn

# The app is built by a factory from a typed config (no global state).
from metroproximity.api.app import create_app

# Config is read at runtime so host/port and storage paths come from `config/default.json` or env vars.
from metroproximity.config.loader import load_config


# Single entrypoint: config IO, app creation and server startup stay out of import time.
def main() -> None:
    config = load_config()
    app = create_app(config)

    # The read API has no auth; it binds to localhost unless `api.host` says otherwise.
    uvicorn.run(app, host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
