from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV = "HEAL_CODE_LOG_LEVEL"


def _add_project_dir_to_path() -> None:
    """Make ``heal_code`` importable when this file is run by path."""
    project_dir = str(Path(__file__).resolve().parent.parent)
    if project_dir not in sys.path:
        sys.path.insert(0, project_dir)


try:
    from .app import run  # type: ignore[attr-defined]
except ImportError:
    # No parent package: started as a plain script.
    _add_project_dir_to_path()
    from heal_code.app import run  # type: ignore[attr-defined]


def log_level_from_env() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def main() -> int:
    logging.basicConfig(
        level=log_level_from_env(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
