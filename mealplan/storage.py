"""JSON file helpers shared by the recipe, meal-plan and shopping-list stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def read_json(file_path: Path) -> Any:
    """Read and decode *file_path*. Lets FileNotFoundError / JSONDecodeError propagate."""
    with open(file_path) as f:
        return json.load(f)


def write_json_atomic(file_path: Path, data: Any, prefix: str) -> None:
    """Write *data* as JSON to *file_path* atomically.

    Writes to a temp file in the same directory (same filesystem, so the
    rename is atomic) and replaces the target. The parent directory is
    created if needed.

    Raises:
        OSError: If the file cannot be written
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(dir=file_path.parent, prefix=prefix, suffix=".json")

    try:
        with os.fdopen(temp_fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(temp_path, file_path)
    except Exception:
        # Clean up temp file if something went wrong
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
