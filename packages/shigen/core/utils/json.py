"""JSON file helpers with Path support."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def _json_default(obj: Any) -> Any:
    """Serialize pydantic models and paths; anything else as its string form."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(by_alias=True)
    if isinstance(obj, Path):
        return str(obj)
    return str(obj)


def dumps(obj: Any, *, indent: int | None = 2) -> str:
    return json.dumps(obj, indent=indent, ensure_ascii=False, default=_json_default)


def read_json(path: str | Path) -> dict[str, Any]:
    """Read and parse a JSON object file.

    Raises:
        ValueError: If the file does not hold a JSON object
    """
    data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Expected JSON object, got {type(data).__name__}")
    return data
