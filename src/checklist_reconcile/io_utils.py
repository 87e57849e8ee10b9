"""JSON file I/O for reconciliation inputs and outputs.

All serialization goes through orjson with sorted keys so that reconciling
the same inputs twice yields byte-identical files.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

_CANONICAL_OPTS = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def dumps_canonical(obj: Any) -> bytes:
    """Indented, key-sorted JSON bytes with a trailing newline."""
    return orjson.dumps(obj, option=_CANONICAL_OPTS) + b"\n"


def save_json(obj: Any, path: Path) -> None:
    """Save an object as canonical JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_canonical(obj))


def load_json_object(path: Path, *, what: str = "Input") -> dict[str, Any]:
    """Load a JSON file whose top level must be an object."""
    try:
        payload = load_json(path)
    except orjson.JSONDecodeError as exc:
        raise ValueError(f"{what} file is not valid JSON: {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{what} payload must be a JSON object: {path}")
    return payload
