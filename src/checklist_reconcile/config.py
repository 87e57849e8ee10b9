"""Reconciliation run configuration.

Loaded from an optional JSON file. Unknown keys and keys starting with an
underscore are ignored so config files can carry notes.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import orjson


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    """Switches for the optional passes around the core matcher."""

    direct_label_pass: bool = True                 # Confidence-100 pass before assignment search
    report_unmatched_checkbox_nodes: bool = True   # Emit ui_not_matched entries
    report_ambiguous: bool = False                 # Emit ambiguous_match entries for ties
    recover_descriptions_from_html: bool = True    # Fill empty descriptions from raw_html
    header_id_prefix: str = "header"

    def __post_init__(self) -> None:
        if not self.header_id_prefix.strip():
            raise ValueError("ReconcileConfig.header_id_prefix must be non-empty")


DEFAULT_CONFIG = ReconcileConfig()

_BOOL_STRINGS = {"true": True, "1": True, "yes": True, "false": False, "0": False, "no": False}


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
        return _BOOL_STRINGS[value.strip().lower()]
    raise ValueError(f"Config key {key!r} must be a boolean, got {value!r}")


def config_from_dict(d: dict[str, Any]) -> ReconcileConfig:
    """Create a ReconcileConfig from a dict (e.g., loaded from JSON)."""
    valid = {f.name: f for f in fields(ReconcileConfig)}
    converted: dict[str, Any] = {}
    for key, val in d.items():
        if key not in valid or key.startswith("_"):
            continue
        if key == "header_id_prefix":
            converted[key] = str(val).strip()
            continue
        converted[key] = _coerce_bool(key, val)
    return ReconcileConfig(**converted)


def config_to_dict(config: ReconcileConfig) -> dict[str, Any]:
    return asdict(config)


def load_config(path: Path) -> ReconcileConfig:
    """Load a ReconcileConfig from a JSON file."""
    payload = orjson.loads(path.read_bytes())
    if not isinstance(payload, dict):
        raise ValueError(f"Config payload must be a JSON object: {path}")
    return config_from_dict(payload)
